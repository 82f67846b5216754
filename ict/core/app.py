"""FastAPI application factory for the ICT service."""

import asyncio
import contextlib
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from starlette.responses import JSONResponse

from ict.api.routes_jwks import router as jwks_router
from ict.api.routes_token import cors_headers
from ict.api.routes_token import router as token_router
from ict.core.context import AppContext, build_context
from ict.core.errors import IctError
from ict.core.logging import configure_logging
from ict.core.settings import load_database_settings, load_settings
from ict.db.engine import create_schema

logger = structlog.get_logger(__name__)


async def _ict_error_handler(request: Request, error: IctError) -> JSONResponse:
    log = logger.warning if error.status_code < 500 else logger.error
    log(
        "request_failed",
        path=request.url.path,
        error=type(error).__name__,
        detail=str(error),
    )
    return JSONResponse(
        error.to_response().model_dump(),
        status_code=error.status_code,
        headers=cors_headers(request),
    )


async def _unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request_crashed", path=request.url.path, exc_info=exc)
    error = IctError()
    return JSONResponse(
        error.to_response().model_dump(),
        status_code=error.status_code,
        headers=cors_headers(request),
    )


def create_app(context: AppContext | None = None) -> FastAPI:
    """Build and configure the FastAPI application.

    Without an explicit context, settings are read from the environment;
    a ``ConfigurationError`` propagates so the process never serves with
    a broken configuration.
    """
    if context is None:
        settings = load_settings()
        configure_logging(settings.log_level, json_output=settings.log_json)
        context = build_context(settings, load_database_settings())
    ctx = context

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        await create_schema(ctx.engine)
        await ctx.ledger.garbage_collect()
        gc_task = None
        if ctx.settings.nonce_gc_interval > 0:
            gc_task = asyncio.create_task(
                ctx.ledger.run_garbage_collector(ctx.settings.nonce_gc_interval)
            )
        logger.info(
            "ict_started", issuer=ctx.settings.issuer, alg=ctx.settings.alg.value
        )
        try:
            yield
        finally:
            if gc_task is not None:
                gc_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await gc_task
            await ctx.aclose()

    app = FastAPI(
        title="OIDC Identity Certification Token Endpoint",
        version="0.5.0",
        lifespan=lifespan,
    )
    app.state.context = ctx

    app.add_exception_handler(IctError, _ict_error_handler)
    app.add_exception_handler(Exception, _unexpected_error_handler)

    app.include_router(token_router)
    app.include_router(jwks_router)

    return app
