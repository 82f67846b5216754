"""Identity Certification Token and Remote ID Token endpoints."""

import time

from fastapi import APIRouter, Request, Response
from starlette.responses import JSONResponse

from ict.api.deps import BearerDep, ContextDep
from ict.core.context import AppContext
from ict.pop.types import IctResponse, IssuedToken, RidtResponse, TokenVariant

router = APIRouter()

HTTP_CREATED = 201
HTTP_NO_CONTENT = 204

NO_STORE_HEADERS = {"Cache-Control": "no-store", "Pragma": "no-cache"}


def cors_headers(request: Request) -> dict[str, str]:
    """CORS headers for the issuance endpoints, echoing the caller origin."""
    headers = {
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": "Authorization, Content-Type",
    }
    origin = request.headers.get("Origin")
    if origin:
        headers["Access-Control-Allow-Origin"] = origin
    return headers


async def _issue(
    request: Request, ctx: AppContext, bearer: str, variant: TokenVariant
) -> tuple[IssuedToken, int]:
    identity = await ctx.userinfo.fetch(bearer)
    body = (await request.body()).decode("utf-8", errors="replace").strip()

    now = int(time.time())
    proof = await ctx.verifier.verify(body, identity, now)

    contexts: list[str] = []
    if variant is TokenVariant.ICT and ctx.introspector is not None:
        contexts = await ctx.introspector.authorized_contexts(bearer)

    issued = ctx.issuer.issue(proof, identity, variant, now, contexts)
    return issued, issued.expires_at - int(time.time())


@router.post("/ict", status_code=HTTP_CREATED, response_model=None)
async def identity_certification_token(
    request: Request, ctx: ContextDep, bearer: BearerDep
) -> JSONResponse:
    """POST /ict -- exchange a proof of possession for an ICT."""
    issued, expires_in = await _issue(request, ctx, bearer, TokenVariant.ICT)
    body = IctResponse(
        identity_certification_token=issued.token,
        expires_in=expires_in,
        claims=issued.claim_names,
        e2e_auth_contexts=issued.contexts,
    )
    return JSONResponse(
        body.model_dump(),
        status_code=HTTP_CREATED,
        headers={**NO_STORE_HEADERS, **cors_headers(request)},
    )


@router.post("/ridt", status_code=HTTP_CREATED, response_model=None)
async def remote_id_token(
    request: Request, ctx: ContextDep, bearer: BearerDep
) -> JSONResponse:
    """POST /ridt -- exchange a proof of possession for a remote ID token."""
    issued, expires_in = await _issue(request, ctx, bearer, TokenVariant.RIDT)
    body = RidtResponse(
        remote_id_token=issued.token,
        expires_in=expires_in,
        claims=" ".join(issued.claim_names),
    )
    return JSONResponse(
        body.model_dump(),
        status_code=HTTP_CREATED,
        headers={**NO_STORE_HEADERS, **cors_headers(request)},
    )


@router.options("/ict")
@router.options("/ridt")
async def preflight(request: Request) -> Response:
    """CORS preflight for both issuance endpoints."""
    return Response(status_code=HTTP_NO_CONTENT, headers=cors_headers(request))
