"""FastAPI dependencies for the issuance endpoints."""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ict.core.context import AppContext
from ict.core.errors import MissingBearer

_security = HTTPBearer(auto_error=False)


def get_context(request: Request) -> AppContext:
    return request.app.state.context


async def require_bearer(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_security)],
) -> str:
    """Bearer token from the Authorization header (scheme case-insensitive)."""
    if credentials is None:
        raise MissingBearer("bearer authorization header missing or malformed")
    return credentials.credentials


ContextDep = Annotated[AppContext, Depends(get_context)]
BearerDep = Annotated[str, Depends(require_bearer)]
