"""Public signing key endpoint."""

from fastapi import APIRouter, Response

from ict.api.deps import ContextDep
from ict.crypto.keys import jwk_entry
from ict.crypto.types import JWKSResponse

router = APIRouter()

JWKS_CACHE_CONTROL = "public, max-age=3600"


@router.get("/jwks")
async def jwks(response: Response, ctx: ContextDep) -> JWKSResponse:
    """JSON Web Key Set for verifying issued tokens."""
    mgr = ctx.jwt_mgr
    response.headers["Cache-Control"] = JWKS_CACHE_CONTROL
    return JWKSResponse(keys=[jwk_entry(mgr.private_key, mgr.kid, mgr.algorithm)])
