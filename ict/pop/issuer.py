"""Outbound identity token construction and signing."""

import secrets
from collections.abc import Mapping
from typing import Any

import structlog

from ict.core.errors import ClaimDecodeError, SubjectMissing
from ict.crypto.jwt_manager import JWTManager
from ict.pop.claims import decode_numeric_claim, select_claims
from ict.pop.types import IssuedToken, TokenVariant, VerifiedProof

logger = structlog.get_logger(__name__)

NONCE_BYTES = 24
TOKEN_ID_BYTES = 32


def generate_nonce() -> str:
    """Fresh base64url nonce (192 bits)."""
    return secrets.token_urlsafe(NONCE_BYTES)


def generate_token_id() -> str:
    """Fresh base64url token identifier (256 bits)."""
    return secrets.token_urlsafe(TOKEN_ID_BYTES)


def compute_lifetime(requested: Any, default: int, maximum: int) -> int:
    """Clamp a client-requested lifetime into ``[1, maximum]``.

    Absent, undecodable or non-positive requests fall back to ``default``.
    """
    if requested is None:
        return default
    try:
        lifetime = decode_numeric_claim(requested)
    except ClaimDecodeError as exc:
        logger.warning("token_lifetime_ignored", reason=str(exc))
        return default
    if lifetime > maximum:
        return maximum
    if lifetime > 0:
        return lifetime
    return default


class TokenIssuer:
    """Builds the key-bound token handed back to the client."""

    def __init__(
        self,
        jwt_mgr: JWTManager,
        default_lifetime: int,
        max_lifetime: int,
    ) -> None:
        self._jwt_mgr = jwt_mgr
        self._default_lifetime = default_lifetime
        self._max_lifetime = max_lifetime

    def issue(
        self,
        proof: VerifiedProof,
        identity: Mapping[str, Any],
        variant: TokenVariant,
        now: int,
        contexts: list[str] | None = None,
    ) -> IssuedToken:
        subject = identity.get("sub")
        if not isinstance(subject, str):
            raise SubjectMissing("subject not found in identity claims")

        hints = proof.claims
        lifetime = compute_lifetime(
            hints.get("token_lifetime"), self._default_lifetime, self._max_lifetime
        )
        nonce = hints.get("token_nonce")
        if not isinstance(nonce, str):
            nonce = generate_nonce()

        payload = select_claims(identity, hints.get("token_claims"))
        claim_names = list(payload)
        expires_at = now + lifetime
        payload.update(
            {
                "sub": subject,
                "iss": self._jwt_mgr.issuer,
                "nonce": nonce,
                "iat": now,
                "nbf": now,
                "exp": expires_at,
                "cnf": {"jwk": proof.key.echo()},
            }
        )

        granted: list[str] = []
        if variant is TokenVariant.ICT:
            granted = list(contexts or [])
            payload["jti"] = generate_token_id()
            payload["ctx"] = granted

        token = self._jwt_mgr.sign(payload)
        logger.info(
            "token_issued",
            variant=variant.value,
            sub=subject,
            lifetime=lifetime,
            claims=claim_names,
        )
        return IssuedToken(
            token=token,
            claim_names=claim_names,
            expires_at=expires_at,
            contexts=granted,
        )
