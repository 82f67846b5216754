"""Proof-of-possession token verification."""

from collections.abc import Mapping
from typing import Any

import jwt
import structlog

from ict.core.errors import (
    ClaimDecodeError,
    ClaimValidationError,
    InvalidAudience,
    MissingKeyMaterial,
    ReplayDetected,
    SignatureInvalid,
    SubjectMismatch,
    TokenExpiredOrNotYetValid,
)
from ict.crypto.jwk import resolve_public_key
from ict.crypto.types import PublicKeyMaterial
from ict.pop.claims import audience_contains, decode_numeric_claim
from ict.pop.ledger import NonceLedger
from ict.pop.types import VerifiedProof

logger = structlog.get_logger(__name__)

# Signature only; claims are checked below in a fixed order.
_DECODE_OPTIONS = {
    "verify_signature": True,
    "verify_exp": False,
    "verify_nbf": False,
    "verify_iat": False,
    "verify_aud": False,
    "verify_iss": False,
    "verify_sub": False,
    "verify_jti": False,
}


# Largest expiry the ledger's BIGINT column can hold.
MAX_LEDGER_EXPIRY = 2**63 - 1

def _time_claim(claims: Mapping[str, Any], name: str) -> int | None:
    """Read a NumericDate claim; only JSON numbers are accepted."""
    if name not in claims:
        return None
    value = claims[name]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TokenExpiredOrNotYetValid(f"'{name}' claim is not a number")
    try:
        return decode_numeric_claim(value)
    except ClaimDecodeError as exc:
        raise TokenExpiredOrNotYetValid(f"invalid '{name}' claim: {exc}") from exc


class ProofOfPossessionVerifier:
    """Validates client proofs against their own embedded ``jwk``."""

    def __init__(self, issuer: str, ledger: NonceLedger, leeway: int = 0) -> None:
        self._issuer = issuer
        self._ledger = ledger
        self._leeway = leeway

    def _resolve_header_key(self, token: str) -> PublicKeyMaterial:
        try:
            header = jwt.get_unverified_header(token)
        except jwt.PyJWTError as exc:
            raise SignatureInvalid(f"malformed proof of possession token: {exc}") from exc
        if "jwk" not in header:
            raise MissingKeyMaterial("proof of possession header has no 'jwk'")
        return resolve_public_key(header.get("alg"), header["jwk"])

    def decode(self, token: str) -> tuple[dict[str, Any], PublicKeyMaterial]:
        """Check the signature against the header key and return the claims."""
        material = self._resolve_header_key(token)
        try:
            claims = jwt.decode(
                token,
                material.key,
                algorithms=[material.algorithm.value],
                options=_DECODE_OPTIONS,
            )
        except jwt.PyJWTError as exc:
            raise SignatureInvalid(f"failed to verify proof signature: {exc}") from exc
        return claims, material

    def validate_claims(
        self, claims: Mapping[str, Any], identity: Mapping[str, Any], now: int
    ) -> None:
        """Subject binding, audience and time window, in that order."""
        proof_sub = claims.get("sub")
        identity_sub = identity.get("sub")
        if not isinstance(identity_sub, str):
            raise SubjectMismatch("subject claim in userinfo response not found")
        if not isinstance(proof_sub, str):
            raise SubjectMismatch("subject claim in proof token not found")
        if proof_sub != identity_sub:
            raise SubjectMismatch(
                f"proof subject '{proof_sub}' does not match '{identity_sub}'"
            )

        if not audience_contains(claims.get("aud"), self._issuer):
            raise InvalidAudience(
                f"audience {claims.get('aud')!r} does not contain '{self._issuer}'"
            )

        exp = _time_claim(claims, "exp")
        iat = _time_claim(claims, "iat")
        nbf = _time_claim(claims, "nbf")
        if exp is None or iat is None:
            raise TokenExpiredOrNotYetValid("proof token needs 'exp' and 'iat'")
        if exp + self._leeway > MAX_LEDGER_EXPIRY:
            raise TokenExpiredOrNotYetValid(f"proof token expiry {exp} out of range")
        if now >= exp + self._leeway:
            raise TokenExpiredOrNotYetValid("proof token expired")
        if nbf is not None and now < nbf - self._leeway:
            raise TokenExpiredOrNotYetValid("proof token not yet valid")
        if iat > now + self._leeway:
            raise TokenExpiredOrNotYetValid("proof token issued in the future")

    async def claim_identifier(self, claims: Mapping[str, Any], now: int) -> None:
        """Consume the proof's ``jti`` in the ledger, once."""
        jti = claims.get("jti")
        if not isinstance(jti, str) or not jti:
            raise ClaimValidationError("proof token has no 'jti'")
        # Keep the record for as long as the proof could still be accepted.
        expires_at = decode_numeric_claim(claims["exp"]) + self._leeway
        if not await self._ledger.try_claim(jti, expires_at, now):
            raise ReplayDetected(f"proof token identifier '{jti}' already used")

    async def verify(
        self, token: str, identity: Mapping[str, Any], now: int
    ) -> VerifiedProof:
        """Run every proof check; raises an ``IctError`` subclass on failure."""
        claims, material = self.decode(token)
        self.validate_claims(claims, identity, now)
        await self.claim_identifier(claims, now)
        logger.debug("proof_verified", sub=claims["sub"], alg=material.algorithm.value)
        return VerifiedProof(claims=claims, key=material)
