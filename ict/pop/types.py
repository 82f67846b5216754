"""Type definitions for proof verification and token issuance."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ict.crypto.types import PublicKeyMaterial


class TokenVariant(StrEnum):
    """Which endpoint flavour is issuing."""

    ICT = "ict"
    RIDT = "ridt"


class VerifiedProof(BaseModel):
    """A proof-of-possession token that passed every check."""

    model_config = ConfigDict(frozen=True)

    claims: dict[str, Any]
    key: PublicKeyMaterial


class IssuedToken(BaseModel):
    """Result of signing an outbound token."""

    token: str
    claim_names: list[str]
    expires_at: int
    contexts: list[str] = Field(default_factory=list)


class IctResponse(BaseModel):
    """Identity Certification Token endpoint response."""

    identity_certification_token: str
    expires_in: int
    claims: list[str]
    e2e_auth_contexts: list[str]


class RidtResponse(BaseModel):
    """Remote ID Token endpoint response."""

    remote_id_token: str
    expires_in: int
    claims: str
