"""Type definitions for signing algorithms, JWKs and resolved keys."""

from enum import StrEnum
from typing import Annotated, Any, Literal

from cryptography.hazmat.primitives.asymmetric.ec import EllipticCurvePublicKey
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey
from pydantic import BaseModel, ConfigDict, Field


class SigningAlgorithm(StrEnum):
    """JWS algorithms accepted for proofs and for issued tokens."""

    ES256 = "ES256"
    ES384 = "ES384"
    ES512 = "ES512"
    RS256 = "RS256"
    RS384 = "RS384"
    RS512 = "RS512"
    EDDSA = "EdDSA"


class KeyFamily(StrEnum):
    """JWK key type (``kty``) of each algorithm family."""

    EC = "EC"
    RSA = "RSA"
    OKP = "OKP"


ALGORITHM_FAMILY: dict[SigningAlgorithm, KeyFamily] = {
    SigningAlgorithm.ES256: KeyFamily.EC,
    SigningAlgorithm.ES384: KeyFamily.EC,
    SigningAlgorithm.ES512: KeyFamily.EC,
    SigningAlgorithm.RS256: KeyFamily.RSA,
    SigningAlgorithm.RS384: KeyFamily.RSA,
    SigningAlgorithm.RS512: KeyFamily.RSA,
    SigningAlgorithm.EDDSA: KeyFamily.OKP,
}

# ES algorithms are pinned to exactly one curve each.
ALGORITHM_CURVE: dict[SigningAlgorithm, str] = {
    SigningAlgorithm.ES256: "P-256",
    SigningAlgorithm.ES384: "P-384",
    SigningAlgorithm.ES512: "P-521",
}

ED25519_CURVE = "Ed25519"


class EcPublicJwk(BaseModel):
    """Elliptic-curve public JWK as supplied by the client."""

    model_config = ConfigDict(frozen=True)

    kty: Literal["EC"] = "EC"
    crv: str
    x: str
    y: str


class RsaPublicJwk(BaseModel):
    """RSA public JWK as supplied by the client."""

    model_config = ConfigDict(frozen=True)

    kty: Literal["RSA"] = "RSA"
    n: str
    e: str


class OkpPublicJwk(BaseModel):
    """Ed25519 public JWK as supplied by the client."""

    model_config = ConfigDict(frozen=True)

    kty: Literal["OKP"] = "OKP"
    crv: str = ED25519_CURVE
    x: str


PublicJwk = Annotated[
    EcPublicJwk | RsaPublicJwk | OkpPublicJwk, Field(discriminator="kty")
]

PublicKey = EllipticCurvePublicKey | RSAPublicKey | Ed25519PublicKey


class PublicKeyMaterial(BaseModel):
    """A client public key resolved for one signing algorithm."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    algorithm: SigningAlgorithm
    jwk: PublicJwk
    key: PublicKey

    def echo(self) -> dict[str, Any]:
        """Canonical JWK for the ``cnf`` claim, strings kept as received."""
        return self.jwk.model_dump()


class JWKEntry(BaseModel):
    """Single JWK entry in a JWKS response."""

    model_config = ConfigDict(extra="allow")

    kty: str
    use: str = "sig"
    alg: str
    kid: str


class JWKSResponse(BaseModel):
    """JSON Web Key Set response."""

    keys: list[JWKEntry]
