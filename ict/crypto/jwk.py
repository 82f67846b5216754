"""Public key resolution from untrusted JSON Web Key material."""

import base64
import binascii
import re
from typing import Any

from cryptography.exceptions import UnsupportedAlgorithm as CryptoUnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa

from ict.core.errors import KeyMaterialError, UnsupportedAlgorithm
from ict.crypto.types import (
    ALGORITHM_CURVE,
    ALGORITHM_FAMILY,
    ED25519_CURVE,
    EcPublicJwk,
    KeyFamily,
    OkpPublicJwk,
    PublicKeyMaterial,
    RsaPublicJwk,
    SigningAlgorithm,
)

_BASE64URL = re.compile(r"^[A-Za-z0-9_-]+$")

_CURVES: dict[str, ec.EllipticCurve] = {
    "P-256": ec.SECP256R1(),
    "P-384": ec.SECP384R1(),
    "P-521": ec.SECP521R1(),
}

RSA_EXPONENT_MAX_BYTES = 4
ED25519_KEY_BYTES = 32


def parse_algorithm(alg: object) -> SigningAlgorithm:
    """Map a JWS ``alg`` value onto a supported algorithm."""
    if not isinstance(alg, str):
        raise UnsupportedAlgorithm(f"signing algorithm {alg!r} not supported")
    try:
        return SigningAlgorithm(alg)
    except ValueError as exc:
        raise UnsupportedAlgorithm(f"signing algorithm '{alg}' not supported") from exc


def base64url_decode(value: str) -> bytes:
    """Decode unpadded base64url, rejecting padding and foreign characters."""
    if not _BASE64URL.match(value) or len(value) % 4 == 1:
        raise KeyMaterialError(f"malformed base64url value '{value}'")
    try:
        return base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))
    except (binascii.Error, ValueError) as exc:
        raise KeyMaterialError(f"malformed base64url value '{value}'") from exc


def _string_field(jwk: dict[str, Any], name: str) -> str:
    value = jwk.get(name)
    if value is None:
        raise KeyMaterialError(f"attribute '{name}' not found")
    if not isinstance(value, str):
        raise KeyMaterialError(
            f"attribute '{name}' is of type '{type(value).__name__}' "
            "but expected type 'string'"
        )
    return value


def _uint_field(jwk: dict[str, Any], name: str) -> int:
    raw = base64url_decode(_string_field(jwk, name))
    return int.from_bytes(raw, byteorder="big")


def _check_key_type(jwk: dict[str, Any], expected: KeyFamily) -> None:
    kty = _string_field(jwk, "kty")
    if kty != expected:
        raise KeyMaterialError(
            f"expected attribute 'kty' to be '{expected}' but found '{kty}'"
        )


def _resolve_ec(alg: SigningAlgorithm, jwk: dict[str, Any]) -> PublicKeyMaterial:
    _check_key_type(jwk, KeyFamily.EC)
    crv = _string_field(jwk, "crv")
    if crv not in _CURVES:
        raise KeyMaterialError(f"elliptic curve '{crv}' not supported")
    expected = ALGORITHM_CURVE[alg]
    if crv != expected:
        raise KeyMaterialError(
            f"expected curve '{expected}' for signing algorithm '{alg}' "
            f"but found '{crv}'"
        )

    echo = EcPublicJwk(
        crv=crv, x=_string_field(jwk, "x"), y=_string_field(jwk, "y")
    )
    numbers = ec.EllipticCurvePublicNumbers(
        _uint_field(jwk, "x"), _uint_field(jwk, "y"), _CURVES[crv]
    )
    try:
        key = numbers.public_key()
    except ValueError as exc:
        raise KeyMaterialError(f"invalid point on curve '{crv}': {exc}") from exc
    return PublicKeyMaterial(algorithm=alg, jwk=echo, key=key)


def _resolve_rsa(alg: SigningAlgorithm, jwk: dict[str, Any]) -> PublicKeyMaterial:
    _check_key_type(jwk, KeyFamily.RSA)
    e_raw = base64url_decode(_string_field(jwk, "e"))
    if len(e_raw) > RSA_EXPONENT_MAX_BYTES:
        raise KeyMaterialError("RSA exponent does not fit 32 bits")
    exponent = int.from_bytes(e_raw, byteorder="big")
    modulus = _uint_field(jwk, "n")

    echo = RsaPublicJwk(n=_string_field(jwk, "n"), e=_string_field(jwk, "e"))
    try:
        key = rsa.RSAPublicNumbers(exponent, modulus).public_key()
    except (ValueError, CryptoUnsupportedAlgorithm) as exc:
        raise KeyMaterialError(f"invalid RSA public key: {exc}") from exc
    return PublicKeyMaterial(algorithm=alg, jwk=echo, key=key)


def _resolve_okp(alg: SigningAlgorithm, jwk: dict[str, Any]) -> PublicKeyMaterial:
    _check_key_type(jwk, KeyFamily.OKP)
    crv = _string_field(jwk, "crv")
    if crv != ED25519_CURVE:
        raise KeyMaterialError(f"expected curve '{ED25519_CURVE}' but found '{crv}'")
    x = _string_field(jwk, "x")
    raw = base64url_decode(x)
    if len(raw) != ED25519_KEY_BYTES:
        raise KeyMaterialError("Ed25519 public key must be 32 bytes")

    try:
        key = ed25519.Ed25519PublicKey.from_public_bytes(raw)
    except ValueError as exc:
        raise KeyMaterialError(f"invalid Ed25519 public key: {exc}") from exc
    return PublicKeyMaterial(algorithm=alg, jwk=OkpPublicJwk(crv=crv, x=x), key=key)


_RESOLVERS = {
    KeyFamily.EC: _resolve_ec,
    KeyFamily.RSA: _resolve_rsa,
    KeyFamily.OKP: _resolve_okp,
}


def resolve_public_key(alg: object, jwk: object) -> PublicKeyMaterial:
    """Resolve a client JWK into a public key for the declared algorithm.

    The algorithm family decides which key shape is expected; the JWK
    must match it exactly (``kty`` and, for EC, the curve pinned to the
    algorithm). The returned material keeps the client's base64url field
    strings untouched so they can be echoed in the ``cnf`` claim.
    """
    algorithm = parse_algorithm(alg)
    if not isinstance(jwk, dict):
        raise KeyMaterialError("jwk must be a JSON object")
    return _RESOLVERS[ALGORITHM_FAMILY[algorithm]](algorithm, jwk)
