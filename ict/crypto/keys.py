"""Signing key loading and public JWK conversion."""

import base64
from pathlib import Path
from typing import Any

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa

from ict.core.errors import ConfigurationError
from ict.crypto.types import (
    ALGORITHM_CURVE,
    ALGORITHM_FAMILY,
    JWKEntry,
    KeyFamily,
    PublicKey,
    SigningAlgorithm,
)

PrivateKey = ec.EllipticCurvePrivateKey | rsa.RSAPrivateKey | ed25519.Ed25519PrivateKey

_EC_CURVE_NAMES = {"secp256r1": "P-256", "secp384r1": "P-384", "secp521r1": "P-521"}


def _int_to_base64url(value: int, length: int | None = None) -> str:
    """Encode an integer as base64url without padding."""
    byte_length = length or (value.bit_length() + 7) // 8
    raw = value.to_bytes(byte_length, byteorder="big")
    return _bytes_to_base64url(raw)


def _bytes_to_base64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def _check_family(key: PrivateKey, alg: SigningAlgorithm) -> None:
    family = ALGORITHM_FAMILY[alg]
    if family is KeyFamily.EC:
        if not isinstance(key, ec.EllipticCurvePrivateKey):
            raise ConfigurationError(f"signing algorithm '{alg}' needs an EC key")
        curve = _EC_CURVE_NAMES.get(key.curve.name)
        if curve != ALGORITHM_CURVE[alg]:
            raise ConfigurationError(
                f"signing algorithm '{alg}' needs curve '{ALGORITHM_CURVE[alg]}'"
            )
    elif family is KeyFamily.RSA:
        if not isinstance(key, rsa.RSAPrivateKey):
            raise ConfigurationError(f"signing algorithm '{alg}' needs an RSA key")
    elif not isinstance(key, ed25519.Ed25519PrivateKey):
        raise ConfigurationError(f"signing algorithm '{alg}' needs an Ed25519 key")


def load_private_key(
    path: str, alg: SigningAlgorithm, password: str = ""
) -> PrivateKey:
    """Load a PEM private key from disk and check it suits ``alg``."""
    try:
        pem = Path(path).read_bytes()
    except OSError as exc:
        raise ConfigurationError(f"failed to read private key file: {exc}") from exc
    try:
        key = serialization.load_pem_private_key(
            pem, password=password.encode() if password else None
        )
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise ConfigurationError(f"failed to parse private key: {exc}") from exc
    if not isinstance(
        key, ec.EllipticCurvePrivateKey | rsa.RSAPrivateKey | ed25519.Ed25519PrivateKey
    ):
        raise ConfigurationError(f"unsupported private key type '{type(key).__name__}'")
    _check_family(key, alg)
    return key


def public_key_to_jwk(public_key: PublicKey) -> dict[str, Any]:
    """Convert a public key to its bare JWK members."""
    if isinstance(public_key, ec.EllipticCurvePublicKey):
        numbers = public_key.public_numbers()
        size = (public_key.curve.key_size + 7) // 8
        return {
            "kty": "EC",
            "crv": _EC_CURVE_NAMES[public_key.curve.name],
            "x": _int_to_base64url(numbers.x, size),
            "y": _int_to_base64url(numbers.y, size),
        }
    if isinstance(public_key, rsa.RSAPublicKey):
        numbers = public_key.public_numbers()
        return {
            "kty": "RSA",
            "n": _int_to_base64url(numbers.n),
            "e": _int_to_base64url(numbers.e),
        }
    raw = public_key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    return {"kty": "OKP", "crv": "Ed25519", "x": _bytes_to_base64url(raw)}


def jwk_entry(private_key: PrivateKey, kid: str, alg: SigningAlgorithm) -> JWKEntry:
    """Public JWKS entry for the service signing key."""
    return JWKEntry(alg=alg.value, kid=kid, **public_key_to_jwk(private_key.public_key()))
