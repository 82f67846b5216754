"""Typed readers for loosely-typed JSON claims."""

import math
from collections.abc import Mapping
from typing import Any

from ict.core.errors import ClaimDecodeError

# Claims the service always sets itself; never copied from upstream.
RESERVED_CLAIMS = frozenset({"iss", "nonce", "iat", "nbf", "exp", "cnf", "jti", "ctx"})


def decode_numeric_claim(value: Any) -> int:
    """Read an integer from a JSON claim value.

    Accepted representations, tried in this order: ``int``, finite
    ``float`` (truncated toward zero), ``str`` holding an integer or a
    decimal literal. Booleans are rejected even though they are ints.
    """
    if isinstance(value, bool):
        raise ClaimDecodeError("boolean is not a numeric claim")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ClaimDecodeError(f"non-finite numeric claim {value!r}")
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            parsed = float(text)
        except ValueError as exc:
            raise ClaimDecodeError(f"'{value}' is not a number") from exc
        return decode_numeric_claim(parsed)
    raise ClaimDecodeError(
        f"claim of type '{type(value).__name__}' is not a number"
    )


def select_claims(
    identity: Mapping[str, Any], requested: Any
) -> dict[str, Any]:
    """Pick the identity claims the client asked for.

    ``requested`` is the space-delimited ``token_claims`` value; anything
    that is not a string means "all claims". Names absent from the
    identity are dropped silently.
    """
    if isinstance(requested, str):
        names = [n for n in requested.split(" ") if n]
        selected = {n: identity[n] for n in names if n in identity}
    else:
        selected = dict(identity)
    return {k: v for k, v in selected.items() if k not in RESERVED_CLAIMS}


def audience_contains(aud: Any, issuer: str) -> bool:
    if isinstance(aud, str):
        return aud == issuer
    if isinstance(aud, list):
        return issuer in aud
    return False
