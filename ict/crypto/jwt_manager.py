"""JWT signing with the service key."""

from typing import Any

import jwt

from ict.core.errors import SigningFailed
from ict.crypto.keys import PrivateKey
from ict.crypto.types import SigningAlgorithm


class JWTManager:
    """Signs outbound tokens with the configured key, algorithm and kid."""

    def __init__(
        self,
        private_key: PrivateKey,
        algorithm: SigningAlgorithm,
        kid: str,
        issuer: str,
    ) -> None:
        self._private_key = private_key
        self._algorithm = algorithm
        self._kid = kid
        self._issuer = issuer

    @property
    def algorithm(self) -> SigningAlgorithm:
        return self._algorithm

    @property
    def kid(self) -> str:
        return self._kid

    @property
    def issuer(self) -> str:
        return self._issuer

    @property
    def private_key(self) -> PrivateKey:
        return self._private_key

    def sign(self, payload: dict[str, Any]) -> str:
        """Sign a payload, attaching the key id to the header."""
        try:
            return jwt.encode(
                payload,
                self._private_key,
                algorithm=self._algorithm.value,
                headers={"kid": self._kid},
            )
        except (jwt.PyJWTError, ValueError, TypeError) as exc:
            raise SigningFailed(f"failed to sign token: {exc}") from exc

