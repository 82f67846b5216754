"""Identity claims lookup at the upstream userinfo endpoint."""

from typing import Any

import httpx
import structlog

from ict.core.errors import UpstreamAuthFailed, UpstreamUnavailable

logger = structlog.get_logger(__name__)

HTTP_OK = 200
HTTP_UNAUTHORIZED = 401


class UserinfoClient:
    """Fetches the session's identity claims with the caller's bearer token."""

    def __init__(self, http: httpx.AsyncClient, endpoint: str, host: str = "") -> None:
        self._http = http
        self._endpoint = endpoint
        self._host = host

    async def fetch(self, bearer_token: str) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {bearer_token}"}
        if self._host:
            headers["Host"] = self._host

        try:
            response = await self._http.get(self._endpoint, headers=headers)
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(
                f"failed to send userinfo request to '{self._endpoint}': {exc}"
            ) from exc

        if response.status_code == HTTP_UNAUTHORIZED:
            raise UpstreamAuthFailed(
                f"userinfo endpoint '{self._endpoint}' rejected the bearer token"
            )
        if response.status_code != HTTP_OK:
            raise UpstreamUnavailable(
                f"failed to get userinfo response from '{self._endpoint}': "
                f"status code {response.status_code}"
            )

        try:
            claims = response.json()
        except ValueError as exc:
            raise UpstreamUnavailable(f"failed to parse userinfo response: {exc}") from exc
        if not isinstance(claims, dict):
            raise UpstreamUnavailable("userinfo response is not a JSON object")
        return claims
