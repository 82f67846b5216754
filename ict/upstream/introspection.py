"""End-to-end authentication contexts from token introspection."""

import httpx

from ict.core.errors import UpstreamAuthFailed, UpstreamUnavailable

HTTP_OK = 200


def contexts_from_scope(scope: object, prefix: str) -> list[str]:
    """Scope entries carrying ``prefix``, with the prefix removed."""
    if not isinstance(scope, str):
        return []
    return [
        entry[len(prefix) :]
        for entry in scope.split(" ")
        if entry.startswith(prefix) and len(entry) > len(prefix)
    ]


class ContextIntrospector:
    """Asks the provider which contexts the bearer token was authorized for."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        endpoint: str,
        credentials: str,
        prefix: str,
        host: str = "",
    ) -> None:
        self._http = http
        self._endpoint = endpoint
        self._credentials = credentials
        self._prefix = prefix
        self._host = host

    async def authorized_contexts(self, bearer_token: str) -> list[str]:
        headers = {"Authorization": f"Basic {self._credentials}"}
        if self._host:
            headers["Host"] = self._host

        try:
            response = await self._http.post(
                self._endpoint, data={"token": bearer_token}, headers=headers
            )
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(
                f"failed to send introspection request to '{self._endpoint}': {exc}"
            ) from exc
        if response.status_code != HTTP_OK:
            raise UpstreamUnavailable(
                f"introspection endpoint '{self._endpoint}' answered "
                f"{response.status_code}"
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise UpstreamUnavailable(
                f"failed to parse introspection response: {exc}"
            ) from exc
        if not isinstance(body, dict):
            raise UpstreamUnavailable("introspection response is not a JSON object")
        if body.get("active") is not True:
            raise UpstreamAuthFailed("introspection reports the bearer token inactive")
        return contexts_from_scope(body.get("scope"), self._prefix)
