"""HTTP client of the metadata catalog and taxonomy API."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx

from lajiforms import logger
from lajiforms.settings import build_httpx_client_kwargs

if TYPE_CHECKING:
    from lajiforms.settings import Settings


class ApiClient:
    """JSON client for the metadata and taxonomy endpoints.

    HTTP errors propagate as `httpx.HTTPStatusError`; retries belong to the
    caller.
    """

    def __init__(self, settings: Settings, *, client: httpx.AsyncClient | None = None) -> None:
        """Initialize client.

        Args:
            settings (Settings): Runtime settings.
            client (httpx.AsyncClient | None): Preconfigured HTTP client.
        """
        self._settings = settings
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        """HTTP client, created on first use."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                **build_httpx_client_kwargs(self._settings, base_url=self._settings.api_base_url),
                limits=httpx.Limits(max_connections=self._settings.max_connections),
            )
        return self._client

    def _base_query(self) -> dict[str, Any]:
        if self._settings.api_access_token:
            return {"access_token": self._settings.api_access_token}
        return {}

    async def fetch_json(self, path: str, query: dict[str, Any] | None = None) -> Any:
        """Fetch one JSON document.

        Args:
            path (str): API path, e.g. `/metadata/alts`.
            query (dict[str, Any] | None): Query parameters.

        Returns:
            Any: Decoded JSON payload.
        """
        params = {**self._base_query(), **_encode_query(query or {})}
        response = await self.client.get(path, params=params)
        logger.debug("API request", extra={"path": path, "status": response.status_code})
        response.raise_for_status()
        return response.json()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def _encode_query(query: dict[str, Any]) -> dict[str, Any]:
    """Encode list and boolean query values the way the API expects."""
    encoded: dict[str, Any] = {}
    for key, value in query.items():
        if value is None:
            continue
        if isinstance(value, bool):
            encoded[key] = "true" if value else "false"
        elif isinstance(value, list | tuple):
            encoded[key] = ",".join(str(item) for item in value)
        else:
            encoded[key] = value
    return encoded
