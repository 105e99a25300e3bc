"""Collaborator interfaces."""

from __future__ import annotations

from typing import Any, Protocol


class CatalogClient(Protocol):
    """Client of the metadata catalog and taxonomy API."""

    async def fetch_json(self, path: str, query: dict[str, Any] | None = None) -> Any:
        """Fetch one JSON document.

        Args:
            path: API path, e.g. `/metadata/alts`.
            query: Optional query parameters.

        Returns:
            Any: Decoded JSON payload.
        """


class FormStore(Protocol):
    """Form storage lookups needed for inheritance resolution."""

    async def get_form(self, form_id: str) -> dict[str, Any]:
        """Fetch a stored master by id.

        Args:
            form_id: Form identifier.

        Returns:
            dict[str, Any]: The stored master.
        """
