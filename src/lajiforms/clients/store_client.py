"""HTTP client of the form storage service."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx

from lajiforms import logger
from lajiforms.caching import HasCaches
from lajiforms.exceptions import StoreError
from lajiforms.settings import build_httpx_client_kwargs

if TYPE_CHECKING:
    from lajiforms.settings import Settings

_FORM_ENDPOINT = "/form"
_LIST_PAGE_SIZE = 10000


def _raise_for_store_error(response: httpx.Response, payload: Any) -> None:
    """Raise `StoreError` for error statuses, whether sent as HTTP status or in the body.

    Raises:
        StoreError: When the store reported an error.
    """
    body_status = payload.get("status") if isinstance(payload, dict) else None
    if isinstance(body_status, int) and body_status > 400:
        raise StoreError(status=body_status, store_error=str(payload.get("error") or ""))
    if response.status_code >= 400:
        error = payload.get("error") if isinstance(payload, dict) else None
        raise StoreError(status=response.status_code, store_error=str(error or response.reason_phrase))


class StoreService(HasCaches):
    """Form storage with memoized reads invalidated on mutation."""

    def __init__(self, settings: Settings, *, client: httpx.AsyncClient | None = None) -> None:
        """Initialize store client.

        Args:
            settings (Settings): Runtime settings.
            client (httpx.AsyncClient | None): Preconfigured HTTP client.
        """
        super().__init__()
        self._settings = settings
        self._client = client
        self._forms_by_id: dict[str, dict[str, Any]] = {}
        self._get_forms = self.memoize("store.forms", self._fetch_forms)
        self._get_form = self.memoize("store.form", self._fetch_form)

    @property
    def client(self) -> httpx.AsyncClient:
        """HTTP client, created on first use."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                **build_httpx_client_kwargs(self._settings, base_url=self._settings.store_base_url),
            )
        return self._client

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        headers = {"Authorization": self._settings.store_auth} if self._settings.store_auth else {}
        response = await self.client.request(
            method,
            f"{_FORM_ENDPOINT}{url}",
            params=params,
            json=json,
            headers=headers,
        )
        try:
            payload = response.json()
        except ValueError:
            payload = None
        logger.debug("Store request", extra={"method": method, "url": url, "status": response.status_code})
        _raise_for_store_error(response, payload)
        return payload

    async def _fetch_forms(self) -> list[dict[str, Any]]:
        payload = await self._request("GET", "/", params={"page_size": _LIST_PAGE_SIZE})
        forms = list(payload.get("member") or [])
        self._forms_by_id = {form["id"]: form for form in forms if isinstance(form.get("id"), str)}
        return forms

    async def _fetch_form(self, form_id: str) -> dict[str, Any]:
        if form_id in self._forms_by_id:
            return self._forms_by_id[form_id]
        return await self._request("GET", f"/{form_id}")

    async def get_forms(self) -> list[dict[str, Any]]:
        """Return every stored form."""
        return await self._get_forms()

    async def get_form(self, form_id: str) -> dict[str, Any]:
        """Return one stored form.

        Raises:
            StoreError: When the form does not exist or the store fails.
        """
        return await self._get_form(form_id)

    async def create_form(self, form: dict[str, Any]) -> dict[str, Any]:
        """Store a new form."""
        created = await self._request("POST", "/", json=form)
        self._invalidate()
        logger.info("Form created", extra={"form_id": created.get("id") if isinstance(created, dict) else None})
        return created

    async def update_form(self, form_id: str, form: dict[str, Any]) -> dict[str, Any]:
        """Replace a stored form."""
        updated = await self._request("PUT", f"/{form_id}", json=form)
        self._invalidate(form_id)
        logger.info("Form updated", extra={"form_id": form_id})
        return updated

    async def delete_form(self, form_id: str) -> dict[str, Any]:
        """Delete a stored form."""
        deleted = await self._request("DELETE", f"/{form_id}")
        self._invalidate(form_id)
        logger.info("Form deleted", extra={"form_id": form_id})
        return deleted

    def _invalidate(self, form_id: str | None = None) -> None:
        if form_id is not None:
            self._get_form.delete(form_id)
            self._forms_by_id.pop(form_id, None)
        self._get_forms.clear()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
