from __future__ import annotations

import httpx
import pytest

from lajiforms.async_runner import run_async
from lajiforms.clients.api_client import ApiClient
from lajiforms.settings import Settings


def _client(handler, *, token: str | None = "secret") -> ApiClient:
    settings = Settings(api_access_token=token)
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="https://api.test/v0")
    return ApiClient(settings, client=http_client)


def test_fetch_json_encodes_query_and_adds_access_token() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"results": [{"id": "MX.1"}]})

    client = _client(handler)
    payload = run_async(
        client.fetch_json(
            "/taxa",
            {"taxonSets": ["MX.a", "MX.b"], "onlyFinnish": True, "pageSize": 1000, "lang": None},
        ),
    )

    assert payload == {"results": [{"id": "MX.1"}]}
    params = seen[0].url.params
    assert seen[0].url.path == "/v0/taxa"
    assert params["access_token"] == "secret"
    assert params["taxonSets"] == "MX.a,MX.b"
    assert params["onlyFinnish"] == "true"
    assert params["pageSize"] == "1000"
    assert "lang" not in params


def test_fetch_json_without_token() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert "access_token" not in request.url.params
        return httpx.Response(200, json=[])

    assert run_async(_client(handler, token=None).fetch_json("/metadata/alts/MX.secureLevels")) == []


def test_fetch_json_raises_on_http_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"error": "unavailable"})

    with pytest.raises(httpx.HTTPStatusError):
        run_async(_client(handler).fetch_json("/metadata/classes"))
