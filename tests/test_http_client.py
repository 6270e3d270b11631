from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from cineflix.core.http_client import ServiceCallError, ServiceClient, api_call


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_api_call_returns_json_and_sets_content_type() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    async def run():
        return await api_call(
            _client(handler),
            "POST",
            "http://svc.test/api/things",
            json={"a": 1},
            headers={"X-Trace": "abc"},
        )

    assert asyncio.run(run()) == {"ok": True}
    assert seen[0].headers["content-type"] == "application/json"
    assert seen[0].headers["x-trace"] == "abc"
    assert json.loads(seen[0].content) == {"a": 1}


def test_api_call_raises_with_status_on_non_2xx() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"detail": "nope"})

    with pytest.raises(ServiceCallError) as excinfo:
        asyncio.run(api_call(_client(handler), "GET", "http://svc.test/missing"))

    err = excinfo.value
    assert err.status_code == 404
    assert err.url == "http://svc.test/missing"
    assert "status: 404" in str(err)
    assert err.is_transient is False


def test_api_call_wraps_transport_errors_without_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    with pytest.raises(ServiceCallError) as excinfo:
        asyncio.run(api_call(_client(handler), "GET", "http://svc.test/health"))

    assert excinfo.value.status_code is None
    assert excinfo.value.is_transient is True


def test_server_errors_are_transient() -> None:
    assert ServiceCallError("x", status_code=503).is_transient
    assert ServiceCallError("x", status_code=429).is_transient
    assert not ServiceCallError("x", status_code=400).is_transient


def test_api_call_rejects_non_json_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>oops</html>")

    with pytest.raises(ServiceCallError, match="Invalid JSON"):
        asyncio.run(api_call(_client(handler), "GET", "http://svc.test/"))


def test_service_client_joins_base_url_and_checks_health() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, json={"status": "healthy"})

    svc = ServiceClient(_client(handler), "http://svc.test/")
    assert svc.base_url == "http://svc.test"
    assert asyncio.run(svc.health_check()) == {"status": "healthy"}
    assert seen == ["http://svc.test/health"]
