"""Tests for RealHttpClient against an in-process httpx transport."""

from collections.abc import Callable

import httpx
import pytest

from codehash.core.http.real import RealHttpClient

BASE = "https://cdn.example.com"


def _client(handler: Callable[[httpx.Request], httpx.Response]) -> RealHttpClient:
    return RealHttpClient(timeout=2.0, transport=httpx.MockTransport(handler))


def test_stream_yields_full_body() -> None:
    body = bytes(range(256)) * 1000

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "GET"
        return httpx.Response(200, content=body)

    assert b"".join(_client(handler).stream(f"{BASE}/app.bin")) == body


def test_stream_follows_redirects() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/latest":
            return httpx.Response(302, headers={"Location": f"{BASE}/v2/app.bin"})
        return httpx.Response(200, content=b"v2")

    assert b"".join(_client(handler).stream(f"{BASE}/latest")) == b"v2"


def test_error_status_is_reported_with_uri() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404)

    with pytest.raises(RuntimeError) as exc_info:
        b"".join(_client(handler).stream(f"{BASE}/missing.bin"))

    assert f"Failed to fetch {BASE}/missing.bin" in str(exc_info.value)
    assert "Status: 404 Not Found" in str(exc_info.value)


def test_timeout_is_reported() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("read timed out", request=request)

    with pytest.raises(RuntimeError, match=r"Timed out after 2.0s fetching"):
        b"".join(_client(handler).stream(f"{BASE}/slow.bin"))


def test_connection_failure_is_reported() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(RuntimeError, match="ConnectError: connection refused"):
        b"".join(_client(handler).stream(f"{BASE}/app.bin"))
