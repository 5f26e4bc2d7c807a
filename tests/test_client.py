# NetXMS Query Bridge
# File: tests/test_client.py
# Version: v1
#
# Client tests run against httpx.MockTransport; nothing leaves the process.

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from netxms_bridge.client import NetXMSClient, RawResponse, join_url
from netxms_bridge.config import PluginSettings
from netxms_bridge.errors import RemoteError, Status, TransportError


def _run(coro):
    """Helper to run async coroutines in plain pytest tests."""
    return asyncio.run(coro)


def _client(handler, address: str = "http://netxms.test:8000") -> NetXMSClient:
    settings = PluginSettings(server_address=address, api_key="test-key")
    return NetXMSClient(settings=settings, transport=httpx.MockTransport(handler))


@pytest.mark.parametrize(
    "base,path",
    [
        ("http://nx:8000", "/v1/status"),
        ("http://nx:8000/", "/v1/status"),
        ("http://nx:8000/", "v1/status"),
        ("http://nx:8000", "v1/status"),
        ("http://nx:8000//", "//v1/status"),
    ],
)
def test_join_url_uses_single_slash(base, path) -> None:
    assert join_url(base, path) == "http://nx:8000/v1/status"


def test_request_sends_bearer_token_and_json_body() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        seen["content_type"] = request.headers.get("Content-Type")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=[])

    client = _client(handler, address="http://netxms.test:8000/")
    raw = _run(client.request("/v1/grafana/infinity/alarms", "POST", {"rootObjectId": 2}))

    assert raw.status_code == 200
    assert seen["url"] == "http://netxms.test:8000/v1/grafana/infinity/alarms"
    assert seen["auth"] == "Bearer test-key"
    assert seen["content_type"] == "application/json"
    assert seen["body"] == {"rootObjectId": 2}


def test_default_timeout_is_ten_seconds() -> None:
    client = NetXMSClient(settings=PluginSettings(server_address="http://nx", api_key="k"))
    assert client.timeout == 10.0


def test_transport_failure_raises_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportError) as excinfo:
        _run(_client(handler).request("/v1/status"))

    assert "failed to connect to server" in str(excinfo.value)


def test_timeout_raises_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(TransportError):
        _run(_client(handler).call("/v1/status"))


def test_401_is_always_invalid_api_key() -> None:
    raw = RawResponse(status_code=401, content=b'{"reason": "token expired"}')
    with pytest.raises(RemoteError) as excinfo:
        NetXMSClient.check_response(raw)

    assert str(excinfo.value) == "Unauthorized: Invalid API key"
    assert excinfo.value.status is Status.UNAUTHORIZED


def test_non_200_includes_remote_reason() -> None:
    raw = RawResponse(status_code=404, content=b'{"reason": "Object not found"}')
    with pytest.raises(RemoteError) as excinfo:
        NetXMSClient.check_response(raw)

    assert "Object not found" in str(excinfo.value)
    assert excinfo.value.status is Status.NOT_FOUND
    assert excinfo.value.status_code == 404


@pytest.mark.parametrize(
    "status_code,expected",
    [
        (400, Status.BAD_REQUEST),
        (403, Status.FORBIDDEN),
        (500, Status.INTERNAL),
        (503, Status.INTERNAL),
        (302, Status.UNKNOWN),
        (204, Status.UNKNOWN),
    ],
)
def test_non_200_without_reason_is_generic(status_code, expected) -> None:
    raw = RawResponse(status_code=status_code, content=b"<html>oops</html>")
    with pytest.raises(RemoteError) as excinfo:
        NetXMSClient.check_response(raw)

    assert str(excinfo.value) == f"Request error (HTTP {status_code})"
    assert excinfo.value.status is expected


def test_call_returns_body_on_200() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["filter"] == "alarm"
        return httpx.Response(200, content=b'{"objects": []}')

    body = _run(_client(handler).call("/v1/object-list?filter=alarm"))
    assert body == b'{"objects": []}'
