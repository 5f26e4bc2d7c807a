# NetXMS Query Bridge
# File: tests/test_router.py
# Version: v1
#
# Batch dispatch tests. `_make_client` is patched so every query talks to an
# httpx.MockTransport instead of a real NetXMS server.

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
import json
from typing import Any, Dict, List

import httpx
import pytest

from netxms_bridge import router
from netxms_bridge.client import NetXMSClient
from netxms_bridge.errors import Status
from netxms_bridge.models import DataQuery, QueryDataRequest, TimeRange

SETTINGS = {
    "jsonData": {"serverAddress": "http://netxms.test:8000/"},
    "decryptedSecureJsonData": {"apiKey": "test-key"},
}

ALARM = {
    "Id": 1,
    "Severity": "Critical",
    "State": "Outstanding",
    "Source": "Test Source",
    "Message": "Test Alarm",
    "Count": 1,
    "Ack/Resolve by": "Test User",
    "Created": "2025-03-01T10:00:00Z",
    "Last Change": "2025-03-01T10:00:00Z",
}


class _FakeServer:
    """Records requests and answers them from a path -> handler table."""

    def __init__(self, routes: Dict[str, Any]) -> None:
        self.routes = routes
        self.requests: List[httpx.Request] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.headers.get("Authorization") != "Bearer test-key":
            return httpx.Response(401, text="Unauthorized")
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"reason": "no such endpoint"})
        if callable(route):
            result = route(request)
            if asyncio.iscoroutine(result):
                result = await result
            return result
        return httpx.Response(200, json=route)

    def bodies(self) -> List[Any]:
        return [json.loads(r.content) if r.content else None for r in self.requests]


def _install(monkeypatch, server: _FakeServer) -> None:
    transport = httpx.MockTransport(server)
    monkeypatch.setattr(
        router,
        "_make_client",
        lambda settings: NetXMSClient(settings=settings, transport=transport),
    )


def _query(ref_id: str, query_type: str, payload: Any, **kwargs) -> DataQuery:
    raw = payload if isinstance(payload, (str, bytes)) else json.dumps(payload)
    return DataQuery(ref_id=ref_id, query_type=query_type, json=raw, **kwargs)


@pytest.mark.asyncio
async def test_alarm_query_returns_alarm_frame(monkeypatch):
    server = _FakeServer({"/v1/grafana/infinity/alarms": [ALARM]})
    _install(monkeypatch, server)

    resp = await router.query_data(
        QueryDataRequest(
            queries=[_query("A", "alarms", {"sourceObjectId": "123"})],
            instance_settings=SETTINGS,
        )
    )

    result = resp.responses["A"]
    assert result.error is None
    assert len(result.frames) == 1
    assert result.frames[0].name == "alarms"
    assert len(result.frames[0].columns) == 9
    assert server.bodies() == [{"rootObjectId": 123}]


@pytest.mark.asyncio
async def test_alarm_query_without_root_object_sends_empty_body(monkeypatch):
    server = _FakeServer({"/v1/grafana/infinity/alarms": []})
    _install(monkeypatch, server)

    await router.query_data(
        QueryDataRequest(queries=[_query("A", "alarms", {})], instance_settings=SETTINGS)
    )
    assert server.bodies() == [{}]


@pytest.mark.asyncio
async def test_malformed_query_json_only_fails_that_query(monkeypatch):
    server = _FakeServer({"/v1/grafana/infinity/alarms": [ALARM]})
    _install(monkeypatch, server)

    resp = await router.query_data(
        QueryDataRequest(
            queries=[
                _query("A", "alarms", {}),
                _query("B", "alarms", '{"sourceObjectId": '),
                _query("C", "alarms", {}),
            ],
            instance_settings=SETTINGS,
        )
    )

    assert set(resp.responses) == {"A", "B", "C"}
    assert resp.responses["A"].ok and resp.responses["C"].ok
    assert resp.responses["B"].status is Status.BAD_REQUEST
    assert resp.responses["B"].frames == []
    assert len(server.requests) == 2


@pytest.mark.asyncio
async def test_401_is_reported_as_invalid_api_key(monkeypatch):
    def unauthorized(request):
        return httpx.Response(401, json={"reason": "something else entirely"})

    server = _FakeServer({"/v1/grafana/infinity/summary-table": unauthorized})
    _install(monkeypatch, server)

    resp = await router.query_data(
        QueryDataRequest(
            queries=[
                _query("A", "summaryTables", {"sourceObjectId": "2", "summaryTableId": "7"})
            ],
            instance_settings=SETTINGS,
        )
    )

    result = resp.responses["A"]
    assert result.status is Status.UNAUTHORIZED
    assert result.error == "Unauthorized: Invalid API key"


@pytest.mark.asyncio
async def test_unknown_query_type_is_unsupported(monkeypatch):
    server = _FakeServer({})
    _install(monkeypatch, server)

    resp = await router.query_data(
        QueryDataRequest(queries=[_query("A", "topology", {})], instance_settings=SETTINGS)
    )

    result = resp.responses["A"]
    assert result.status is Status.NOT_IMPLEMENTED
    assert result.frames == []
    assert server.requests == []


@pytest.mark.asyncio
async def test_settings_failure_is_reported_per_query(monkeypatch):
    server = _FakeServer({})
    _install(monkeypatch, server)

    resp = await router.query_data(
        QueryDataRequest(
            queries=[_query("A", "alarms", {})],
            instance_settings={"jsonData": "{broken"},
        )
    )
    assert "failed to load plugin settings" in resp.responses["A"].error


@pytest.mark.asyncio
async def test_summary_table_query_shapes_dynamic_table(monkeypatch):
    rows = [
        {"Node": "web-01", "CPU": 12, "Online": True},
        {"Node": "db-01", "CPU": 55.5, "Online": False},
    ]
    server = _FakeServer({"/v1/grafana/infinity/summary-table": rows})
    _install(monkeypatch, server)

    resp = await router.query_data(
        QueryDataRequest(
            queries=[
                _query("A", "summaryTables", {"sourceObjectId": "2", "summaryTableId": "7"})
            ],
            instance_settings=SETTINGS,
        )
    )

    frame = resp.responses["A"].frames[0]
    assert frame.name == "summaryTable"
    assert frame.column_names == ["Node", "CPU", "Online"]
    assert server.bodies() == [{"tableId": 7, "rootObjectId": 2}]


@pytest.mark.asyncio
async def test_summary_table_requires_table_id(monkeypatch):
    server = _FakeServer({})
    _install(monkeypatch, server)

    resp = await router.query_data(
        QueryDataRequest(
            queries=[_query("A", "summaryTables", {"sourceObjectId": "2"})],
            instance_settings=SETTINGS,
        )
    )
    assert resp.responses["A"].error == "missing required field: summaryTableId"
    assert server.requests == []


@pytest.mark.asyncio
async def test_object_query_forwards_query_parameters(monkeypatch):
    server = _FakeServer({"/v1/grafana/infinity/object-query": [{"name": "n1", "ip": "10.0.0.1"}]})
    _install(monkeypatch, server)

    params = [{"key": "threshold", "value": "80"}, {"key": "zone", "value": 3}]
    resp = await router.query_data(
        QueryDataRequest(
            queries=[
                _query(
                    "A",
                    "objectQueries",
                    {"objectQueryId": "5", "queryParameters": json.dumps(params)},
                )
            ],
            instance_settings=SETTINGS,
        )
    )

    assert resp.responses["A"].ok
    assert resp.responses["A"].frames[0].name == "objectQuery"
    assert server.bodies() == [{"queryId": 5, "queryParameters": params}]


@pytest.mark.asyncio
async def test_object_query_with_malformed_parameters_is_bad_request(monkeypatch):
    server = _FakeServer({})
    _install(monkeypatch, server)

    resp = await router.query_data(
        QueryDataRequest(
            queries=[
                _query("A", "objectQueries", {"objectQueryId": "5", "queryParameters": "[{"}),
                _query("B", "objectQueries", {"objectQueryId": "5", "queryParameters": '{"a": 1}'}),
            ],
            instance_settings=SETTINGS,
        )
    )

    assert resp.responses["A"].status is Status.BAD_REQUEST
    assert resp.responses["B"].status is Status.BAD_REQUEST
    assert server.requests == []


@pytest.mark.asyncio
async def test_empty_table_result_is_bad_request(monkeypatch):
    server = _FakeServer({"/v1/grafana/infinity/object-query": []})
    _install(monkeypatch, server)

    resp = await router.query_data(
        QueryDataRequest(
            queries=[_query("A", "objectQueries", {"objectQueryId": "5"})],
            instance_settings=SETTINGS,
        )
    )
    assert "empty array" in resp.responses["A"].error


@pytest.mark.asyncio
async def test_object_status_returns_frame_per_object(monkeypatch):
    server = _FakeServer(
        {
            "/v1/grafana/infinity/object-status": [
                {"name": "web-01", "status": 0},
                {"name": "db-01", "status": 3},
            ]
        }
    )
    _install(monkeypatch, server)

    resp = await router.query_data(
        QueryDataRequest(
            queries=[_query("A", "objectStatus", {"sourceObjectId": "2"})],
            instance_settings=SETTINGS,
        )
    )

    assert [f.name for f in resp.responses["A"].frames] == ["web-01", "db-01"]
    assert server.bodies() == [{"rootObjectId": 2}]


@pytest.mark.asyncio
async def test_dci_values_request_uses_unix_date_time_range(monkeypatch):
    history = {
        "description": "Ping RTT",
        "unitName": "ms",
        "values": [{"timestamp": "2025-03-01T10:00:00Z", "value": "4.2"}],
    }
    server = _FakeServer({"/v1/objects/12/data-collection/34/history": history})
    _install(monkeypatch, server)

    time_range = TimeRange(
        from_=datetime(2025, 3, 1, 9, 0, 0, tzinfo=timezone.utc),
        to=datetime(2025, 3, 1, 10, 30, 0, tzinfo=timezone.utc),
    )
    resp = await router.query_data(
        QueryDataRequest(
            queries=[
                _query("A", "dciValues", {"sourceObjectId": "12", "dciId": "34"}, time_range=time_range)
            ],
            instance_settings=SETTINGS,
        )
    )

    frame = resp.responses["A"].frames[0]
    assert frame.name == "Ping RTT"
    assert frame.column("value").values == [4.2]

    params = server.requests[0].url.params
    assert server.requests[0].method == "GET"
    assert params["timeFrom"] == "Sat Mar  1 09:00:00 UTC 2025"
    assert params["timeTo"] == "Sat Mar  1 10:30:00 UTC 2025"


@pytest.mark.asyncio
async def test_bad_dci_row_fails_only_its_query(monkeypatch):
    good = {"description": "ok", "unitName": "", "values": []}
    bad = {"description": "bad", "unitName": "", "values": [{"timestamp": "nope", "value": "1"}]}
    server = _FakeServer(
        {
            "/v1/objects/1/data-collection/1/history": good,
            "/v1/objects/1/data-collection/2/history": bad,
        }
    )
    _install(monkeypatch, server)

    time_range = TimeRange(
        from_=datetime(2025, 1, 1, tzinfo=timezone.utc),
        to=datetime(2025, 1, 2, tzinfo=timezone.utc),
    )
    resp = await router.query_data(
        QueryDataRequest(
            queries=[
                _query("A", "dciValues", {"sourceObjectId": "1", "dciId": "2"}, time_range=time_range),
                _query("B", "dciValues", {"sourceObjectId": "1", "dciId": "1"}, time_range=time_range),
            ],
            instance_settings=SETTINGS,
        )
    )

    assert resp.responses["A"].status is Status.BAD_REQUEST
    assert resp.responses["B"].ok


@pytest.mark.asyncio
async def test_transport_failure_is_scoped_to_query(monkeypatch):
    calls = {"n": 0}

    def flaky(request):
        calls["n"] += 1
        if calls["n"] == 1:
            raise httpx.ConnectError("refused", request=request)
        return httpx.Response(200, json=[])

    server = _FakeServer({"/v1/grafana/infinity/alarms": flaky})
    _install(monkeypatch, server)

    resp = await router.query_data(
        QueryDataRequest(
            queries=[_query("A", "alarms", {}), _query("B", "alarms", {})],
            instance_settings=SETTINGS,
        )
    )

    assert "failed to connect to server" in resp.responses["A"].error
    assert resp.responses["B"].ok


@pytest.mark.asyncio
async def test_cancel_event_stops_the_batch(monkeypatch):
    cancel = asyncio.Event()

    async def slow(request):
        cancel.set()
        await asyncio.sleep(30)
        return httpx.Response(200, json=[])

    server = _FakeServer(
        {
            "/v1/grafana/infinity/alarms": [ALARM],
            "/v1/grafana/infinity/object-status": slow,
        }
    )
    _install(monkeypatch, server)

    resp = await asyncio.wait_for(
        router.query_data(
            QueryDataRequest(
                queries=[
                    _query("A", "alarms", {}),
                    _query("B", "objectStatus", {"sourceObjectId": "2"}),
                    _query("C", "alarms", {}),
                ],
                instance_settings=SETTINGS,
            ),
            cancel_event=cancel,
        ),
        timeout=5,
    )

    assert resp.responses["A"].ok
    assert resp.responses["B"].status is Status.CANCELLED
    assert resp.responses["C"].status is Status.CANCELLED
    assert len(server.requests) == 2


HUGE_INT_BODY = b'[{"v": 1' + b"0" * 400 + b"}]"
DEEP_BODY = b"[" * 100000 + b"]" * 100000


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [HUGE_INT_BODY, DEEP_BODY], ids=["huge-int", "deep-nesting"])
async def test_undecodable_table_body_fails_only_its_query(monkeypatch, body):
    server = _FakeServer(
        {
            "/v1/grafana/infinity/alarms": [ALARM],
            "/v1/grafana/infinity/summary-table": lambda request: httpx.Response(
                200, content=body
            ),
        }
    )
    _install(monkeypatch, server)

    resp = await router.query_data(
        QueryDataRequest(
            queries=[
                _query("A", "alarms", {}),
                _query("B", "summaryTables", {"sourceObjectId": "2", "summaryTableId": "7"}),
                _query("C", "alarms", {}),
            ],
            instance_settings=SETTINGS,
        )
    )

    assert set(resp.responses) == {"A", "B", "C"}
    assert resp.responses["A"].ok and resp.responses["C"].ok
    assert resp.responses["B"].status is Status.BAD_REQUEST
    assert resp.responses["B"].frames == []


@pytest.mark.asyncio
async def test_deeply_nested_query_payload_is_bad_request(monkeypatch):
    server = _FakeServer({"/v1/grafana/infinity/alarms": [ALARM]})
    _install(monkeypatch, server)

    resp = await router.query_data(
        QueryDataRequest(
            queries=[_query("A", "alarms", DEEP_BODY), _query("B", "alarms", {})],
            instance_settings=SETTINGS,
        )
    )

    assert resp.responses["A"].status is Status.BAD_REQUEST
    assert resp.responses["B"].ok


@pytest.mark.asyncio
async def test_unexpected_handler_error_is_internal_and_scoped(monkeypatch):
    async def broken(client, query, model):
        raise RuntimeError("boom")

    server = _FakeServer({"/v1/grafana/infinity/alarms": [ALARM]})
    _install(monkeypatch, server)
    monkeypatch.setitem(router.QUERY_HANDLERS, "objectStatus", broken)

    resp = await router.query_data(
        QueryDataRequest(
            queries=[
                _query("A", "alarms", {}),
                _query("B", "objectStatus", {"sourceObjectId": "2"}),
                _query("C", "alarms", {}),
            ],
            instance_settings=SETTINGS,
        )
    )

    assert resp.responses["A"].ok and resp.responses["C"].ok
    assert resp.responses["B"].status is Status.INTERNAL
    assert "boom" in resp.responses["B"].error
