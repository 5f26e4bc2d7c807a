# NetXMS Query Bridge
# File: tools/tasks.py
# Version: v1
#
# NOTE: This module is the single place where the query engine is exposed as
# MCP tools. The transports simply call `register_tools(server)`.
# Settings are rebuilt from the environment on every call.

from __future__ import annotations

from typing import Any, Dict, List, Optional
import json

from .. import health, resources, router
from ..config import instance_settings_from_env
from ..models import DataQuery, QueryDataRequest, TimeRange
from ..shapers.timeutil import parse_rfc3339

# Keys of a query dict that are routing data, not part of the query payload.
_ENVELOPE_KEYS = {"refId", "queryType", "timeRange"}


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _make_error(code: str, message: str) -> Dict[str, Any]:
    return {"code": code, "message": message}


def _parse_time_range(raw: Any) -> Optional[TimeRange]:
    if not isinstance(raw, dict):
        return None
    try:
        return TimeRange(from_=parse_rfc3339(raw.get("from")), to=parse_rfc3339(raw.get("to")))
    except ValueError:
        return None


def _to_data_query(index: int, raw: Dict[str, Any]) -> DataQuery:
    """Convert one tool-call query dict into a DataQuery.

    The payload keeps everything except the envelope keys, so the router
    decodes it exactly like a frontend-supplied query.
    """
    payload = {k: v for k, v in raw.items() if k not in _ENVELOPE_KEYS}
    # Frontends send queryParameters as JSON text; tool callers may pass a list.
    if isinstance(payload.get("queryParameters"), list):
        payload["queryParameters"] = json.dumps(payload["queryParameters"])
    return DataQuery(
        ref_id=str(raw.get("refId") or f"Q{index}"),
        query_type=str(raw.get("queryType") or ""),
        json=json.dumps(payload),
        time_range=_parse_time_range(raw.get("timeRange")),
    )


# ---------------------------------------------------------------------------
# Core async tasks (library-style)
# ---------------------------------------------------------------------------


async def run_queries(queries: List[Dict[str, Any]]) -> Dict[str, Any]:
    request = QueryDataRequest(
        queries=[_to_data_query(i, q) for i, q in enumerate(queries)],
        instance_settings=instance_settings_from_env(),
    )
    result = await router.query_data(request)
    return result.to_dict()


async def check_health() -> Dict[str, Any]:
    result = await health.check_health(instance_settings_from_env())
    return {"ok": result.ok, **result.to_dict()}


async def list_resource(resource: str, object_id: Optional[str] = None) -> Dict[str, Any]:
    params = {"objectId": object_id} if object_id else {}
    response = await resources.call_resource(resource, params, instance_settings_from_env())

    if not response.ok:
        return {
            "ok": False,
            "resource": resource,
            "error": _make_error(str(response.status), response.body.decode("utf-8", "replace")),
        }

    try:
        data = response.json()
    except (ValueError, RecursionError):
        data = response.body.decode("utf-8", "replace")
    return {"ok": True, "resource": resource, "data": data}


# ---------------------------------------------------------------------------
# MCP tool registration
# ---------------------------------------------------------------------------


def register_tools(server: Any) -> None:
    """Register MCP tools on an MCP Server-like instance."""
    if server is None or not hasattr(server, "tool"):
        raise ValueError(
            "register_tools(server) expects an MCP Server-like object that exposes a .tool() decorator."
        )

    @server.tool(
        name="netxms_query",
        description=(
            "Run a batch of NetXMS queries (alarms, dciValues, summaryTables, "
            "objectQueries, objectStatus) and return one result per refId."
        ),
    )
    async def mcp_query(queries: List[Dict[str, Any]]) -> Dict[str, Any]:
        return await run_queries(queries)

    @server.tool(
        name="netxms_check_health",
        description="Check settings, connectivity and minimum version of the NetXMS server.",
    )
    async def mcp_check_health() -> Dict[str, Any]:
        return await check_health()

    @server.tool(
        name="netxms_list_resource",
        description=(
            "List selectable items: alarmObjects, dciObjects, summaryTableObjects, "
            "objectStatusObjects, objectQueryObjects, summaryTables, objectQueries, "
            "or dcis (requires object_id)."
        ),
    )
    async def mcp_list_resource(resource: str, object_id: Optional[str] = None) -> Dict[str, Any]:
        return await list_resource(resource=resource, object_id=object_id)
