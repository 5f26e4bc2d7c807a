# NetXMS Query Bridge
# File: queries.py
# Version: v1
#
# One async handler per query type. Handlers raise DataSourceError
# subclasses; turning them into per-query error responses is the router's job.

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Tuple
import json

from .client import NetXMSClient
from .errors import DataSourceError
from .models import DataQuery, DataResponse, QueryModel
from .shapers import shape_alarms, shape_dci_values, shape_object_status, shape_table
from .shapers.timeutil import format_unix_date

ALARMS_PATH = "/v1/grafana/infinity/alarms"
OBJECT_STATUS_PATH = "/v1/grafana/infinity/object-status"
SUMMARY_TABLE_PATH = "/v1/grafana/infinity/summary-table"
OBJECT_QUERY_PATH = "/v1/grafana/infinity/object-query"
DCI_HISTORY_PATH = "/v1/objects/{object_id}/data-collection/{dci_id}/history"


# ---------------------------------------------------------------------------
# Payload helpers
# ---------------------------------------------------------------------------


def require_fields(model: QueryModel, fields: Tuple[str, ...]) -> None:
    for name in fields:
        if not model.get(name):
            raise DataSourceError(f"missing required field: {name}")


def parse_id(value: str, name: str) -> int:
    """Object / table / query ids travel as strings but must be integers."""
    try:
        return int(value, 10)
    except (TypeError, ValueError) as exc:
        raise DataSourceError(f"invalid {name}: {value!r}") from exc


def parse_query_parameters(raw: str) -> List[Dict[str, Any]]:
    """Parse the optional queryParameters JSON text.

    Expected shape: ``[{"key": "...", "value": ...}, ...]``. Entries are
    forwarded to the server as given.
    """
    if not raw or not raw.strip():
        return []
    try:
        data = json.loads(raw)
    except (ValueError, RecursionError) as exc:
        raise DataSourceError(f"invalid queryParameters: {exc}") from exc

    if not isinstance(data, list):
        raise DataSourceError("invalid queryParameters: expected array of key/value pairs")
    for index, item in enumerate(data):
        if not isinstance(item, dict) or not isinstance(item.get("key"), str):
            raise DataSourceError(
                f"invalid queryParameters: entry {index} must be an object with a string 'key'"
            )
    return data


def root_object_body(model: QueryModel) -> Dict[str, Any]:
    if not model.source_object_id:
        return {}
    return {"rootObjectId": parse_id(model.source_object_id, "sourceObjectId")}


# ---------------------------------------------------------------------------
# Dynamic table queries (summary tables, object queries)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TableQueryConfig:
    """Per-query-type settings for the dynamic table shaper."""

    path: str
    frame_name: str
    required_fields: Tuple[str, ...]
    build_body: Callable[[QueryModel], Dict[str, Any]]


def _summary_table_body(model: QueryModel) -> Dict[str, Any]:
    body = {"tableId": parse_id(model.summary_table_id, "summaryTableId")}
    body.update(root_object_body(model))
    return body


def _object_query_body(model: QueryModel) -> Dict[str, Any]:
    body: Dict[str, Any] = {"queryId": parse_id(model.object_query_id, "objectQueryId")}
    body.update(root_object_body(model))
    body["queryParameters"] = parse_query_parameters(model.query_parameters)
    return body


SUMMARY_TABLE_QUERY = TableQueryConfig(
    path=SUMMARY_TABLE_PATH,
    frame_name="summaryTable",
    required_fields=("sourceObjectId", "summaryTableId"),
    build_body=_summary_table_body,
)

OBJECT_QUERY_QUERY = TableQueryConfig(
    path=OBJECT_QUERY_PATH,
    frame_name="objectQuery",
    required_fields=("objectQueryId",),
    build_body=_object_query_body,
)


async def run_table_query(
    config: TableQueryConfig,
    client: NetXMSClient,
    model: QueryModel,
) -> DataResponse:
    require_fields(model, config.required_fields)
    body = config.build_body(model)
    content = await client.call(config.path, method="POST", body=body)
    return DataResponse(frames=[shape_table(content, config.frame_name)])


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def handle_alarms(
    client: NetXMSClient, query: DataQuery, model: QueryModel
) -> DataResponse:
    body = root_object_body(model)
    content = await client.call(ALARMS_PATH, method="POST", body=body)
    return DataResponse(frames=[shape_alarms(content)])


async def handle_object_status(
    client: NetXMSClient, query: DataQuery, model: QueryModel
) -> DataResponse:
    require_fields(model, ("sourceObjectId",))
    body = root_object_body(model)
    content = await client.call(OBJECT_STATUS_PATH, method="POST", body=body)
    return DataResponse(frames=shape_object_status(content))


async def handle_summary_table(
    client: NetXMSClient, query: DataQuery, model: QueryModel
) -> DataResponse:
    return await run_table_query(SUMMARY_TABLE_QUERY, client, model)


async def handle_object_query(
    client: NetXMSClient, query: DataQuery, model: QueryModel
) -> DataResponse:
    return await run_table_query(OBJECT_QUERY_QUERY, client, model)


async def handle_dci_values(
    client: NetXMSClient, query: DataQuery, model: QueryModel
) -> DataResponse:
    require_fields(model, ("sourceObjectId", "dciId"))
    if query.time_range is None:
        raise DataSourceError("missing time range")

    path = DCI_HISTORY_PATH.format(
        object_id=parse_id(model.source_object_id, "sourceObjectId"),
        dci_id=parse_id(model.dci_id, "dciId"),
    )
    params = {
        "timeFrom": format_unix_date(query.time_range.from_),
        "timeTo": format_unix_date(query.time_range.to),
    }
    content = await client.call(path, method="GET", params=params)
    return DataResponse(frames=[shape_dci_values(content)])
