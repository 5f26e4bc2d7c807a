# NetXMS Query Bridge
# File: resources.py
# Version: v1

"""List proxy for selector UIs.

Resource calls fetch ``name``/``id`` lists from the NetXMS server. When the
payload is ``{"objects": [{"name": ..., "id": ...}, ...]}`` the list is
sorted by name before it is returned; any other payload passes through
unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional
import json
import logging

from .client import NetXMSClient
from .config import PluginSettings, load_settings
from .errors import DataSourceError, RemoteError, Status, TransportError

logger = logging.getLogger(__name__)

# Object status shares the summary-table object list: both query types
# select a container whose subtree is evaluated.
RESOURCE_PATHS: Dict[str, str] = {
    "alarmObjects": "/v1/object-list?filter=alarm",
    "dciObjects": "/v1/object-list?filter=dci",
    "summaryTableObjects": "/v1/object-list?filter=summary",
    "objectStatusObjects": "/v1/object-list?filter=summary",
    "objectQueryObjects": "/v1/object-list?filter=query",
    "summaryTables": "/v1/summary-tables",
    "objectQueries": "/v1/object-queries",
}

DCI_LIST_RESOURCE = "dcis"
DCI_LIST_PATH = "/v1/objects/{object_id}/dci-list"


def _make_client(settings: PluginSettings) -> NetXMSClient:
    return NetXMSClient(settings=settings)


@dataclass
class ResourceResponse:
    status: int
    body: bytes
    headers: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def text(cls, status: int, message: str) -> "ResourceResponse":
        return cls(
            status=status,
            body=message.encode("utf-8"),
            headers={"Content-Type": "text/plain; charset=utf-8"},
        )

    @property
    def ok(self) -> bool:
        return self.status == 200

    def json(self) -> Any:
        return json.loads(self.body)


def sort_object_list(body: bytes) -> bytes:
    """Sort ``objects`` by name if the payload has the name/id list shape."""
    try:
        data = json.loads(body)
    except (ValueError, RecursionError):
        return body

    if not isinstance(data, dict):
        return body
    objects = data.get("objects")
    if not isinstance(objects, list):
        return body
    if not all(isinstance(o, dict) and isinstance(o.get("name"), str) for o in objects):
        return body

    # sorted() is stable; str ordering is by code point.
    data["objects"] = sorted(objects, key=lambda o: o["name"])
    return json.dumps(data).encode("utf-8")


def resolve_path(resource: str, params: Mapping[str, str]) -> str:
    """Map a resource name onto a remote path; raises DataSourceError."""
    if resource == DCI_LIST_RESOURCE:
        object_id = (params.get("objectId") or "").strip()
        if not object_id:
            raise DataSourceError("missing objectId parameter", Status.BAD_REQUEST)
        try:
            object_id_num = int(object_id, 10)
        except ValueError as exc:
            raise DataSourceError(
                f"invalid objectId parameter: {object_id!r}", Status.BAD_REQUEST
            ) from exc
        return DCI_LIST_PATH.format(object_id=object_id_num)

    path = RESOURCE_PATHS.get(resource)
    if path is None:
        raise DataSourceError(f"unknown resource: {resource}", Status.NOT_FOUND)
    return path


async def call_resource(
    resource: str,
    params: Optional[Mapping[str, str]],
    instance_settings: Optional[Mapping[str, Any]],
) -> ResourceResponse:
    """Fetch a list resource from the NetXMS server on behalf of the UI."""
    resource = resource.strip("/")
    params = params or {}

    try:
        path = resolve_path(resource, params)
    except DataSourceError as exc:
        return ResourceResponse.text(int(exc.status), str(exc))

    try:
        settings = load_settings(instance_settings)
    except DataSourceError as exc:
        logger.warning("failed to load plugin settings: %s", exc)
        return ResourceResponse.text(500, "failed to load plugin settings")

    client = _make_client(settings)
    try:
        content = await client.call(path, method="GET")
    except TransportError as exc:
        return ResourceResponse.text(500, str(exc))
    except RemoteError as exc:
        return ResourceResponse.text(exc.status_code, str(exc))

    logger.debug("Resource %s returned %d bytes", resource, len(content))
    return ResourceResponse(
        status=200,
        body=sort_object_list(content),
        headers={"Content-Type": "application/json"},
    )
