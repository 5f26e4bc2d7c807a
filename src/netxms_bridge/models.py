# NetXMS Query Bridge
# File: models.py
# Version: v1

"""Domain models used by the NetXMS Query Bridge."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union
import json

from .errors import DataSourceError, Status


class QueryType(str, Enum):
    ALARMS = "alarms"
    DCI_VALUES = "dciValues"
    SUMMARY_TABLES = "summaryTables"
    OBJECT_QUERIES = "objectQueries"
    OBJECT_STATUS = "objectStatus"


class FieldType(str, Enum):
    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"
    TIME = "time"


@dataclass(frozen=True)
class ValueMapping:
    """Display text and color for one enumerated cell value."""

    text: str
    color: str
    index: int = 0


@dataclass
class ColumnConfig:
    """Display metadata travelling with a column, never with its cells."""

    unit: Optional[str] = None
    color: Optional[str] = None
    mappings: Dict[str, ValueMapping] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.unit is not None:
            out["unit"] = self.unit
        if self.color is not None:
            out["color"] = {"mode": "fixed", "fixedColor": self.color}
        if self.mappings:
            out["mappings"] = [
                {
                    "type": "value",
                    "options": {
                        value: {"text": m.text, "color": m.color, "index": m.index}
                        for value, m in self.mappings.items()
                    },
                }
            ]
        return out


@dataclass
class Column:
    name: str
    type: FieldType
    values: List[Any]
    config: ColumnConfig = field(default_factory=ColumnConfig)

    def __len__(self) -> int:
        return len(self.values)


@dataclass
class Frame:
    """A named, ordered collection of equal-length typed columns."""

    name: str
    columns: List[Column] = field(default_factory=list)

    def __post_init__(self) -> None:
        lengths = {len(c) for c in self.columns}
        if len(lengths) > 1:
            raise ValueError(
                f"frame '{self.name}' has columns of unequal length: {sorted(lengths)}"
            )

    @property
    def row_count(self) -> int:
        return len(self.columns[0]) if self.columns else 0

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    def column(self, name: str) -> Column:
        for c in self.columns:
            if c.name == name:
                return c
        raise KeyError(name)

    def rows(self) -> List[Dict[str, Any]]:
        """Flatten the frame back into one dict per row, in column order."""
        return [
            {c.name: c.values[i] for c in self.columns}
            for i in range(self.row_count)
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "fields": [
                {
                    "name": c.name,
                    "type": c.type.value,
                    "config": c.config.to_dict(),
                    "values": [
                        v.isoformat() if isinstance(v, datetime) else v
                        for v in c.values
                    ],
                }
                for c in self.columns
            ],
        }


@dataclass
class DataResponse:
    """Result for a single query: frames on success, an error otherwise."""

    frames: List[Frame] = field(default_factory=list)
    error: Optional[str] = None
    status: Status = Status.OK

    @classmethod
    def from_error(cls, exc: DataSourceError) -> "DataResponse":
        return cls(frames=[], error=exc.message, status=exc.status)

    @classmethod
    def error_response(cls, status: Status, message: str) -> "DataResponse":
        return cls(frames=[], error=message, status=status)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "status": int(self.status),
            "frames": [f.to_dict() for f in self.frames],
        }
        if self.error is not None:
            out["error"] = self.error
        return out


@dataclass
class QueryDataResponse:
    """Batch result keyed by RefID."""

    responses: Dict[str, DataResponse] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"results": {ref: r.to_dict() for ref, r in self.responses.items()}}


@dataclass(frozen=True)
class TimeRange:
    from_: datetime
    to: datetime


@dataclass
class DataQuery:
    """One query of a batch as delivered by the frontend.

    ``json`` is the raw per-query payload; it is decoded by the router so a
    malformed payload only affects this query.
    """

    ref_id: str
    query_type: str
    json: Union[bytes, str] = b"{}"
    time_range: Optional[TimeRange] = None


@dataclass
class QueryDataRequest:
    queries: List[DataQuery]
    instance_settings: Optional[Dict[str, Any]] = None


@dataclass
class QueryModel:
    """Decoded per-query payload."""

    source_object_id: str = ""
    dci_id: str = ""
    summary_table_id: str = ""
    object_query_id: str = ""
    query_parameters: str = ""

    # Raw JSON key -> attribute name
    FIELD_NAMES = {
        "sourceObjectId": "source_object_id",
        "dciId": "dci_id",
        "summaryTableId": "summary_table_id",
        "objectQueryId": "object_query_id",
        "queryParameters": "query_parameters",
    }

    @classmethod
    def from_json(cls, raw: Union[bytes, str, None]) -> "QueryModel":
        """Decode the payload; raises ValueError on malformed JSON."""
        if raw is None or not raw.strip():
            return cls()
        try:
            data = json.loads(raw)
        except RecursionError as exc:
            raise ValueError("query payload is nested too deeply") from exc
        if not isinstance(data, dict):
            raise ValueError("query payload must be a JSON object")

        values: Dict[str, str] = {}
        for key, attr in cls.FIELD_NAMES.items():
            value = data.get(key)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, (str, int)):
                raise ValueError(f"field '{key}' must be a string")
            values[attr] = str(value)
        return cls(**values)

    def get(self, json_name: str) -> str:
        return getattr(self, self.FIELD_NAMES[json_name])


@dataclass
class HealthResult:
    status: str
    message: str

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status, "message": self.message}
