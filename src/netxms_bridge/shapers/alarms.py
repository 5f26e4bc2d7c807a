# NetXMS Query Bridge
# File: shapers/alarms.py
# Version: v1

"""Fixed-schema shaper for the alarm list."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Mapping, Optional, Union
import json

from ..colors import SEVERITY_MAPPINGS, STATE_MAPPINGS
from ..errors import ShapingError
from ..models import Column, ColumnConfig, FieldType, Frame
from .timeutil import parse_rfc3339

FRAME_NAME = "alarms"


def _int_field(record: Mapping[str, Any], key: str) -> int:
    value = record.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"field '{key}' must be an integer")
    return value


def _str_field(record: Mapping[str, Any], key: str) -> str:
    value = record.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field '{key}' must be a string")
    return value


def _time_field(record: Mapping[str, Any], key: str) -> Optional[datetime]:
    value = record.get(key)
    if value is None:
        return None
    return parse_rfc3339(value)


@dataclass
class AlarmRecord:
    id: int
    severity: str
    state: str
    source: str
    message: str
    count: int
    ack_by: str
    created: Optional[datetime]
    last_change: Optional[datetime]

    @classmethod
    def from_json(cls, record: Any) -> "AlarmRecord":
        if not isinstance(record, dict):
            raise ValueError("alarm entry must be a JSON object")
        return cls(
            id=_int_field(record, "Id"),
            severity=_str_field(record, "Severity"),
            state=_str_field(record, "State"),
            source=_str_field(record, "Source"),
            message=_str_field(record, "Message"),
            count=_int_field(record, "Count"),
            ack_by=_str_field(record, "Ack/Resolve by"),
            created=_time_field(record, "Created"),
            last_change=_time_field(record, "Last Change"),
        )


def parse_alarms(body: Union[bytes, str]) -> List[AlarmRecord]:
    try:
        data = json.loads(body)
        if not isinstance(data, list):
            raise ValueError("expected array")
        return [AlarmRecord.from_json(item) for item in data]
    except (ValueError, RecursionError) as exc:
        raise ShapingError(f"failed to parse response: {exc}") from exc


def shape_alarms(body: Union[bytes, str]) -> Frame:
    """Convert the alarm list into the nine-column ``alarms`` frame."""
    alarms = parse_alarms(body)

    return Frame(
        name=FRAME_NAME,
        columns=[
            Column("Id", FieldType.NUMBER, [a.id for a in alarms]),
            Column(
                "Severity",
                FieldType.STRING,
                [a.severity for a in alarms],
                ColumnConfig(mappings=dict(SEVERITY_MAPPINGS)),
            ),
            Column(
                "State",
                FieldType.STRING,
                [a.state for a in alarms],
                ColumnConfig(mappings=dict(STATE_MAPPINGS)),
            ),
            Column("Source", FieldType.STRING, [a.source for a in alarms]),
            Column("Message", FieldType.STRING, [a.message for a in alarms]),
            Column("Count", FieldType.NUMBER, [a.count for a in alarms]),
            Column("Ack/Resolve by", FieldType.STRING, [a.ack_by for a in alarms]),
            Column("Created", FieldType.TIME, [a.created for a in alarms]),
            Column("Last Change", FieldType.TIME, [a.last_change for a in alarms]),
        ],
    )
