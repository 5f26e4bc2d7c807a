# NetXMS Query Bridge
# File: shapers/timeseries.py
# Version: v1

"""Time-series shaper for DCI value history."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Union
import json

from ..errors import ShapingError
from ..models import Column, ColumnConfig, FieldType, Frame
from .timeutil import parse_rfc3339


def _require_object(value: Any, what: str) -> dict:
    if not isinstance(value, dict):
        raise ShapingError(f"failed to parse response: {what} must be an object")
    return value


def shape_dci_values(body: Union[bytes, str]) -> Frame:
    """Convert ``{description, unitName, values: [...]}`` into a time/value frame.

    Any row with an unparsable timestamp or value fails the whole frame.
    """
    try:
        data = json.loads(body)
    except (ValueError, RecursionError) as exc:
        raise ShapingError(f"failed to parse response: {exc}") from exc
    data = _require_object(data, "response")

    description = data.get("description") or ""
    unit_name = data.get("unitName") or ""
    values = data.get("values") or []
    if not isinstance(values, list):
        raise ShapingError("failed to parse response: values must be an array")

    times: List[datetime] = []
    numbers: List[float] = []
    for index, entry in enumerate(values):
        entry = _require_object(entry, f"values[{index}]")

        try:
            times.append(parse_rfc3339(entry.get("timestamp")))
        except ValueError as exc:
            raise ShapingError(f"failed to parse timestamp: {exc}") from exc

        raw_value = entry.get("value")
        try:
            if not isinstance(raw_value, str) or raw_value != raw_value.strip() or "_" in raw_value:
                raise ValueError(f"expected base-10 numeric string, got {raw_value!r}")
            numbers.append(float(raw_value))
        except ValueError as exc:
            raise ShapingError(f"failed to parse value: {exc}") from exc

    return Frame(
        name=str(description),
        columns=[
            Column("time", FieldType.TIME, times),
            Column("value", FieldType.NUMBER, numbers, ColumnConfig(unit=str(unit_name))),
        ],
    )
