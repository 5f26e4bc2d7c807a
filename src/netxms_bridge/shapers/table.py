# NetXMS Query Bridge
# File: shapers/table.py
# Version: v1

"""Dynamic-schema shaper for summary tables and object queries.

The remote server returns an array of flat objects whose columns depend on
the table or query definition. The first row's key order is the column
order of the frame; column types are inferred from the data.
"""

from __future__ import annotations

from typing import Any, List, Optional, Union
import json

from ..errors import ShapingError
from ..models import Column, FieldType, Frame
from ..ordered_json import OrderedRecord, loads_ordered, to_plain


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def infer_type(values: List[Any]) -> FieldType:
    """Type of the first non-null value; string when every cell is null."""
    for value in values:
        if value is None:
            continue
        if isinstance(value, bool):
            return FieldType.BOOLEAN
        if _is_number(value):
            return FieldType.NUMBER
        return FieldType.STRING
    return FieldType.STRING


def to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    # Nested arrays/objects and stray scalars render as compact JSON.
    return json.dumps(to_plain(value), separators=(",", ":"))


def _to_float(value: Any, column: str) -> Optional[float]:
    if not _is_number(value):
        return None
    try:
        return float(value)
    except OverflowError as exc:
        raise ShapingError(
            f"failed to parse response: number out of range in column '{column}'"
        ) from exc


def _coerce(value: Any, field_type: FieldType, column: str) -> Any:
    if field_type is FieldType.NUMBER:
        return _to_float(value, column)
    if field_type is FieldType.BOOLEAN:
        return value if isinstance(value, bool) else None
    return to_text(value)


def shape_records(records: List[OrderedRecord], frame_name: str) -> Frame:
    """Build a frame from already decoded records (at least one)."""
    column_order = list(records[0].keys)

    columns: List[Column] = []
    for name in column_order:
        cells = [record.get(name) for record in records]
        field_type = infer_type(cells)
        columns.append(
            Column(
                name=name,
                type=field_type,
                values=[_coerce(v, field_type, name) for v in cells],
            )
        )
    return Frame(name=frame_name, columns=columns)


def shape_table(body: Union[bytes, str], frame_name: str) -> Frame:
    """Convert a JSON array of objects into a frame.

    Raises ShapingError (BadRequest) for malformed JSON, a non-array top
    level, an empty array, or a row that is not an object.
    """
    try:
        data = loads_ordered(body)
    except (ValueError, RecursionError) as exc:
        raise ShapingError(f"failed to parse response: {exc}") from exc

    if not isinstance(data, list):
        raise ShapingError("failed to parse response: expected array")
    if not data:
        raise ShapingError("failed to parse response: empty array")

    records: List[OrderedRecord] = []
    for index, row in enumerate(data):
        if not isinstance(row, OrderedRecord):
            kind = _json_kind(row)
            raise ShapingError(
                f"failed to decode row {index}: expected object, got {kind}"
            )
        records.append(row)

    return shape_records(records, frame_name)


def _json_kind(value: Optional[Any]) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if _is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return type(value).__name__
