# NetXMS Query Bridge
# File: shapers/status.py
# Version: v1

"""Object status shaper: one single-field frame per object."""

from __future__ import annotations

from typing import Any, List, Union
import json

from ..colors import STATUS_PALETTE, status_color
from ..errors import ShapingError
from ..models import Column, ColumnConfig, FieldType, Frame


def _parse_entry(index: int, entry: Any) -> tuple[str, int]:
    if not isinstance(entry, dict):
        raise ShapingError(f"failed to parse response: entry {index} is not an object")

    name = entry.get("name")
    if name is None:
        name = ""
    if not isinstance(name, str):
        raise ShapingError(f"failed to parse response: entry {index} has a non-string name")

    status = entry.get("status")
    if isinstance(status, bool) or not isinstance(status, int):
        raise ShapingError(
            f"failed to parse response: entry {index} ('{name}') has a non-integer status"
        )
    return name, status


def shape_object_status(body: Union[bytes, str]) -> List[Frame]:
    """Convert ``[{name, status}, ...]`` into one frame per object.

    Each frame holds a single ``name`` field colored by the status palette.
    A status code outside the palette is rejected rather than guessed.
    """
    try:
        data = json.loads(body)
    except (ValueError, RecursionError) as exc:
        raise ShapingError(f"failed to parse response: {exc}") from exc
    if not isinstance(data, list):
        raise ShapingError("failed to parse response: expected array")

    frames: List[Frame] = []
    for index, entry in enumerate(data):
        name, status = _parse_entry(index, entry)
        color = status_color(status)
        if color is None:
            raise ShapingError(
                f"invalid status code {status} for object '{name}' "
                f"(expected 0..{len(STATUS_PALETTE) - 1})"
            )
        frames.append(
            Frame(
                name=name,
                columns=[
                    Column(
                        "name",
                        FieldType.STRING,
                        [name],
                        ColumnConfig(color=color),
                    )
                ],
            )
        )
    return frames
