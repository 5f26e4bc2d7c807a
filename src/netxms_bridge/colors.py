# NetXMS Query Bridge
# File: colors.py
# Version: v1

"""Display colors for alarm severities, alarm states and object statuses.

These are fixed product constants; nothing here is derived from remote data.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from .models import ValueMapping

# Ordered by NetXMS status code: index == code.
STATUS_PALETTE: Tuple[Tuple[str, str], ...] = (
    ("Normal", "rgb(0, 192, 0)"),
    ("Warning", "rgb(0, 255, 255)"),
    ("Minor", "rgb(231, 226, 0)"),
    ("Major", "rgb(255, 128, 0)"),
    ("Critical", "rgb(160, 0, 0)"),
    ("Unknown", "rgb(0, 0, 128)"),
    ("Unmanaged", "rgb(192, 192, 192)"),
    ("Disabled", "rgb(128, 64, 0)"),
    ("Testing", "rgb(255, 128, 255)"),
)

SEVERITY_MAPPINGS: Mapping[str, ValueMapping] = MappingProxyType(
    {
        name: ValueMapping(text=name, color=color, index=index)
        for index, (name, color) in enumerate(STATUS_PALETTE)
    }
)

STATE_MAPPINGS: Mapping[str, ValueMapping] = MappingProxyType(
    {
        "Outstanding": ValueMapping(text="Outstanding", color="yellow", index=0),
        "Acknowledged": ValueMapping(text="Acknowledged", color="greenyellow", index=1),
        "Resolved": ValueMapping(text="Resolved", color="green", index=2),
    }
)


def status_color(code: int) -> Optional[str]:
    """Palette color for a status code, or None when the code is unknown."""
    if isinstance(code, bool) or not isinstance(code, int):
        return None
    if 0 <= code < len(STATUS_PALETTE):
        return STATUS_PALETTE[code][1]
    return None
