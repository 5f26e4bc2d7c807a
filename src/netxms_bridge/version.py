# NetXMS Query Bridge
# File: version.py
# Version: v1

"""Dotted version comparison used to gate the health check."""

from __future__ import annotations

from typing import List

# Oldest NetXMS server release exposing the endpoints used by this bridge.
MIN_SERVER_VERSION = "5.2.4"


def _segments(version: str) -> List[int]:
    parts: List[int] = []
    for raw in version.strip().split("."):
        try:
            parts.append(int(raw))
        except ValueError:
            parts.append(0)
    return parts


def is_version_greater_or_equal(version: str, minimum: str) -> bool:
    """Return True if ``version`` >= ``minimum``.

    Segments are compared numerically left to right; a missing trailing
    segment counts as 0 and a non-numeric segment parses as 0.
    """
    left = _segments(version)
    right = _segments(minimum)
    width = max(len(left), len(right))
    left += [0] * (width - len(left))
    right += [0] * (width - len(right))

    for a, b in zip(left, right):
        if a != b:
            return a > b
    return True
