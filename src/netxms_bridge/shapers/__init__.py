# NetXMS Query Bridge
# File: shapers/__init__.py
# Version: v1

"""Shapers turning NetXMS JSON payloads into frames."""

from .alarms import shape_alarms
from .status import shape_object_status
from .table import shape_table
from .timeseries import shape_dci_values

__all__ = ["shape_alarms", "shape_dci_values", "shape_object_status", "shape_table"]
