# NetXMS Query Bridge
# File: tools/__init__.py
# Version: v1

"""MCP tools exposing the query engine."""

from . import tasks

__all__ = ["tasks"]
