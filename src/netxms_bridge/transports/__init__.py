# NetXMS Query Bridge
# File: transports/__init__.py
# Version: v1

"""MCP transports for the NetXMS Query Bridge."""
