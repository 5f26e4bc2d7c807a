# NetXMS Query Bridge
# File: transports/stdio_server.py
# Version: v1

"""STDIO entrypoint for the NetXMS Query Bridge MCP server.

This is the script behind the ``netxms-bridge-mcp`` console command.
Logs go to stderr; stdout carries the MCP protocol.
"""

from __future__ import annotations

import logging
import os
import sys

from mcp.server.fastmcp import FastMCP

from ..tools import tasks


def _configure_logging() -> None:
    level_name = (os.getenv("NETXMS_LOG_LEVEL") or "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main() -> None:
    """Synchronous entrypoint for console_scripts."""
    _configure_logging()

    mcp = FastMCP("netxms-query-bridge")
    tasks.register_tools(mcp)

    # Let FastMCP handle stdio + event loop setup.
    mcp.run()


if __name__ == "__main__":
    main()
