# NetXMS Query Bridge
# File: health.py
# Version: v1

"""Connectivity and compatibility check for a configured NetXMS server."""

from __future__ import annotations

from typing import Any, Mapping, Optional
import json
import logging

from .client import NetXMSClient
from .config import PluginSettings, load_settings
from .errors import DataSourceError, RemoteError, TransportError
from .models import HealthResult
from .version import MIN_SERVER_VERSION, is_version_greater_or_equal

logger = logging.getLogger(__name__)

SERVER_INFO_PATH = "/v1/server-info"


def _make_client(settings: PluginSettings) -> NetXMSClient:
    return NetXMSClient(settings=settings)


def _error(message: str) -> HealthResult:
    logger.info("Health check failed: %s", message)
    return HealthResult(status="error", message=message)


async def check_health(instance_settings: Optional[Mapping[str, Any]]) -> HealthResult:
    """Single pass/fail result for settings, connectivity and server version."""
    try:
        settings = load_settings(instance_settings)
    except DataSourceError:
        return _error("Unable to load settings")

    if not settings.api_key:
        return _error("API key is missing")
    if not settings.server_address:
        return _error("Server address is missing")

    client = _make_client(settings)
    try:
        content = await client.call(SERVER_INFO_PATH, method="GET")
    except TransportError as exc:
        return _error(f"Failed to connect to server: {exc.__cause__ or exc}")
    except RemoteError as exc:
        return _error(f"Server returned status code {exc.status_code}: {exc}")

    try:
        info = json.loads(content)
    except (ValueError, RecursionError):
        return _error("Server returned an invalid server-info response")

    version = info.get("version") if isinstance(info, dict) else None
    if not version or not isinstance(version, str):
        return _error("Server did not report a version")

    if not is_version_greater_or_equal(version, MIN_SERVER_VERSION):
        return _error(
            f"Server version {version} is not supported (minimum {MIN_SERVER_VERSION})"
        )

    return HealthResult(
        status="ok",
        message=f"Data source is working (server version {version})",
    )
