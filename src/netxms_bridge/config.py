# NetXMS Query Bridge
# File: config.py
# Version: v1

"""Configuration loading for the NetXMS Query Bridge.

Settings are re-read for every query and every resource call. Nothing here
caches a previously loaded value.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping
import json
import os

from .errors import ConfigError

# Fixed per-request timeout for every outbound call to the NetXMS server.
REQUEST_TIMEOUT_SECONDS = 10.0


def _parse_bool_env(name: str, default: bool = False) -> bool:
    """Parse a boolean-like environment variable.

    Accepts 1/0, true/false, yes/no, on/off (case-insensitive).
    """
    return _parse_bool(os.getenv(name), default)


def _parse_bool(value: Any, default: bool = False) -> bool:
    """Boolean from a stored setting; strings use the env-var spellings."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    raise ConfigError(f"expected a boolean, got {type(value).__name__}")


def _decode_json_data(raw: Any) -> Dict[str, Any]:
    """Accept jsonData as a mapping, JSON text or JSON bytes."""
    if raw is None:
        return {}
    if isinstance(raw, Mapping):
        return dict(raw)
    if isinstance(raw, (bytes, bytearray, str)):
        if not raw.strip():
            return {}
        try:
            decoded = json.loads(raw)
        except (ValueError, RecursionError) as exc:
            raise ConfigError(f"failed to parse jsonData: {exc}") from exc
        if not isinstance(decoded, dict):
            raise ConfigError("failed to parse jsonData: expected JSON object")
        return decoded
    raise ConfigError(
        f"failed to parse jsonData: unsupported type {type(raw).__name__}"
    )


@dataclass(frozen=True)
class PluginSettings:
    """Connection settings for one NetXMS server."""

    server_address: str
    api_key: str
    verify_tls: bool = True

    @classmethod
    def from_env(cls) -> "PluginSettings":
        """Create settings from environment variables."""
        return cls(
            server_address=(os.getenv("NETXMS_SERVER_ADDRESS") or "").strip(),
            api_key=os.getenv("NETXMS_API_KEY") or "",
            verify_tls=_parse_bool_env("NETXMS_VERIFY_TLS", default=True),
        )

    def __repr__(self) -> str:
        # Keep the API key out of logs and tracebacks.
        masked = "***" if self.api_key else ""
        return (
            f"PluginSettings(server_address={self.server_address!r}, "
            f"api_key={masked!r}, "
            f"verify_tls={self.verify_tls!r})"
        )


def load_settings(instance_settings: Mapping[str, Any] | None) -> PluginSettings:
    """Build PluginSettings from data source instance settings.

    ``instance_settings`` looks like::

        {
            "jsonData": {"serverAddress": "https://netxms:8000", "verifyTls": true},
            "decryptedSecureJsonData": {"apiKey": "..."},
        }

    Raises ConfigError when the structure cannot be read.
    """
    if instance_settings is None:
        raise ConfigError("instance settings are missing")
    if not isinstance(instance_settings, Mapping):
        raise ConfigError(
            f"instance settings must be a mapping, got {type(instance_settings).__name__}"
        )

    json_data = _decode_json_data(instance_settings.get("jsonData"))

    secure = instance_settings.get("decryptedSecureJsonData") or {}
    if not isinstance(secure, Mapping):
        raise ConfigError("decryptedSecureJsonData must be a mapping")

    server_address = json_data.get("serverAddress") or ""
    api_key = secure.get("apiKey") or ""
    if not isinstance(server_address, str) or not isinstance(api_key, str):
        raise ConfigError("serverAddress and apiKey must be strings")

    verify_tls = _parse_bool(json_data.get("verifyTls"), default=True)

    return PluginSettings(
        server_address=server_address.strip(),
        api_key=api_key,
        verify_tls=verify_tls,
    )


def instance_settings_from_env() -> Dict[str, Any]:
    """Instance settings equivalent of PluginSettings.from_env()."""
    settings = PluginSettings.from_env()
    return {
        "jsonData": {
            "serverAddress": settings.server_address,
            "verifyTls": settings.verify_tls,
        },
        "decryptedSecureJsonData": {"apiKey": settings.api_key},
    }
