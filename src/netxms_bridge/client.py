# NetXMS Query Bridge
# File: client.py
# Version: v1
"""Thin authenticated client for the NetXMS server REST API.

Implements:

- join_url() for base address + path joining
- request() returning raw bytes and status code
- check_response() for status classification and error messages
- call() combining both for the common "must be 200" case
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional
import json
import logging

import httpx
from httpx import RequestError

from .config import REQUEST_TIMEOUT_SECONDS, PluginSettings
from .errors import RemoteError, Status, TransportError, classify_status

logger = logging.getLogger(__name__)

UNAUTHORIZED_MESSAGE = "Unauthorized: Invalid API key"


def join_url(base: str, path: str) -> str:
    """Join base address and path with exactly one separating slash."""
    base = base.rstrip("/")
    path = path.lstrip("/")
    if not path:
        return base
    return f"{base}/{path}"


def _extract_reason(body: bytes) -> Optional[str]:
    try:
        data = json.loads(body)
    except (ValueError, RecursionError):
        return None
    if not isinstance(data, dict):
        return None
    reason = data.get("reason")
    if reason is None or reason == "":
        return None
    return str(reason)


@dataclass
class RawResponse:
    status_code: int
    content: bytes
    content_type: Optional[str] = None


@dataclass
class NetXMSClient:
    """Wrapper around NetXMS REST endpoints for a single settings snapshot."""

    settings: PluginSettings
    timeout: float = REQUEST_TIMEOUT_SECONDS

    # Injected in tests (httpx.MockTransport); None means real network I/O.
    transport: Optional[httpx.AsyncBaseTransport] = None

    def build_url(self, path: str) -> str:
        return join_url(self.settings.server_address, path)

    def _headers(self, has_body: bool) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.settings.api_key}",
            "Accept": "application/json",
        }
        if has_body:
            headers["Content-Type"] = "application/json"
        return headers

    async def request(
        self,
        path: str,
        method: str = "GET",
        body: Any = None,
        params: Optional[Mapping[str, str]] = None,
    ) -> RawResponse:
        """Execute one request and return the raw response.

        Transport failures (connect, timeout, read) raise TransportError.
        Non-200 statuses are returned, not raised; see check_response().
        """
        url = self.build_url(path)
        content = None
        if body is not None:
            content = json.dumps(body).encode("utf-8")

        logger.debug("NetXMS request: %s %s", method, url)

        async with httpx.AsyncClient(
            timeout=self.timeout,
            verify=self.settings.verify_tls,
            transport=self.transport,
        ) as http_client:
            try:
                response = await http_client.request(
                    method,
                    url,
                    content=content,
                    params=params,
                    headers=self._headers(content is not None),
                )
            except RequestError as exc:
                logger.warning("NetXMS request to '%s' failed: %s", url, exc)
                raise TransportError(
                    f"failed to connect to server: {exc}"
                ) from exc

        logger.debug("NetXMS response: %s %s -> %s", method, url, response.status_code)
        return RawResponse(
            status_code=response.status_code,
            content=response.content,
            content_type=response.headers.get("content-type"),
        )

    @staticmethod
    def check_response(raw: RawResponse) -> bytes:
        """Return the body of a 200 response or raise RemoteError.

        A 401 is always reported as an invalid API key, regardless of body.
        """
        if raw.status_code == 200:
            return raw.content

        status = classify_status(raw.status_code)
        if status is Status.UNAUTHORIZED:
            raise RemoteError(UNAUTHORIZED_MESSAGE, status, raw.status_code)

        reason = _extract_reason(raw.content)
        if reason:
            message = f"Request error (HTTP {raw.status_code}): {reason}"
        else:
            message = f"Request error (HTTP {raw.status_code})"
        raise RemoteError(message, status, raw.status_code)

    async def call(
        self,
        path: str,
        method: str = "GET",
        body: Any = None,
        params: Optional[Mapping[str, str]] = None,
    ) -> bytes:
        raw = await self.request(path, method=method, body=body, params=params)
        return self.check_response(raw)
