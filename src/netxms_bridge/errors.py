# NetXMS Query Bridge
# File: errors.py
# Version: v1

"""Status taxonomy and exception types shared by the client and shapers."""

from __future__ import annotations

from enum import IntEnum


class Status(IntEnum):
    """Outcome of a single query or remote call, modelled on HTTP codes."""

    UNKNOWN = 0
    OK = 200
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    CANCELLED = 499
    INTERNAL = 500
    NOT_IMPLEMENTED = 501


def classify_status(status_code: int) -> Status:
    """Map a remote HTTP status code onto the small Status taxonomy."""
    if status_code == 200:
        return Status.OK
    if status_code == 400:
        return Status.BAD_REQUEST
    if status_code == 401:
        return Status.UNAUTHORIZED
    if status_code == 403:
        return Status.FORBIDDEN
    if status_code == 404:
        return Status.NOT_FOUND
    if 500 <= status_code <= 599:
        return Status.INTERNAL
    return Status.UNKNOWN


class DataSourceError(RuntimeError):
    """Base error; carries the Status reported back for the failing query."""

    status: Status = Status.BAD_REQUEST

    def __init__(self, message: str, status: Status | None = None) -> None:
        super().__init__(message)
        if status is not None:
            self.status = status

    @property
    def message(self) -> str:
        return str(self)


class ConfigError(DataSourceError):
    """Settings could not be loaded or are incomplete."""


class TransportError(DataSourceError):
    """Request could not be built, sent, or its body read."""


class RemoteError(DataSourceError):
    """The remote server answered with a non-200 status."""

    def __init__(self, message: str, status: Status, status_code: int) -> None:
        super().__init__(message, status)
        self.status_code = status_code


class ShapingError(DataSourceError):
    """The remote payload did not have the expected shape."""
