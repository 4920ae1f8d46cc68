"""Exception hierarchy shared by the client engine and the HTTP service."""

from __future__ import annotations

from .enums import ErrorReason


class BandSyncError(Exception):
    """Base class for every error raised by band_sync."""


class ValidationError(BandSyncError, ValueError):
    """A field failed validation. Never retried."""

    def __init__(self, reason: ErrorReason, field: str, message: str) -> None:
        super().__init__(message)
        self.reason = reason
        self.field = field
        self.message = message

    def to_payload(self) -> dict:
        return {"error": self.message, "reason": self.reason.value, "field": self.field}


class TransportError(BandSyncError):
    """A request could not be completed."""

    def __init__(self, message: str, *, endpoint: str, status: int = 0) -> None:
        super().__init__(message)
        self.message = message
        self.endpoint = endpoint
        self.status = status

    def __str__(self) -> str:
        return f"{self.status} {self.message} ({self.endpoint})"


class TransientNetworkError(TransportError):
    """A single attempt failed in a way worth retrying (timeout, connection, 5xx)."""


class ServerRejection(TransportError):
    """The server refused the request with a 4xx status."""

    def __init__(self, status: int, reason: str, *, endpoint: str) -> None:
        super().__init__(reason, endpoint=endpoint, status=status)
        self.reason = reason


class IdentityMissingError(BandSyncError):
    """No member identity is available for a mutating call."""


class RecordNotFoundError(BandSyncError, LookupError):
    """The addressed record does not exist in the store."""


class PermissionDeniedError(BandSyncError):
    """The actor may not perform the requested mutation."""
