"""Domain models for band scheduling."""

from __future__ import annotations

from .enums import (
    AvailabilityStatus,
    ErrorReason,
    EventKind,
    MutationKind,
    SyncEventType,
    SyncTrigger,
)
from .errors import (
    BandSyncError,
    IdentityMissingError,
    PermissionDeniedError,
    RecordNotFoundError,
    ServerRejection,
    TransientNetworkError,
    TransportError,
    ValidationError,
)
from .models import (
    Availability,
    AvailabilityDraft,
    ConflictAdvisory,
    Event,
    EventDraft,
    OptimisticEntry,
    PendingRequest,
    SyncEvent,
)
from .signals import Signal

__all__ = [
    "Availability",
    "AvailabilityDraft",
    "AvailabilityStatus",
    "BandSyncError",
    "ConflictAdvisory",
    "ErrorReason",
    "Event",
    "EventDraft",
    "EventKind",
    "IdentityMissingError",
    "MutationKind",
    "OptimisticEntry",
    "PendingRequest",
    "PermissionDeniedError",
    "RecordNotFoundError",
    "ServerRejection",
    "Signal",
    "SyncEvent",
    "SyncEventType",
    "SyncTrigger",
    "TransientNetworkError",
    "TransportError",
    "ValidationError",
]
