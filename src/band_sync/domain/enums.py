from __future__ import annotations

from enum import Enum


class EventKind(str, Enum):
    LIVE = "live"
    REHEARSAL = "rehearsal"
    OTHER = "other"


class AvailabilityStatus(str, Enum):
    AVAILABLE = "available"
    TENTATIVE = "tentative"
    UNAVAILABLE = "unavailable"


class ErrorReason(str, Enum):
    MISSING_FIELD = "missing-field"
    BAD_LENGTH = "bad-length"
    UNSAFE_CONTENT = "unsafe-content"
    BAD_ENUM = "bad-enum"
    BAD_RANGE = "bad-range"
    OUT_OF_WINDOW = "out-of-window"


class MutationKind(str, Enum):
    EVENT_CREATE = "event-create"
    EVENT_DELETE = "event-delete"
    AVAILABILITY_UPSERT = "availability-upsert"


class SyncTrigger(str, Enum):
    POLLING = "polling"
    APP_FOCUS = "app-focus"
    NETWORK_RESTORE = "network-restore"
    DATA_CHANGE = "data-change"
    MANUAL = "manual"


class SyncEventType(str, Enum):
    SYNC_START = "sync-start"
    SYNC_SUCCESS = "sync-success"
    SYNC_ERROR = "sync-error"
    CONFLICT = "conflict"
    OPTIMISTIC_APPLIED = "optimistic-applied"
    CONFIRMED = "confirmed"
    ROLLBACK = "rollback"
