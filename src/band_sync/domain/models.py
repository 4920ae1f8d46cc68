from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .enums import AvailabilityStatus, EventKind, MutationKind, SyncEventType, SyncTrigger


def parse_datetime(value: Any) -> datetime:
    """Parse an ISO 8601 value into an aware datetime; naive values are taken as UTC."""

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    else:
        raise ValueError(f"Unsupported datetime value: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


@dataclass(slots=True, frozen=True)
class Event:
    id: str
    title: str
    kind: EventKind
    start: datetime
    end: datetime
    created_by: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Event":
        return cls(
            id=str(record["id"]),
            title=str(record["title"]),
            kind=EventKind(record["kind"]),
            start=parse_datetime(record["start"]),
            end=parse_datetime(record["end"]),
            created_by=str(record["createdBy"]),
            created_at=parse_datetime(record["createdAt"]) if record.get("createdAt") else None,
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "kind": self.kind.value,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "createdBy": self.created_by,
            "createdAt": _iso(self.created_at),
        }


@dataclass(slots=True, frozen=True)
class Availability:
    id: str
    member_name: str
    start: datetime
    end: datetime
    status: AvailabilityStatus
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Availability":
        return cls(
            id=str(record["id"]),
            member_name=str(record["memberName"]),
            start=parse_datetime(record["start"]),
            end=parse_datetime(record["end"]),
            status=AvailabilityStatus(record["status"]),
            updated_at=parse_datetime(record["updatedAt"]) if record.get("updatedAt") else None,
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "memberName": self.member_name,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "status": self.status.value,
            "updatedAt": _iso(self.updated_at),
        }


@dataclass(slots=True, frozen=True)
class EventDraft:
    """A validated, not yet persisted Event."""

    title: str
    kind: EventKind
    start: datetime
    end: datetime
    created_by: str

    def to_payload(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "kind": self.kind.value,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "createdBy": self.created_by,
        }


@dataclass(slots=True, frozen=True)
class AvailabilityDraft:
    """A validated, not yet persisted Availability interval."""

    member_name: str
    start: datetime
    end: datetime
    status: AvailabilityStatus

    def to_payload(self) -> Dict[str, Any]:
        return {
            "memberName": self.member_name,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "status": self.status.value,
        }


@dataclass(slots=True)
class PendingRequest:
    endpoint: str
    method: str
    payload: Optional[Dict[str, Any]]
    enqueued_at: datetime
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class OptimisticEntry:
    token: str
    kind: MutationKind
    payload: Any
    applied_at: datetime


@dataclass(slots=True, frozen=True)
class ConflictAdvisory:
    """Informational only: the local actor's Event overlaps another member's."""

    own_event: Event
    other_event: Event

    @property
    def other_member(self) -> str:
        return self.other_event.created_by


@dataclass(slots=True, frozen=True)
class SyncEvent:
    type: SyncEventType
    trigger: Optional[SyncTrigger] = None
    detail: Dict[str, Any] = field(default_factory=dict)
