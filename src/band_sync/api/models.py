from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..domain import Availability, Event


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class EventPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    kind: str
    start: str
    end: str
    created_by: str = Field(alias="createdBy")
    created_at: Optional[str] = Field(default=None, alias="createdAt")

    @classmethod
    def from_domain(cls, event: Event) -> "EventPayload":
        return cls(
            id=event.id,
            title=event.title,
            kind=event.kind.value,
            start=event.start.isoformat(),
            end=event.end.isoformat(),
            created_by=event.created_by,
            created_at=_iso(event.created_at),
        )


class AvailabilityPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    member_name: str = Field(alias="memberName")
    start: str
    end: str
    status: str
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")

    @classmethod
    def from_domain(cls, record: Availability) -> "AvailabilityPayload":
        return cls(
            id=record.id,
            member_name=record.member_name,
            start=record.start.isoformat(),
            end=record.end.isoformat(),
            status=record.status.value,
            updated_at=_iso(record.updated_at),
        )


class CreatedPayload(BaseModel):
    id: str
    message: str = Field(default="Event created successfully")


class ErrorPayload(BaseModel):
    error: str
    reason: Optional[str] = Field(default=None)
    field: Optional[str] = Field(default=None)
    timestamp: str


class ServiceInfo(BaseModel):
    message: str
    version: str
    endpoints: List[str] = Field(default_factory=list)
