from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, List, Optional, TypeVar
from urllib.parse import quote, urlencode

from ...domain import Event, EventDraft, TransportError
from ..transport import Transport

T = TypeVar("T")


def window_query(start: datetime, end: datetime) -> str:
    return urlencode({"start": start.isoformat(), "end": end.isoformat()})


def decode_records(payload: Any, factory: Callable[[dict], T], *, endpoint: str) -> List[T]:
    """Map a window listing to domain records, rejecting bodies that are not a list of records."""

    if payload is None:
        return []
    if not isinstance(payload, list):
        raise TransportError(f"Expected a list of records, got {type(payload).__name__}", endpoint=endpoint)
    try:
        return [factory(record) for record in payload]
    except (KeyError, TypeError, ValueError) as exc:
        raise TransportError(f"Malformed record in listing: {exc!r}", endpoint=endpoint) from exc


@dataclass(slots=True)
class EventRepository:
    transport: Transport
    resource: str = "/events"

    async def fetch_window(self, start: datetime, end: datetime) -> List[Event]:
        records = await self.transport.send(f"{self.resource}?{window_query(start, end)}")
        return decode_records(records, Event.from_record, endpoint=self.resource)

    async def create(self, draft: EventDraft, *, idempotency_key: Optional[str] = None) -> Event:
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None
        response = await self.transport.send(self.resource, "POST", draft.to_payload(), headers=headers)
        return Event(
            id=str(response["id"]),
            title=draft.title,
            kind=draft.kind,
            start=draft.start,
            end=draft.end,
            created_by=draft.created_by,
            created_at=None,
        )

    async def delete(self, event_id: str, *, actor: str) -> None:
        await self.transport.send(
            f"{self.resource}/{quote(event_id, safe='')}",
            "DELETE",
            headers={"X-Band-Member": actor},
        )
