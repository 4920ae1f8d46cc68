from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ...core.upsert import overlaps, replace_overlapping
from ...core.validation import SyncWindow
from ...domain import (
    Availability,
    AvailabilityDraft,
    Event,
    EventDraft,
    MutationKind,
    OptimisticEntry,
)

logger = logging.getLogger(__name__)

ViewSnapshot = Tuple[Tuple[Event, ...], Tuple[Availability, ...]]


def stage_record(kind: MutationKind, payload: Any, token: str, applied_at: datetime) -> Any:
    """Turn a proposed mutation into the record shown until the server answers."""

    if kind is MutationKind.EVENT_CREATE:
        if not isinstance(payload, EventDraft):
            raise TypeError("event-create expects an EventDraft payload")
        return Event(
            id=token,
            title=payload.title,
            kind=payload.kind,
            start=payload.start,
            end=payload.end,
            created_by=payload.created_by,
            created_at=applied_at,
        )
    if kind is MutationKind.AVAILABILITY_UPSERT:
        if not isinstance(payload, AvailabilityDraft):
            raise TypeError("availability-upsert expects an AvailabilityDraft payload")
        return Availability(
            id=token,
            member_name=payload.member_name,
            start=payload.start,
            end=payload.end,
            status=payload.status,
            updated_at=applied_at,
        )
    if kind is MutationKind.EVENT_DELETE:
        return str(payload)
    raise ValueError(f"Unsupported mutation kind: {kind!r}")


@dataclass
class LocalView:
    """What the client currently shows: server truth plus pending optimistic changes.

    ``events_by_id`` and ``availability_by_id`` hold the last merged server
    state. Optimistic entries are kept apart, in application order, and layered
    on top whenever the view is read, so discarding an entry restores exactly
    what was shown before it was applied.
    """

    events_by_id: Dict[str, Event] = field(default_factory=dict)
    availability_by_id: Dict[str, Availability] = field(default_factory=dict)
    optimistic: "OrderedDict[str, OptimisticEntry]" = field(default_factory=OrderedDict)
    window: Optional[SyncWindow] = None
    merged_at: Optional[datetime] = None

    def hydrate(
        self,
        events: Iterable[Event],
        availability: Iterable[Availability],
        *,
        window: Optional[SyncWindow] = None,
        merged_at: Optional[datetime] = None,
    ) -> None:
        """Replace server state wholesale; optimistic entries stay layered on top."""

        self.events_by_id = {event.id: event for event in events}
        self.availability_by_id = {record.id: record for record in availability}
        self.window = window
        self.merged_at = merged_at

    def apply(self, entry: OptimisticEntry) -> None:
        self.optimistic[entry.token] = entry
        logger.debug("Applied optimistic %s (%s)", entry.kind.value, entry.token)

    def discard(self, token: str) -> Optional[OptimisticEntry]:
        entry = self.optimistic.pop(token, None)
        if entry is not None:
            logger.debug("Discarded optimistic %s (%s)", entry.kind.value, token)
        return entry

    def confirm(self, token: str, confirmed: Any) -> Optional[OptimisticEntry]:
        """Drop the optimistic entry and fold the server-confirmed value into server state."""

        entry = self.optimistic.pop(token, None)
        if entry is None:
            return None
        if entry.kind is MutationKind.EVENT_CREATE and isinstance(confirmed, Event):
            self.events_by_id[confirmed.id] = confirmed
        elif entry.kind is MutationKind.EVENT_DELETE:
            self.events_by_id.pop(str(entry.payload), None)
        elif entry.kind is MutationKind.AVAILABILITY_UPSERT and isinstance(confirmed, Availability):
            merged = replace_overlapping(list(self.availability_by_id.values()), confirmed)
            self.availability_by_id = {record.id: record for record in merged}
        return entry

    def _render(self) -> Tuple[Dict[str, Event], List[Availability]]:
        events = dict(self.events_by_id)
        availability = list(self.availability_by_id.values())
        for entry in self.optimistic.values():
            if entry.kind is MutationKind.EVENT_CREATE:
                events[entry.payload.id] = entry.payload
            elif entry.kind is MutationKind.EVENT_DELETE:
                events.pop(entry.payload, None)
            elif entry.kind is MutationKind.AVAILABILITY_UPSERT:
                availability = replace_overlapping(availability, entry.payload)
        return events, availability

    def events(self) -> List[Event]:
        events, _ = self._render()
        return sorted(events.values(), key=lambda item: (item.start, item.id))

    def availability(self) -> List[Availability]:
        _, availability = self._render()
        return sorted(availability, key=lambda item: (item.start, item.member_name, item.id))

    def availability_for_member(self, member_name: str) -> List[Availability]:
        return [record for record in self.availability() if record.member_name == member_name]

    def events_for_day(self, target_day: date) -> List[Event]:
        return [
            event
            for event in self.events()
            if event.start.date() <= target_day <= event.end.date()
        ]

    def events_between(self, start: datetime, end: datetime) -> List[Event]:
        return [event for event in self.events() if overlaps(event.start, event.end, start, end)]

    def snapshot(self) -> ViewSnapshot:
        return tuple(self.events()), tuple(self.availability())


__all__ = ["LocalView", "ViewSnapshot", "stage_record"]
