from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from ..domain.errors import PermissionDeniedError, RecordNotFoundError
from ..domain.models import Event, EventDraft, utc_now
from .store import RecordStore
from .upsert import QUERY_LIMIT, overlaps
from .validation import Validator

logger = logging.getLogger(__name__)


class EventLedger:
    """Shared Events: overlapping time ranges are allowed, records are immutable.

    An Event may be deleted by its creator or by a privileged member. Creation
    accepts an idempotency key; replaying a known key returns the Event created
    the first time instead of inserting a duplicate.
    """

    def __init__(
        self,
        store: RecordStore,
        validator: Validator,
        *,
        privileged_members: Iterable[str] = (),
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.validator = validator
        self.privileged_members = frozenset(privileged_members)
        self._clock = clock

    def create(self, payload: Mapping[str, Any], *, idempotency_key: Optional[str] = None) -> Tuple[Event, bool]:
        draft = self.validator.event(payload)
        return self.insert(draft, idempotency_key=idempotency_key)

    def insert(self, draft: EventDraft, *, idempotency_key: Optional[str] = None) -> Tuple[Event, bool]:
        def _insert(state: Dict[str, Any]) -> Tuple[Event, bool]:
            keys = state.setdefault("idempotency", {})
            if idempotency_key and idempotency_key in keys:
                known_id = keys[idempotency_key]
                for item in state["events"]:
                    if item["id"] == known_id:
                        return Event.from_record(item), False
            event = Event(
                id=RecordStore.new_id(),
                title=draft.title,
                kind=draft.kind,
                start=draft.start,
                end=draft.end,
                created_by=draft.created_by,
                created_at=self._clock(),
            )
            state["events"].append(event.to_record())
            if idempotency_key:
                keys[idempotency_key] = event.id
            return event, True

        event, created = self.store.mutate(_insert)
        if created:
            logger.info("Created event %s '%s' by %s", event.id, event.title, event.created_by)
        else:
            logger.info("Replayed idempotent create for event %s", event.id)
        return event, created

    def get(self, event_id: str) -> Event:
        def _find(state: Dict[str, Any]) -> Optional[Event]:
            for item in state["events"]:
                if item["id"] == event_id:
                    return Event.from_record(item)
            return None

        event = self.store.read(_find)
        if event is None:
            raise RecordNotFoundError(f"Event {event_id} not found.")
        return event

    def query(self, start: datetime, end: datetime, *, created_by: Optional[str] = None) -> List[Event]:
        def _select(state: Dict[str, Any]) -> List[Event]:
            events = [Event.from_record(item) for item in state["events"]]
            return [
                event
                for event in events
                if overlaps(event.start, event.end, start, end)
                and (created_by is None or event.created_by == created_by)
            ]

        selected = self.store.read(_select)
        selected.sort(key=lambda item: item.start)
        return selected[:QUERY_LIMIT]

    def can_delete(self, event: Event, actor: str) -> bool:
        return actor == event.created_by or actor in self.privileged_members

    def delete(self, event_id: str, actor: str) -> Event:
        def _delete(state: Dict[str, Any]) -> Event:
            for index, item in enumerate(state["events"]):
                if item["id"] != event_id:
                    continue
                event = Event.from_record(item)
                if not self.can_delete(event, actor):
                    raise PermissionDeniedError(f"{actor} may not delete event {event_id}.")
                del state["events"][index]
                return event
            raise RecordNotFoundError(f"Event {event_id} not found.")

        event = self.store.mutate(_delete)
        logger.info("Deleted event %s on behalf of %s", event_id, actor)
        return event


__all__ = ["EventLedger"]
