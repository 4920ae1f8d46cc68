from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional
from uuid import uuid4

from ..domain import Availability, Event, MutationKind
from .context import ServiceContext
from .identity import require_actor

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CalendarService:
    """User-facing mutations: validate, apply optimistically, then send.

    A successful send triggers a debounced sync through the transport signal.
    Every mutating call takes the acting member explicitly.
    """

    context: ServiceContext

    async def create_event(
        self,
        *,
        actor: Optional[str],
        title: str,
        kind: Any,
        start: Any,
        end: Any,
    ) -> Event:
        created_by = require_actor(actor)
        draft = self.context.validator.event(
            {"title": title, "kind": kind, "start": start, "end": end, "createdBy": created_by}
        )
        # Shared by every retry and queued replay of this create.
        idempotency_key = uuid4().hex
        return await self.context.orchestrator.optimistic_update(
            MutationKind.EVENT_CREATE,
            draft,
            lambda: self.context.events.create(draft, idempotency_key=idempotency_key),
        )

    async def delete_event(self, *, actor: Optional[str], event_id: str) -> None:
        member = require_actor(actor)
        if not event_id:
            raise ValueError("Event ID is required")
        await self.context.orchestrator.optimistic_update(
            MutationKind.EVENT_DELETE,
            event_id,
            lambda: self.context.events.delete(event_id, actor=member),
        )

    async def save_availability(
        self,
        *,
        actor: Optional[str],
        start: Any,
        end: Any,
        status: Any,
    ) -> Availability:
        member = require_actor(actor)
        draft = self.context.validator.availability(
            {"memberName": member, "start": start, "end": end, "status": status}
        )
        return await self.context.orchestrator.optimistic_update(
            MutationKind.AVAILABILITY_UPSERT,
            draft,
            lambda: self.context.availability.save(draft),
        )

    def list_for_day(self, target_day: date) -> list[Event]:
        return self.context.view.events_for_day(target_day)

    def list_between(self, start: datetime, end: datetime) -> list[Event]:
        return self.context.view.events_between(start, end)

    def availability_for(self, member_name: str) -> list[Availability]:
        return self.context.view.availability_for_member(member_name)
