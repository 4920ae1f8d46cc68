from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List

from ...domain import Availability, AvailabilityDraft
from ..transport import Transport
from .events import decode_records, window_query


@dataclass(slots=True)
class AvailabilityRepository:
    transport: Transport
    resource: str = "/availability"

    async def fetch_window(self, start: datetime, end: datetime) -> List[Availability]:
        records = await self.transport.send(f"{self.resource}?{window_query(start, end)}")
        return decode_records(records, Availability.from_record, endpoint=self.resource)

    async def save(self, draft: AvailabilityDraft) -> Availability:
        """Upsert ``draft``; the service replaces overlapping intervals of the member."""

        response = await self.transport.send(self.resource, "POST", draft.to_payload())
        return Availability.from_record(response)
