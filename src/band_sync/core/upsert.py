"""Replace-on-overlap writes for member availability.

For a fixed member no two stored intervals overlap. A new interval removes every
same-member interval it overlaps (half-open test) and is then inserted; the two
steps run inside one store mutation so no reader sees both old and new.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..domain.enums import AvailabilityStatus
from ..domain.models import Availability, AvailabilityDraft, utc_now
from .store import RecordStore
from .validation import Validator

logger = logging.getLogger(__name__)

QUERY_LIMIT = 1000


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """Half-open overlap test for ``[start_a, end_a)`` and ``[start_b, end_b)``."""

    return start_a < end_b and start_b < end_a


def split_overlapping(
    records: Iterable[Availability], member_name: str, start: datetime, end: datetime
) -> Tuple[List[Availability], List[Availability]]:
    """Partition ``records`` into (kept, overlapping) for ``member_name``."""

    kept: list[Availability] = []
    overlapping: list[Availability] = []
    for record in records:
        if record.member_name == member_name and overlaps(record.start, record.end, start, end):
            overlapping.append(record)
        else:
            kept.append(record)
    return kept, overlapping


def replace_overlapping(records: Sequence[Availability], new_record: Availability) -> List[Availability]:
    kept, _ = split_overlapping(records, new_record.member_name, new_record.start, new_record.end)
    kept.append(new_record)
    return kept


@dataclass(slots=True)
class UpsertResult:
    record: Availability
    replaced: List[Availability] = field(default_factory=list)


class AvailabilityUpsertEngine:
    def __init__(
        self,
        store: RecordStore,
        validator: Validator,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.validator = validator
        self._clock = clock

    def upsert(self, member_name: Any, start: Any, end: Any, status: Any) -> UpsertResult:
        draft = self.validator.availability(
            {"memberName": member_name, "start": start, "end": end, "status": status}
        )
        return self.apply(draft)

    def apply(self, draft: AvailabilityDraft) -> UpsertResult:
        """Write an already validated interval."""

        def _replace(state: Dict[str, Any]) -> UpsertResult:
            existing = [Availability.from_record(item) for item in state["availability"]]
            kept, removed = split_overlapping(existing, draft.member_name, draft.start, draft.end)
            record = Availability(
                id=RecordStore.new_id(),
                member_name=draft.member_name,
                start=draft.start,
                end=draft.end,
                status=draft.status,
                updated_at=self._clock(),
            )
            kept.append(record)
            state["availability"] = [item.to_record() for item in kept]
            return UpsertResult(record=record, replaced=removed)

        result = self.store.mutate(_replace)
        logger.info(
            "Upserted availability for %s (%s - %s, %s), replaced %d",
            draft.member_name,
            draft.start.isoformat(),
            draft.end.isoformat(),
            draft.status.value,
            len(result.replaced),
        )
        return result

    def query(
        self,
        start: datetime,
        end: datetime,
        *,
        member_name: Optional[str] = None,
        status: Optional[AvailabilityStatus] = None,
    ) -> List[Availability]:
        def _select(state: Dict[str, Any]) -> List[Availability]:
            records = [Availability.from_record(item) for item in state["availability"]]
            return [
                record
                for record in records
                if overlaps(record.start, record.end, start, end)
                and (member_name is None or record.member_name == member_name)
                and (status is None or record.status == status)
            ]

        selected = self.store.read(_select)
        selected.sort(key=lambda item: (item.start, item.member_name))
        return selected[:QUERY_LIMIT]


__all__ = [
    "AvailabilityUpsertEngine",
    "QUERY_LIMIT",
    "UpsertResult",
    "overlaps",
    "replace_overlapping",
    "split_overlapping",
]
