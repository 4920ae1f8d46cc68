"""Field checks shared by the client (to fail fast) and the service (as the authority).

Every check is a pure function of its inputs plus, for the sync window, the
instant passed in as ``now``. A caller composes the checks it needs and the
first failure surfaces as a :class:`ValidationError` carrying an
:class:`ErrorReason`.
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone, tzinfo
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, Optional, Type, TypeVar
from zoneinfo import ZoneInfo

from ..domain.enums import AvailabilityStatus, ErrorReason, EventKind
from ..domain.errors import ValidationError
from ..domain.models import AvailabilityDraft, EventDraft

E = TypeVar("E", bound=Enum)

UNSAFE_MARKUP = re.compile(r"<script|javascript:|on\w+=", re.IGNORECASE)

TITLE_MAX_LENGTH = 100
NAME_MAX_LENGTH = 50
DEFAULT_WINDOW_MONTHS = 2

EVENT_FIELDS = ("title", "kind", "start", "end", "createdBy")
AVAILABILITY_FIELDS = ("memberName", "start", "end", "status")


def resolve_timezone(name: str) -> tzinfo:
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def require_fields(payload: Mapping[str, Any], fields: Iterable[str]) -> None:
    missing = [name for name in fields if _is_blank(payload.get(name))]
    if missing:
        raise ValidationError(
            ErrorReason.MISSING_FIELD,
            missing[0],
            f"Missing required fields: {', '.join(missing)}",
        )


def validate_string(value: Any, field: str, *, min_length: int = 1, max_length: int = 255) -> str:
    """Return ``value`` trimmed, or raise if it is empty, too long or carries markup."""

    if not isinstance(value, str):
        raise ValidationError(ErrorReason.MISSING_FIELD, field, f"{field} must be a string")
    trimmed = value.strip()
    if not trimmed:
        raise ValidationError(ErrorReason.MISSING_FIELD, field, f"{field} is required")
    if len(trimmed) < min_length:
        raise ValidationError(ErrorReason.BAD_LENGTH, field, f"{field} must be at least {min_length} characters")
    if len(trimmed) > max_length:
        raise ValidationError(ErrorReason.BAD_LENGTH, field, f"{field} must be no more than {max_length} characters")
    if UNSAFE_MARKUP.search(trimmed):
        raise ValidationError(ErrorReason.UNSAFE_CONTENT, field, f"{field} contains invalid characters")
    return trimmed


def validate_enum(value: Any, enum_type: Type[E], field: str) -> E:
    if isinstance(value, enum_type):
        return value
    allowed = [member.value for member in enum_type]
    if value not in allowed:
        raise ValidationError(
            ErrorReason.BAD_ENUM,
            field,
            f"Invalid {field}. Must be one of: {', '.join(allowed)}",
        )
    return enum_type(value)


def parse_instant(value: Any, field: str, *, tz: tzinfo = timezone.utc) -> datetime:
    """Parse ``value`` as an instant. Naive values are read in ``tz``."""

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError as exc:
            raise ValidationError(
                ErrorReason.BAD_RANGE, field, f"{field} is not a valid ISO 8601 timestamp"
            ) from exc
    else:
        raise ValidationError(ErrorReason.BAD_RANGE, field, f"{field} is not a valid ISO 8601 timestamp")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def validate_time_range(start: Any, end: Any, *, tz: tzinfo = timezone.utc) -> tuple[datetime, datetime]:
    start_at = parse_instant(start, "start", tz=tz)
    end_at = parse_instant(end, "end", tz=tz)
    if start_at >= end_at:
        raise ValidationError(ErrorReason.BAD_RANGE, "start", "Start time must be before end time.")
    return start_at, end_at


def add_months(value: datetime, months: int) -> datetime:
    """Shift ``value`` by whole calendar months, clamping to the last day of the month."""

    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


@dataclass(frozen=True)
class SyncWindow:
    """Inclusive range of instants in which mutations are accepted.

    ``start`` is the beginning of the current local day; ``end`` is the last
    instant of the day ``months`` calendar months later.
    """

    start: datetime
    end: datetime

    @classmethod
    def current(
        cls,
        *,
        now: Optional[datetime] = None,
        tz: tzinfo = timezone.utc,
        months: int = DEFAULT_WINDOW_MONTHS,
    ) -> "SyncWindow":
        if now is None:
            now = datetime.now(tz)
        elif now.tzinfo is None:
            now = now.replace(tzinfo=tz)
        today_start = datetime.combine(now.astimezone(tz).date(), time.min, tzinfo=tz)
        last_day = add_months(today_start, months)
        end = last_day + timedelta(days=1) - timedelta(microseconds=1)
        return cls(start=today_start, end=end)

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant <= self.end


def validate_sync_window(
    start: datetime,
    *,
    now: Optional[datetime] = None,
    tz: tzinfo = timezone.utc,
    months: int = DEFAULT_WINDOW_MONTHS,
) -> SyncWindow:
    window = SyncWindow.current(now=now, tz=tz, months=months)
    if not window.contains(start):
        raise ValidationError(
            ErrorReason.OUT_OF_WINDOW,
            "start",
            f"Date must be within sync period (today to +{months} months).",
        )
    return window


class Validator:
    """Bundles the checks with the zone, window length and clock they depend on."""

    def __init__(
        self,
        *,
        tz: tzinfo = timezone.utc,
        window_months: int = DEFAULT_WINDOW_MONTHS,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.tz = tz
        self.window_months = window_months
        self._clock = clock or (lambda: datetime.now(self.tz))

    def window(self) -> SyncWindow:
        return SyncWindow.current(now=self._clock(), tz=self.tz, months=self.window_months)

    def time_range(self, start: Any, end: Any) -> tuple[datetime, datetime]:
        return validate_time_range(start, end, tz=self.tz)

    def check_window(self, start: datetime) -> SyncWindow:
        return validate_sync_window(start, now=self._clock(), tz=self.tz, months=self.window_months)

    def event(self, payload: Mapping[str, Any]) -> EventDraft:
        require_fields(payload, EVENT_FIELDS)
        title = validate_string(payload["title"], "title", max_length=TITLE_MAX_LENGTH)
        created_by = validate_string(payload["createdBy"], "createdBy", max_length=NAME_MAX_LENGTH)
        kind = validate_enum(payload["kind"], EventKind, "kind")
        start, end = self.time_range(payload["start"], payload["end"])
        self.check_window(start)
        return EventDraft(title=title, kind=kind, start=start, end=end, created_by=created_by)

    def availability(self, payload: Mapping[str, Any]) -> AvailabilityDraft:
        require_fields(payload, AVAILABILITY_FIELDS)
        member_name = validate_string(payload["memberName"], "memberName", max_length=NAME_MAX_LENGTH)
        status = validate_enum(payload["status"], AvailabilityStatus, "status")
        start, end = self.time_range(payload["start"], payload["end"])
        self.check_window(start)
        return AvailabilityDraft(member_name=member_name, start=start, end=end, status=status)


__all__ = [
    "AVAILABILITY_FIELDS",
    "EVENT_FIELDS",
    "SyncWindow",
    "UNSAFE_MARKUP",
    "Validator",
    "add_months",
    "parse_instant",
    "require_fields",
    "resolve_timezone",
    "validate_enum",
    "validate_string",
    "validate_sync_window",
    "validate_time_range",
]
