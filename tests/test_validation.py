from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from band_sync.core import SyncWindow, Validator
from band_sync.core.validation import add_months, parse_instant, validate_enum, validate_string
from band_sync.domain import AvailabilityStatus, ErrorReason, EventKind, ValidationError

from .conftest import FIXED_NOW


def event_payload(**overrides):
    payload = {
        "title": "LIVE at Shelter",
        "kind": "live",
        "start": "2026-10-20T19:00:00+00:00",
        "end": "2026-10-20T21:00:00+00:00",
        "createdBy": "COKAI",
    }
    payload.update(overrides)
    return payload


def availability_payload(**overrides):
    payload = {
        "memberName": "ZEN",
        "start": "2026-10-20T09:00:00+00:00",
        "end": "2026-10-20T12:00:00+00:00",
        "status": "available",
    }
    payload.update(overrides)
    return payload


class TestSyncWindow:
    """The window runs from today 00:00 to the last instant of the day two months on."""

    def test_bounds(self):
        window = SyncWindow.current(now=FIXED_NOW)
        assert window.start == datetime(2026, 10, 18, tzinfo=timezone.utc)
        assert window.end == datetime(2026, 12, 18, 23, 59, 59, 999999, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        "start",
        ["2026-10-18T00:00:00+00:00", "2026-12-18T23:59:59+00:00"],
    )
    def test_boundaries_accepted(self, validator, start):
        start_at = parse_instant(start, "start")
        window = validator.check_window(start_at)
        assert window.contains(start_at)

    @pytest.mark.parametrize(
        "start",
        ["2026-10-17T23:59:59+00:00", "2026-12-19T00:00:00+00:00", "2025-01-01T10:00:00+00:00"],
    )
    def test_outside_rejected(self, validator, start):
        with pytest.raises(ValidationError) as info:
            validator.check_window(parse_instant(start, "start"))
        assert info.value.reason is ErrorReason.OUT_OF_WINDOW

    def test_local_day_follows_timezone(self):
        tokyo = ZoneInfo("Asia/Tokyo")
        validator = Validator(tz=tokyo, clock=lambda: datetime(2026, 10, 18, 16, 0, tzinfo=timezone.utc))
        window = validator.window()
        assert window.start == datetime(2026, 10, 19, tzinfo=tokyo)
        assert window.end.date() == datetime(2026, 12, 19).date()


class TestAddMonths:
    def test_clamps_to_month_end(self):
        assert add_months(datetime(2026, 12, 31), 2) == datetime(2027, 2, 28)

    def test_leap_year(self):
        assert add_months(datetime(2027, 11, 30), 3) == datetime(2028, 2, 29)

    def test_crosses_year(self):
        assert add_months(datetime(2026, 11, 15), 2) == datetime(2027, 1, 15)


class TestFieldChecks:
    def test_string_is_trimmed(self):
        assert validate_string("  Rehearsal  ", "title") == "Rehearsal"

    @pytest.mark.parametrize("value", ["<script>alert(1)</script>", "javascript:void(0)", "x onclick=run()"])
    def test_markup_rejected(self, value):
        with pytest.raises(ValidationError) as info:
            validate_string(value, "title")
        assert info.value.reason is ErrorReason.UNSAFE_CONTENT

    def test_too_long(self):
        with pytest.raises(ValidationError) as info:
            validate_string("a" * 101, "title", max_length=100)
        assert info.value.reason is ErrorReason.BAD_LENGTH

    def test_enum(self):
        assert validate_enum("rehearsal", EventKind, "kind") is EventKind.REHEARSAL
        with pytest.raises(ValidationError) as info:
            validate_enum("party", EventKind, "kind")
        assert info.value.reason is ErrorReason.BAD_ENUM
        assert info.value.field == "kind"

    def test_unparseable_timestamp(self):
        with pytest.raises(ValidationError) as info:
            parse_instant("next tuesday", "start")
        assert info.value.reason is ErrorReason.BAD_RANGE

    def test_naive_timestamp_takes_zone(self):
        tokyo = ZoneInfo("Asia/Tokyo")
        assert parse_instant("2026-10-20T10:00:00", "start", tz=tokyo).tzinfo is tokyo


class TestRecordValidation:
    def test_valid_event(self, validator):
        draft = validator.event(event_payload())
        assert draft.kind is EventKind.LIVE
        assert draft.end - draft.start == timedelta(hours=2)

    def test_valid_availability(self, validator):
        draft = validator.availability(availability_payload())
        assert draft.status is AvailabilityStatus.AVAILABLE
        assert draft.member_name == "ZEN"

    def test_missing_field(self, validator):
        with pytest.raises(ValidationError) as info:
            validator.event(event_payload(title="  "))
        assert info.value.reason is ErrorReason.MISSING_FIELD
        assert info.value.field == "title"

    @pytest.mark.parametrize(
        "start,end",
        [
            ("2026-10-20T21:00:00+00:00", "2026-10-20T19:00:00+00:00"),
            ("2026-10-20T19:00:00+00:00", "2026-10-20T19:00:00+00:00"),
        ],
    )
    def test_range_rejected_for_both_kinds(self, validator, start, end):
        with pytest.raises(ValidationError) as event_info:
            validator.event(event_payload(start=start, end=end))
        with pytest.raises(ValidationError) as availability_info:
            validator.availability(availability_payload(start=start, end=end))
        assert event_info.value.reason is ErrorReason.BAD_RANGE
        assert availability_info.value.reason is ErrorReason.BAD_RANGE

    def test_out_of_window_event(self, validator):
        with pytest.raises(ValidationError) as info:
            validator.event(event_payload(start="2027-03-01T19:00:00+00:00", end="2027-03-01T21:00:00+00:00"))
        assert info.value.reason is ErrorReason.OUT_OF_WINDOW

    def test_error_payload(self, validator):
        with pytest.raises(ValidationError) as info:
            validator.availability(availability_payload(status="maybe"))
        assert info.value.to_payload()["reason"] == "bad-enum"
