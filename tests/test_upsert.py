from datetime import timedelta

import pytest

from band_sync.core import AvailabilityUpsertEngine, RecordStore, overlaps
from band_sync.domain import AvailabilityStatus, ErrorReason, ValidationError

from .conftest import at


@pytest.fixture
def engine(store, validator):
    return AvailabilityUpsertEngine(store, validator)


def member_records(engine, member, day):
    return engine.query(day, day + timedelta(days=1), member_name=member)


class TestOverlaps:
    def test_half_open(self, day1):
        nine, ten, eleven = (day1 + timedelta(hours=h) for h in (9, 10, 11))
        assert overlaps(nine, eleven, ten, eleven)
        assert not overlaps(nine, ten, ten, eleven)


class TestAvailabilityUpsert:
    def test_narrower_interval_replaces_wider(self, engine, day1):
        engine.upsert("COKAI", at(day1, 9), at(day1, 12), "available")
        result = engine.upsert("COKAI", at(day1, 10), at(day1, 11), "unavailable")

        records = member_records(engine, "COKAI", day1)
        assert len(records) == 1
        assert records[0].start == day1 + timedelta(hours=10)
        assert records[0].end == day1 + timedelta(hours=11)
        assert records[0].status is AvailabilityStatus.UNAVAILABLE
        assert len(result.replaced) == 1

    def test_disjoint_intervals_coexist(self, engine, day1):
        engine.upsert("COKAI", at(day1, 9), at(day1, 10), "available")
        engine.upsert("COKAI", at(day1, 10), at(day1, 12), "tentative")

        records = member_records(engine, "COKAI", day1)
        assert [record.status for record in records] == [AvailabilityStatus.AVAILABLE, AvailabilityStatus.TENTATIVE]

    def test_identical_interval_replaced(self, engine, day1):
        first = engine.upsert("ZEN", at(day1, 13), at(day1, 15), "available")
        second = engine.upsert("ZEN", at(day1, 13), at(day1, 15), "unavailable")

        records = member_records(engine, "ZEN", day1)
        assert [record.id for record in records] == [second.record.id]
        assert first.record.id != second.record.id

    def test_other_members_untouched(self, engine, day1):
        engine.upsert("YUSUKE", at(day1, 9), at(day1, 12), "available")
        engine.upsert("COKAI", at(day1, 8), at(day1, 13), "unavailable")

        assert len(member_records(engine, "YUSUKE", day1)) == 1
        assert len(engine.query(day1, day1 + timedelta(days=1))) == 2

    def test_invalid_upsert_leaves_store_unchanged(self, engine, store, day1):
        engine.upsert("COKAI", at(day1, 9), at(day1, 12), "available")
        before = store.availability()

        with pytest.raises(ValidationError) as info:
            engine.upsert("COKAI", at(day1, 10), at(day1, 9), "unavailable")

        assert info.value.reason is ErrorReason.BAD_RANGE
        assert store.availability() == before

    def test_status_filter(self, engine, day1):
        engine.upsert("COKAI", at(day1, 9), at(day1, 10), "available")
        engine.upsert("ZEN", at(day1, 9), at(day1, 10), "unavailable")

        unavailable = engine.query(day1, day1 + timedelta(days=1), status=AvailabilityStatus.UNAVAILABLE)
        assert [record.member_name for record in unavailable] == ["ZEN"]

    def test_persisted_to_disk(self, tmp_path, validator, day1):
        path = tmp_path / "store.json"
        AvailabilityUpsertEngine(RecordStore(path), validator).upsert("COKAI", at(day1, 9), at(day1, 12), "available")

        reloaded = AvailabilityUpsertEngine(RecordStore(path), validator)
        assert len(member_records(reloaded, "COKAI", day1)) == 1
