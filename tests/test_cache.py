from datetime import timedelta

import pytest

from band_sync.core import RecordStore
from band_sync.data import LocalView, ReadCache
from band_sync.data.cache import stage_record
from band_sync.domain import (
    Availability,
    AvailabilityDraft,
    AvailabilityStatus,
    Event,
    EventKind,
    MutationKind,
    OptimisticEntry,
)
from band_sync.domain.models import utc_now


class FakeClock:
    def __init__(self, now=1_000.0):
        self.now = now

    def __call__(self):
        return self.now


class TestReadCache:
    def test_expiry(self):
        clock = FakeClock()
        cache = ReadCache(clock=clock)
        cache.set("/events?a", [1], ttl_minutes=5)

        clock.now += 299
        assert cache.get("/events?a") == [1]
        assert cache.age("/events?a") == 299
        clock.now += 2
        assert cache.get("/events?a") is None
        assert len(cache) == 0

    def test_survives_restart(self, tmp_path):
        path = tmp_path / "cache.json"
        ReadCache(path).set("/availability?a", [{"id": "x"}], ttl_minutes=5)
        assert ReadCache(path).get("/availability?a") == [{"id": "x"}]

    def test_expired_entries_dropped_on_load(self, tmp_path):
        path = tmp_path / "cache.json"
        clock = FakeClock()
        ReadCache(path, clock=clock).set("/events?a", [], ttl_minutes=1)
        clock.now += 120
        assert len(ReadCache(path, clock=clock)) == 0

    def test_non_object_file_discarded(self, tmp_path):
        path = tmp_path / "cache.json"
        path.write_text("[]")
        cache = ReadCache(path)
        assert len(cache) == 0
        cache.set("/events?a", [1])
        assert ReadCache(path).get("/events?a") == [1]

    def test_invalidate_prefix(self):
        cache = ReadCache()
        cache.set("/events?a", [])
        cache.set("/events?b", [])
        cache.set("/availability?a", [])
        assert cache.invalidate("/events") == 2
        assert cache.stats() == {"items": 1, "persistent": False}


def make_event(event_id, day, created_by="ZEN"):
    return Event(
        id=event_id,
        title=event_id,
        kind=EventKind.REHEARSAL,
        start=day + timedelta(hours=19),
        end=day + timedelta(hours=21),
        created_by=created_by,
    )


def make_availability(record_id, day, start, end, status=AvailabilityStatus.AVAILABLE):
    return Availability(
        id=record_id,
        member_name="COKAI",
        start=day + timedelta(hours=start),
        end=day + timedelta(hours=end),
        status=status,
    )


def entry(kind, payload, token):
    applied_at = utc_now()
    return OptimisticEntry(token=token, kind=kind, payload=stage_record(kind, payload, token, applied_at), applied_at=applied_at)


class TestLocalView:
    def test_discard_restores_previous_view(self, tomorrow):
        view = LocalView()
        view.hydrate([make_event("a", tomorrow)], [make_availability("x", tomorrow, 9, 12)])
        before = view.snapshot()

        draft = AvailabilityDraft(
            member_name="COKAI",
            start=tomorrow + timedelta(hours=10),
            end=tomorrow + timedelta(hours=11),
            status=AvailabilityStatus.UNAVAILABLE,
        )
        view.apply(entry(MutationKind.AVAILABILITY_UPSERT, draft, "optimistic-1"))
        view.apply(entry(MutationKind.EVENT_DELETE, "a", "optimistic-2"))
        assert view.snapshot() != before
        assert view.events() == []
        assert [record.id for record in view.availability()] == ["optimistic-1"]

        view.discard("optimistic-2")
        view.discard("optimistic-1")
        assert view.snapshot() == before

    def test_overlays_survive_hydrate(self, tomorrow):
        view = LocalView()
        view.apply(entry(MutationKind.EVENT_DELETE, "a", "optimistic-1"))
        view.hydrate([make_event("a", tomorrow), make_event("b", tomorrow)], [])
        assert [event.id for event in view.events()] == ["b"]

    def test_confirm_delete_folds_into_base(self, tomorrow):
        view = LocalView()
        view.hydrate([make_event("a", tomorrow)], [])
        view.apply(entry(MutationKind.EVENT_DELETE, "a", "optimistic-1"))
        view.confirm("optimistic-1", None)
        assert view.optimistic == {}
        assert view.events_by_id == {}

    def test_day_and_range_queries(self, tomorrow):
        view = LocalView()
        view.hydrate([make_event("a", tomorrow), make_event("b", tomorrow + timedelta(days=1))], [])
        assert [event.id for event in view.events_for_day(tomorrow.date())] == ["a"]
        between = view.events_between(tomorrow + timedelta(hours=20), tomorrow + timedelta(days=1, hours=20))
        assert [event.id for event in between] == ["a", "b"]

    def test_stage_rejects_wrong_payload(self):
        with pytest.raises(TypeError):
            stage_record(MutationKind.EVENT_CREATE, {"title": "LIVE"}, "t", utc_now())


class TestRecordStore:
    def test_failed_mutation_rolls_back(self):
        store = RecordStore()

        def explode(state):
            state["events"].append({"id": "half"})
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            store.mutate(explode)
        assert store.events() == []

    def test_backfills_missing_keys(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text('{"events": []}')
        store = RecordStore(path)
        assert store.availability() == []
        assert store.read(lambda state: state["idempotency"]) == {}
