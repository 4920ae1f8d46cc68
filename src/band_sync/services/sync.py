"""Polling-based synchronization with conflict advisories and optimistic updates.

The orchestrator is idle or running; ``_sync_in_flight`` is the only guard.
A trigger that fires while a sync is running is dropped, the polling timer
simply fires again at its next tick. A failed fetch leaves the last merged
view untouched.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Set, TypeVar
from uuid import uuid4

from ..core.upsert import overlaps
from ..core.validation import Validator
from ..data.cache import LocalView, stage_record
from ..data.network import NetworkMonitor
from ..data.repositories import AvailabilityRepository, EventRepository
from ..domain import (
    BandSyncError,
    ConflictAdvisory,
    Event,
    MutationKind,
    OptimisticEntry,
    Signal,
    SyncEvent,
    SyncEventType,
    SyncTrigger,
)
from ..domain.models import utc_now
from .identity import IdentityProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[Any]]


def detect_conflicts(events: Iterable[Event], actor: Optional[str]) -> List[ConflictAdvisory]:
    """Pair each of ``actor``'s Events with every other member's Event it overlaps."""

    if not actor:
        return []
    own = [event for event in events if event.created_by == actor]
    others = [event for event in events if event.created_by != actor]
    return [
        ConflictAdvisory(own_event=mine, other_event=theirs)
        for mine in own
        for theirs in others
        if overlaps(mine.start, mine.end, theirs.start, theirs.end)
    ]


class SyncOrchestrator:
    def __init__(
        self,
        *,
        events: EventRepository,
        availability: AvailabilityRepository,
        view: LocalView,
        validator: Validator,
        identity: IdentityProvider,
        network: NetworkMonitor,
        poll_interval: float = 60.0,
        focus_min_gap: float = 30.0,
        network_settle_delay: float = 2.0,
        mutation_debounce: float = 1.0,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.events = events
        self.availability = availability
        self.view = view
        self.validator = validator
        self.identity = identity
        self.network = network
        self.poll_interval = poll_interval
        self.focus_min_gap = focus_min_gap
        self.network_settle_delay = network_settle_delay
        self.mutation_debounce = mutation_debounce
        self._sleep = sleep
        self._clock = clock

        self.sync_events: Signal[SyncEvent] = Signal("sync-events")
        self.last_sync_at: Optional[datetime] = None
        self.last_conflicts: List[ConflictAdvisory] = []
        self._last_success: Optional[float] = None
        self._sync_in_flight = False
        self._active = False
        self._poll_task: Optional[asyncio.Task] = None
        self._scheduled: Dict[SyncTrigger, asyncio.Task] = {}
        self._tasks: Set[asyncio.Task] = set()

        self.network.restored.connect(self._on_network_restored)

    def on_sync_event(self, handler: Callable[[SyncEvent], None]) -> Callable[[], None]:
        """Subscribe ``handler``; returns a callable that unsubscribes it."""

        return self.sync_events.connect(handler)

    def _notify(self, event_type: SyncEventType, trigger: Optional[SyncTrigger] = None, **detail: Any) -> None:
        self.sync_events.emit(SyncEvent(type=event_type, trigger=trigger, detail=detail))

    @property
    def in_flight(self) -> bool:
        return self._sync_in_flight

    # lifecycle

    def start(self) -> None:
        if self._active:
            return
        self._active = True
        self._poll_task = asyncio.get_running_loop().create_task(self._poll())
        logger.info("Synchronization started (every %.0fs)", self.poll_interval)

    async def stop(self) -> None:
        if not self._active and not self._tasks:
            return
        self._active = False
        tasks = [task for task in [self._poll_task, *self._tasks] if task is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._poll_task = None
        self._scheduled.clear()
        logger.info("Synchronization stopped")

    async def wait_idle(self) -> None:
        """Wait until no triggered sync is pending or running."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _poll(self) -> None:
        while self._active:
            await self._sleep(self.poll_interval)
            await self._sync_logged(SyncTrigger.POLLING)

    async def _sync_logged(self, trigger: SyncTrigger) -> bool:
        # Background triggers must outlive a failed cycle.
        try:
            return await self.perform_sync(trigger)
        except Exception:
            logger.exception("Unexpected failure during %s sync", trigger.value)
            return False

    # triggers

    def _schedule(self, trigger: SyncTrigger, delay: float) -> Optional[asyncio.Task]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("Cannot schedule %s sync outside an event loop", trigger.value)
            return None
        previous = self._scheduled.pop(trigger, None)
        if previous is not None and not previous.done():
            previous.cancel()
        task = loop.create_task(self._delayed_sync(trigger, delay))
        self._scheduled[trigger] = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _delayed_sync(self, trigger: SyncTrigger, delay: float) -> None:
        if delay > 0:
            await self._sleep(delay)
        if self._scheduled.get(trigger) is asyncio.current_task():
            del self._scheduled[trigger]
        await self._sync_logged(trigger)

    def on_app_focus(self) -> Optional[asyncio.Task]:
        """Sync when the app regains focus, unless the last success is recent."""

        if self._last_success is not None and self._clock() - self._last_success < self.focus_min_gap:
            logger.debug("App focused, last sync is recent; skipping")
            return None
        logger.info("App focused - checking for updates")
        return self._schedule(SyncTrigger.APP_FOCUS, 0)

    def notify_local_mutation(self) -> Optional[asyncio.Task]:
        """Debounced: a burst of local mutations produces one sync."""

        return self._schedule(SyncTrigger.DATA_CHANGE, self.mutation_debounce)

    def _on_network_restored(self, _: datetime) -> None:
        logger.info("Network restored - scheduling sync")
        self._schedule(SyncTrigger.NETWORK_RESTORE, self.network_settle_delay)

    async def request_sync(self) -> bool:
        return await self.perform_sync(SyncTrigger.MANUAL)

    # fetch and merge

    async def perform_sync(self, trigger: SyncTrigger = SyncTrigger.MANUAL) -> bool:
        """Fetch both record kinds for the sync window and merge them.

        Returns ``True`` when a merge happened. Dropped triggers, offline
        attempts and failed fetches return ``False``.
        """

        if self._sync_in_flight:
            logger.debug("Sync already running; dropping %s trigger", trigger.value)
            return False
        if not self.network.is_online:
            logger.debug("Offline; skipping %s sync", trigger.value)
            return False

        self._sync_in_flight = True
        try:
            logger.info("Starting sync (trigger: %s)", trigger.value)
            self._notify(SyncEventType.SYNC_START, trigger)
            window = self.validator.window()
            try:
                events, availability = await asyncio.gather(
                    self.events.fetch_window(window.start, window.end),
                    self.availability.fetch_window(window.start, window.end),
                )
            except (BandSyncError, KeyError, ValueError) as exc:
                logger.error("Sync failed (trigger: %s): %s", trigger.value, exc)
                self._notify(SyncEventType.SYNC_ERROR, trigger, error=str(exc))
                return False

            merged_at = utc_now()
            self.view.hydrate(events, availability, window=window, merged_at=merged_at)

            conflicts = detect_conflicts(events, self.identity.display_name())
            self.last_conflicts = conflicts
            for conflict in conflicts:
                logger.warning(
                    "Event overlap detected: '%s' overlaps '%s' by %s",
                    conflict.own_event.title,
                    conflict.other_event.title,
                    conflict.other_member,
                )
            if conflicts:
                self._notify(SyncEventType.CONFLICT, trigger, conflicts=conflicts)

            self.last_sync_at = merged_at
            self._last_success = self._clock()
            self._notify(
                SyncEventType.SYNC_SUCCESS,
                trigger,
                timestamp=merged_at,
                events_count=len(events),
                availability_count=len(availability),
            )
            logger.info(
                "Sync completed (%d events, %d availability)", len(events), len(availability)
            )
            return True
        finally:
            self._sync_in_flight = False

    # optimistic updates

    async def optimistic_update(
        self,
        kind: MutationKind,
        payload: Any,
        perform_request: Callable[[], Awaitable[T]],
    ) -> T:
        """Show ``payload`` at once, then confirm or roll back on the request's outcome.

        On failure the entry is removed, a rollback event is emitted and the
        error is re-raised to the caller.
        """

        applied_at = utc_now()
        token = f"optimistic-{uuid4().hex}"
        entry = OptimisticEntry(
            token=token,
            kind=kind,
            payload=stage_record(kind, payload, token, applied_at),
            applied_at=applied_at,
        )
        self.view.apply(entry)
        logger.info("Applying optimistic update: %s", kind.value)
        self._notify(SyncEventType.OPTIMISTIC_APPLIED, token=token, kind=kind, payload=entry.payload)

        try:
            result = await perform_request()
        except (Exception, asyncio.CancelledError) as exc:
            self.view.discard(token)
            logger.warning("Rolling back optimistic update %s: %s", kind.value, exc)
            self._notify(SyncEventType.ROLLBACK, token=token, kind=kind, payload=entry.payload, error=str(exc))
            raise

        self.view.confirm(token, result)
        logger.info("Confirmed optimistic update: %s", kind.value)
        self._notify(SyncEventType.CONFIRMED, token=token, kind=kind, result=result)
        return result

    def status(self) -> Dict[str, Any]:
        return {
            "is_active": self._active,
            "sync_in_progress": self._sync_in_flight,
            "last_sync_time": self.last_sync_at,
            "conflict_count": len(self.last_conflicts),
            "is_online": self.network.is_online,
        }


__all__ = ["SyncOrchestrator", "detect_conflicts"]
