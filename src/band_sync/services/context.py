from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import httpx

from ..config import AppSettings, get_settings
from ..core.validation import Validator, resolve_timezone
from ..data import (
    AvailabilityRepository,
    EventRepository,
    LocalView,
    NetworkMonitor,
    ReadCache,
    RetryPolicy,
    Transport,
)
from .identity import IdentityProvider, StaticIdentity
from .sync import SyncOrchestrator


@dataclass(slots=True)
class ServiceContext:
    """Composition root: builds and owns one instance of every client-side collaborator."""

    settings: AppSettings = field(default_factory=get_settings)
    identity: IdentityProvider = field(default_factory=lambda: StaticIdentity(None))
    client: Optional[httpx.AsyncClient] = None
    cache_path: Optional[Path] = None
    online: bool = True
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    network: NetworkMonitor = field(init=False)
    cache: ReadCache = field(init=False)
    transport: Transport = field(init=False)
    validator: Validator = field(init=False)
    events: EventRepository = field(init=False)
    availability: AvailabilityRepository = field(init=False)
    view: LocalView = field(init=False)
    orchestrator: SyncOrchestrator = field(init=False)

    def __post_init__(self) -> None:
        transport_settings = self.settings.transport
        sync_settings = self.settings.sync
        self.network = NetworkMonitor(online=self.online)
        self.cache = ReadCache(self.cache_path)
        self.transport = Transport(
            transport_settings.base_url,
            network=self.network,
            cache=self.cache,
            client=self.client,
            policy=RetryPolicy(
                max_attempts=transport_settings.retry_attempts,
                base_delay=transport_settings.retry_base_delay,
            ),
            timeout=transport_settings.timeout,
            cache_fresh_for=self.settings.cache.fresh_for.total_seconds(),
            cache_ttl_minutes=self.settings.cache.ttl_minutes,
            sleep=self.sleep,
        )
        self.validator = Validator(
            tz=resolve_timezone(sync_settings.timezone),
            window_months=sync_settings.window_months,
        )
        self.events = EventRepository(self.transport)
        self.availability = AvailabilityRepository(self.transport)
        self.view = LocalView()
        self.orchestrator = SyncOrchestrator(
            events=self.events,
            availability=self.availability,
            view=self.view,
            validator=self.validator,
            identity=self.identity,
            network=self.network,
            poll_interval=sync_settings.poll_interval.total_seconds(),
            focus_min_gap=sync_settings.focus_min_gap.total_seconds(),
            network_settle_delay=sync_settings.network_settle_delay.total_seconds(),
            mutation_debounce=sync_settings.mutation_debounce.total_seconds(),
            sleep=self.sleep,
        )
        self.transport.mutation_succeeded.connect(lambda _: self.orchestrator.notify_local_mutation())

    async def aclose(self) -> None:
        await self.orchestrator.stop()
        await self.transport.aclose()
