"""Shared fixtures for band_sync tests."""

from __future__ import annotations

import asyncio
from datetime import datetime, time, timedelta, timezone
from typing import List

import httpx
import pytest
import pytest_asyncio

from band_sync.config import (
    AppSettings,
    CacheSettings,
    IdentitySettings,
    LoggingSettings,
    ServerSettings,
    SyncSettings,
    TransportSettings,
)
from band_sync.core import RecordStore, Validator
from band_sync.services import ServiceContext, StaticIdentity
from band_sync.services.http import create_app

FIXED_NOW = datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc)
BASE_URL = "http://band-sync.test"


class RecordingSleep:
    """Stand-in for ``asyncio.sleep`` that records delays and only yields once."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


def at(day: datetime, hour: int, minute: int = 0) -> str:
    return day.replace(hour=hour, minute=minute).isoformat()


@pytest.fixture
def settings(tmp_path) -> AppSettings:
    return AppSettings(
        transport=TransportSettings(base_url=BASE_URL, timeout=5.0, retry_attempts=3, retry_base_delay=1.0),
        sync=SyncSettings(
            poll_interval=timedelta(seconds=60),
            focus_min_gap=timedelta(seconds=30),
            network_settle_delay=timedelta(seconds=2),
            mutation_debounce=timedelta(seconds=1),
            window_months=2,
            timezone="UTC",
        ),
        cache=CacheSettings(fresh_for=timedelta(0), ttl_minutes=5),
        server=ServerSettings(
            allowed_origins=("https://band.example",),
            max_body_bytes=10 * 1024,
            store_path=tmp_path / "store.json",
            privileged_members=("YAMCHI",),
        ),
        identity=IdentitySettings(members=("COKAI", "YUSUKE", "ZEN", "YAMCHI"), max_nickname_length=20),
        log=LoggingSettings(level="DEBUG", file=tmp_path / "band_sync.log"),
    )


@pytest.fixture
def validator() -> Validator:
    return Validator(clock=lambda: FIXED_NOW)


@pytest.fixture
def store() -> RecordStore:
    return RecordStore()


@pytest.fixture
def day1() -> datetime:
    """Start of FIXED_NOW's next day, inside the fixed validator's window."""

    return datetime.combine(FIXED_NOW.date() + timedelta(days=1), time.min, tzinfo=timezone.utc)


@pytest.fixture
def tomorrow() -> datetime:
    """Start of the real next day, for code paths that read the wall clock."""

    return datetime.combine(datetime.now(timezone.utc).date() + timedelta(days=1), time.min, tzinfo=timezone.utc)


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def app(settings, store):
    return create_app(settings, store=store)


@pytest_asyncio.fixture
async def context(settings, app, sleep):
    client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url=BASE_URL)
    ctx = ServiceContext(settings=settings, identity=StaticIdentity("COKAI"), client=client, sleep=sleep)
    yield ctx
    await ctx.aclose()
    await client.aclose()
