from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class TransportSettings:
    base_url: str
    timeout: float
    retry_attempts: int
    retry_base_delay: float


@dataclass(frozen=True)
class SyncSettings:
    poll_interval: timedelta
    focus_min_gap: timedelta
    network_settle_delay: timedelta
    mutation_debounce: timedelta
    window_months: int
    timezone: str


@dataclass(frozen=True)
class CacheSettings:
    fresh_for: timedelta
    ttl_minutes: int


@dataclass(frozen=True)
class ServerSettings:
    allowed_origins: tuple[str, ...]
    max_body_bytes: int
    store_path: Optional[Path]
    privileged_members: tuple[str, ...]


@dataclass(frozen=True)
class IdentitySettings:
    members: tuple[str, ...]
    max_nickname_length: int


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"
    file: Optional[Path] = None
    max_bytes: int = 1_000_000
    backup_count: int = 5


@dataclass(frozen=True)
class AppSettings:
    transport: TransportSettings
    sync: SyncSettings
    cache: CacheSettings
    server: ServerSettings
    identity: IdentitySettings
    log: LoggingSettings


def _float_from_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _seconds_from_env(name: str, default_seconds: float) -> timedelta:
    return timedelta(seconds=_float_from_env(name, default_seconds))


def _list_from_env(name: str, default: str = "") -> tuple[str, ...]:
    raw = os.getenv(name, default)
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    transport = TransportSettings(
        base_url=os.getenv("BAND_SYNC_API_BASE_URL", "http://127.0.0.1:8787").rstrip("/"),
        timeout=_float_from_env("BAND_SYNC_REQUEST_TIMEOUT_SECONDS", 30.0),
        retry_attempts=max(_int_from_env("BAND_SYNC_RETRY_ATTEMPTS", 3), 1),
        retry_base_delay=_float_from_env("BAND_SYNC_RETRY_BASE_DELAY_SECONDS", 1.0),
    )

    sync = SyncSettings(
        poll_interval=_seconds_from_env("BAND_SYNC_POLL_INTERVAL_SECONDS", 60),
        focus_min_gap=_seconds_from_env("BAND_SYNC_FOCUS_MIN_GAP_SECONDS", 30),
        network_settle_delay=_seconds_from_env("BAND_SYNC_NETWORK_SETTLE_SECONDS", 2),
        mutation_debounce=_seconds_from_env("BAND_SYNC_MUTATION_DEBOUNCE_SECONDS", 1),
        window_months=_int_from_env("BAND_SYNC_WINDOW_MONTHS", 2),
        timezone=os.getenv("BAND_SYNC_TIMEZONE", "UTC"),
    )

    cache = CacheSettings(
        fresh_for=_seconds_from_env("BAND_SYNC_CACHE_FRESH_SECONDS", 30),
        ttl_minutes=_int_from_env("BAND_SYNC_CACHE_TTL_MINUTES", 5),
    )

    store_path = os.getenv("BAND_SYNC_STORE_PATH")
    server = ServerSettings(
        allowed_origins=_list_from_env("BAND_SYNC_ALLOWED_ORIGINS", "*"),
        max_body_bytes=_int_from_env("BAND_SYNC_MAX_BODY_BYTES", 10 * 1024),
        store_path=Path(store_path) if store_path else None,
        privileged_members=_list_from_env("BAND_SYNC_PRIVILEGED_MEMBERS"),
    )

    identity = IdentitySettings(
        members=_list_from_env("BAND_SYNC_MEMBERS", "COKAI,YUSUKE,ZEN,YAMCHI"),
        max_nickname_length=20,
    )

    log_file = os.getenv("BAND_SYNC_LOG_FILE")
    log = LoggingSettings(
        level=os.getenv("BAND_SYNC_LOG_LEVEL", "INFO").upper(),
        file=Path(log_file) if log_file else None,
        max_bytes=_int_from_env("BAND_SYNC_LOG_MAX_BYTES", 1_000_000),
        backup_count=_int_from_env("BAND_SYNC_LOG_BACKUPS", 5),
    )

    return AppSettings(
        transport=transport,
        sync=sync,
        cache=cache,
        server=server,
        identity=identity,
        log=log,
    )
