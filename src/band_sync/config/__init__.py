"""Configuration models and helpers."""

from __future__ import annotations

from .settings import (
    AppSettings,
    CacheSettings,
    IdentitySettings,
    LoggingSettings,
    ServerSettings,
    SyncSettings,
    TransportSettings,
    get_settings,
)

__all__ = [
    "AppSettings",
    "CacheSettings",
    "IdentitySettings",
    "LoggingSettings",
    "ServerSettings",
    "SyncSettings",
    "TransportSettings",
    "get_settings",
]
