"""Data access layer."""

from __future__ import annotations

from .cache import LocalView, ReadCache
from .network import NetworkMonitor
from .repositories import AvailabilityRepository, EventRepository
from .transport import MutationFailed, MutationSucceeded, RetryPolicy, Transport

__all__ = [
    "AvailabilityRepository",
    "EventRepository",
    "LocalView",
    "MutationFailed",
    "MutationSucceeded",
    "NetworkMonitor",
    "ReadCache",
    "RetryPolicy",
    "Transport",
]
