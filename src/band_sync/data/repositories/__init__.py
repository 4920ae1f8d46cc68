"""Typed access to the remote store endpoints."""

from __future__ import annotations

from .availability import AvailabilityRepository
from .events import EventRepository

__all__ = ["AvailabilityRepository", "EventRepository"]
