"""Application services orchestrating data access and domain logic."""

from __future__ import annotations

from .calendar import CalendarService
from .context import ServiceContext
from .identity import IdentityProvider, MemberIdentity, StaticIdentity, require_actor
from .sync import SyncOrchestrator, detect_conflicts

__all__ = [
    "CalendarService",
    "IdentityProvider",
    "MemberIdentity",
    "ServiceContext",
    "StaticIdentity",
    "SyncOrchestrator",
    "detect_conflicts",
    "require_actor",
]
