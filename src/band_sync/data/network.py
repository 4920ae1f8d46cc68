from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..domain.models import utc_now
from ..domain.signals import Signal

logger = logging.getLogger(__name__)


class NetworkMonitor:
    """Tracks whether the device is online and announces transitions.

    The host feeds connectivity changes in through :meth:`set_online`; the
    Transport drains its queue on ``restored`` and the Sync Orchestrator
    schedules a sync on the same signal.
    """

    def __init__(self, online: bool = True) -> None:
        self._online = online
        self.changed_at: Optional[datetime] = None
        self.restored: Signal[datetime] = Signal("network-restored")
        self.lost: Signal[datetime] = Signal("network-lost")

    @property
    def is_online(self) -> bool:
        return self._online

    def set_online(self, online: bool) -> None:
        if online == self._online:
            return
        self._online = online
        self.changed_at = utc_now()
        if online:
            logger.info("Network restored")
            self.restored.emit(self.changed_at)
        else:
            logger.info("Network lost")
            self.lost.emit(self.changed_at)
