from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import orjson

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CacheEntry:
    data: Any
    stored_at: float
    expires_at: Optional[float]

    def expired(self, now: float) -> bool:
        return self.expires_at is not None and now > self.expires_at

    def age(self, now: float) -> float:
        return now - self.stored_at


class ReadCache:
    """Key/value cache for GET responses with per-entry lifetimes.

    Entries live in memory and, when ``path`` is given, are mirrored to an
    orjson file so reads survive a restart while the device is offline.
    """

    def __init__(self, path: Optional[Path] = None, *, clock: Callable[[], float] = time.time) -> None:
        self._path = path
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._load()

    def _load(self) -> None:
        if self._path is None or not self._path.exists():
            return
        raw = self._path.read_bytes()
        if not raw:
            return
        try:
            payload = orjson.loads(raw)
        except orjson.JSONDecodeError:
            logger.warning("Discarding unreadable cache file %s", self._path)
            return
        if not isinstance(payload, dict):
            logger.warning("Discarding cache file %s with unexpected layout", self._path)
            return
        for key, item in payload.items():
            self._entries[key] = CacheEntry(
                data=item["data"],
                stored_at=float(item["stored_at"]),
                expires_at=item.get("expires_at"),
            )
        self.purge_expired()

    def _persist(self) -> None:
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            key: {"data": entry.data, "stored_at": entry.stored_at, "expires_at": entry.expires_at}
            for key, entry in self._entries.items()
        }
        self._path.write_bytes(orjson.dumps(payload))

    def entry(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expired(self._clock()):
            self._entries.pop(key, None)
            self._persist()
            return None
        return entry

    def get(self, key: str) -> Any:
        entry = self.entry(key)
        return entry.data if entry else None

    def age(self, key: str) -> Optional[float]:
        entry = self.entry(key)
        return entry.age(self._clock()) if entry else None

    def set(self, key: str, value: Any, ttl_minutes: Optional[float] = 60) -> None:
        now = self._clock()
        expires_at = now + ttl_minutes * 60 if ttl_minutes is not None else None
        self._entries[key] = CacheEntry(data=value, stored_at=now, expires_at=expires_at)
        self._persist()

    def invalidate(self, prefix: str = "") -> int:
        doomed = [key for key in self._entries if key.startswith(prefix)]
        for key in doomed:
            del self._entries[key]
        if doomed:
            self._persist()
            logger.debug("Invalidated %d cache entries with prefix %r", len(doomed), prefix)
        return len(doomed)

    def purge_expired(self) -> int:
        now = self._clock()
        doomed = [key for key, entry in self._entries.items() if entry.expired(now)]
        for key in doomed:
            del self._entries[key]
        if doomed:
            self._persist()
            logger.info("Cleaned %d expired cache entries", len(doomed))
        return len(doomed)

    def stats(self) -> Dict[str, Any]:
        return {"items": len(self._entries), "persistent": self._path is not None}

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["CacheEntry", "ReadCache"]
