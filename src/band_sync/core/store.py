from __future__ import annotations

import logging
import threading
from copy import deepcopy
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TypeVar
from uuid import uuid4

import orjson

logger = logging.getLogger(__name__)

R = TypeVar("R")

DEFAULT_STORE_STATE: Dict[str, Any] = {
    "events": [],
    "availability": [],
    "idempotency": {},
    "metadata": {"schema_version": 1},
}


class RecordStore:
    """Persistence layer backing the remote store service.

    All reads and writes go through :meth:`read` and :meth:`mutate`, which run
    their callback under one lock. A mutation is persisted in full after the
    callback returns, so a reader never observes a half-applied change. With no
    ``path`` the state lives in memory only.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = path
        self._state: Optional[Dict[str, Any]] = None
        self._lock = threading.RLock()

    def _ensure_materialized(self) -> Dict[str, Any]:
        if self._state is not None:
            return self._state
        if self._path is None or not self._path.exists():
            self._state = deepcopy(DEFAULT_STORE_STATE)
            return self._state
        raw = self._path.read_bytes()
        self._state = orjson.loads(raw) if raw else deepcopy(DEFAULT_STORE_STATE)
        # Backfill missing keys when upgrading.
        for key, value in DEFAULT_STORE_STATE.items():
            if key not in self._state:
                self._state[key] = deepcopy(value)
        logger.debug("Loaded store from %s", self._path)
        return self._state

    def persist(self) -> None:
        if self._state is None or self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = orjson.dumps(self._state, option=orjson.OPT_INDENT_2)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_bytes(payload + b"\n")
        tmp_path.replace(self._path)

    def read(self, callback: Callable[[Dict[str, Any]], R]) -> R:
        with self._lock:
            return callback(self._ensure_materialized())

    def mutate(self, callback: Callable[[Dict[str, Any]], R]) -> R:
        with self._lock:
            state = self._ensure_materialized()
            snapshot = deepcopy(state)
            try:
                result = callback(state)
            except Exception:
                self._state = snapshot
                raise
            self.persist()
            return result

    def events(self) -> List[Dict[str, Any]]:
        return self.read(lambda state: deepcopy(state["events"]))

    def availability(self) -> List[Dict[str, Any]]:
        return self.read(lambda state: deepcopy(state["availability"]))

    @staticmethod
    def new_id() -> str:
        return uuid4().hex


__all__ = ["RecordStore", "DEFAULT_STORE_STATE"]
