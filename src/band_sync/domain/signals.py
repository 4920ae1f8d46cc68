from __future__ import annotations

import logging
from typing import Callable, Generic, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Signal(Generic[T]):
    """One-to-many notification point with typed payloads.

    Handlers run synchronously in subscription order. A handler that raises is
    logged and skipped so one faulty subscriber cannot starve the others.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._handlers: List[Callable[[T], None]] = []

    def connect(self, handler: Callable[[T], None]) -> Callable[[], None]:
        self._handlers.append(handler)

        def disconnect() -> None:
            self.disconnect(handler)

        return disconnect

    def disconnect(self, handler: Callable[[T], None]) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    def emit(self, payload: T) -> None:
        for handler in list(self._handlers):
            try:
                handler(payload)
            except Exception:  # noqa: BLE001
                logger.exception("Handler for signal %s failed", self.name)

    def __len__(self) -> int:
        return len(self._handlers)
