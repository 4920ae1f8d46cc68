from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional, Protocol

import orjson

from ..domain.errors import IdentityMissingError

logger = logging.getLogger(__name__)


class IdentityProvider(Protocol):
    def display_name(self) -> Optional[str]:
        ...


def require_actor(actor: Optional[str]) -> str:
    """Return the trimmed actor name or fail fast when none is available."""

    if actor is None or not actor.strip():
        raise IdentityMissingError("A member name is required for this action.")
    return actor.strip()


@dataclass(frozen=True)
class StaticIdentity:
    name: Optional[str]

    def display_name(self) -> Optional[str]:
        return self.name


@dataclass
class MemberIdentity:
    """The member selected on this device, chosen from the band roster."""

    members: tuple[str, ...]
    path: Optional[Path] = None
    max_length: int = 20
    _selected: Optional[str] = field(default=None, init=False)

    def __post_init__(self) -> None:
        if self.path is None or not self.path.exists():
            return
        raw = self.path.read_bytes()
        if not raw:
            return
        try:
            loaded = orjson.loads(raw)
        except orjson.JSONDecodeError:
            logger.warning("Ignoring unreadable identity file %s", self.path)
            return
        if not isinstance(loaded, dict):
            logger.warning("Ignoring identity file %s without a nickname object", self.path)
            return
        stored = loaded.get("nickname")
        if stored in self.members:
            self._selected = stored

    @classmethod
    def from_roster(
        cls, members: Iterable[str], *, path: Optional[Path] = None, max_length: int = 20
    ) -> "MemberIdentity":
        return cls(members=tuple(members), path=path, max_length=max_length)

    def display_name(self) -> Optional[str]:
        return self._selected

    def select(self, nickname: str) -> str:
        trimmed = nickname.strip() if isinstance(nickname, str) else ""
        if not trimmed or len(trimmed) > self.max_length:
            raise ValueError(f"Nickname must be between 1 and {self.max_length} characters.")
        if trimmed not in self.members:
            raise ValueError(f"{trimmed} is not a band member.")
        self._selected = trimmed
        self._persist()
        logger.info("Member selected: %s", trimmed)
        return trimmed

    def clear(self) -> None:
        self._selected = None
        self._persist()

    def _persist(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_bytes(orjson.dumps({"nickname": self._selected}))


__all__ = ["IdentityProvider", "MemberIdentity", "StaticIdentity", "require_actor"]
