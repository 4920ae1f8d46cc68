"""Client-side caches: the read cache and the local view."""

from __future__ import annotations

from .local_view import LocalView, ViewSnapshot, stage_record
from .read_cache import CacheEntry, ReadCache

__all__ = ["CacheEntry", "LocalView", "ReadCache", "ViewSnapshot", "stage_record"]
