"""In-memory TTL + LRU cache for snapshots."""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass

from workflow_monitor.snapshot.models import Snapshot

logger = logging.getLogger("workflow_monitor.cache")

DEFAULT_TTL_MS = 30_000
DEFAULT_MAX_ENTRIES = 100


@dataclass
class CacheEntry:
    value: Snapshot
    expires_at: float


def cache_key(repository: str, focused_item_id: int | None = None) -> str:
    """Key for a board-only view (``owner/name``) or a PR view (``owner/name#12``)."""
    if focused_item_id:
        return f"{repository}#{focused_item_id}"
    return repository


class SnapshotCache:
    """Snapshot cache bounded by entry count and by age.

    Entries older than ``ttl_ms`` are absent even when the cache is not
    full. When more than ``max_entries`` are stored the least recently
    used entry is dropped. Board-only and per-PR views of one repository
    are separate entries.

    All operations are synchronous, so within one event loop a get or set
    is never interleaved with another.
    """

    def __init__(
        self,
        ttl_ms: int = DEFAULT_TTL_MS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_ms <= 0:
            raise ValueError("ttl_ms must be positive")
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self._ttl = ttl_ms / 1000.0
        self._max_entries = max_entries
        self._clock = clock
        self._store: OrderedDict[str, CacheEntry] = OrderedDict()

    @property
    def ttl_ms(self) -> int:
        return int(self._ttl * 1000)

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def get(self, repository: str, focused_item_id: int | None = None) -> Snapshot | None:
        key = cache_key(repository, focused_item_id)
        entry = self._store.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._store[key]
            logger.debug("Cache EXPIRED: %s", key)
            return None
        self._store.move_to_end(key)
        return entry.value

    def set(self, repository: str, focused_item_id: int | None, snapshot: Snapshot) -> None:
        key = cache_key(repository, focused_item_id)
        self._store[key] = CacheEntry(value=snapshot, expires_at=self._clock() + self._ttl)
        self._store.move_to_end(key)
        while len(self._store) > self._max_entries:
            evicted, _ = self._store.popitem(last=False)
            logger.debug("Cache EVICTED: %s", evicted)

    def invalidate(self, repository: str, focused_item_id: int | None = None) -> None:
        self._store.pop(cache_key(repository, focused_item_id), None)

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)
