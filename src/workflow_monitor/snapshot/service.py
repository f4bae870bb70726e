"""SnapshotService - Serves snapshots from cache, fetching on a miss."""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from workflow_monitor.snapshot.exceptions import InvalidRepositoryError, MissingCredentialError

if TYPE_CHECKING:
    from workflow_monitor.snapshot.cache import SnapshotCache
    from workflow_monitor.snapshot.fetcher import SnapshotFetcher
    from workflow_monitor.snapshot.models import Snapshot

logger = logging.getLogger("workflow_monitor.service")


class SnapshotService:
    """Request-level entry point in front of the fetcher.

    The cache and fetcher are injected once at startup. A None fetcher
    means no token is configured: cache misses fail with
    MissingCredentialError before any network call. Concurrent misses
    on the same key each run their own fetch; the last one to finish wins
    the cache slot.
    """

    def __init__(
        self,
        fetcher: SnapshotFetcher | None,
        cache: SnapshotCache,
        default_repository: str | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._cache = cache
        self._default_repository = default_repository

    @property
    def cache(self) -> SnapshotCache:
        return self._cache

    async def get_snapshot(
        self,
        repository: str | None = None,
        focused_item_id: int | None = None,
        force_refresh: bool = False,
    ) -> Snapshot:
        """Return the snapshot for a repository, optionally focused on one PR.

        Args:
            repository: GitHub repo in "owner/name" format. Falls back to the
                configured default repository when omitted.
            focused_item_id: PR number to expand
            force_refresh: Skip the cache lookup; the fresh result is still
                written back

        Returns:
            A fresh snapshot, or a cached one re-stamped with the current
            time and ``served_from_cache=True``.

        Raises:
            InvalidRepositoryError: If no repository was given or configured
            SnapshotError: Propagated from the fetcher
        """
        repository = (repository or "").strip() or self._default_repository
        if not repository:
            raise InvalidRepositoryError("No repository given and no default configured")
        focused_item_id = focused_item_id or None

        if not force_refresh:
            cached = self._cache.get(repository, focused_item_id)
            if cached is not None:
                logger.debug("Cache HIT: %s (pr=%s)", repository, focused_item_id)
                return dataclasses.replace(
                    cached,
                    generated_at=datetime.now(timezone.utc),
                    served_from_cache=True,
                )

        logger.debug(
            "Cache %s: %s (pr=%s)",
            "BYPASS" if force_refresh else "MISS",
            repository,
            focused_item_id,
        )
        if self._fetcher is None:
            raise MissingCredentialError("GitHub token is not configured")
        snapshot = await self._fetcher.fetch(repository, focused_item_id)
        self._cache.set(repository, focused_item_id, snapshot)
        return snapshot

    async def close(self) -> None:
        if self._fetcher is not None:
            await self._fetcher.close()
