"""
Time-boxed cache of the full players/matches/awards snapshot.

Read endpoints that aggregate over the whole history (monthly winners,
dashboard stats) share one snapshot instead of reloading every table per
request. Every write invalidates it.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ladder.models.records import MatchRecord, PlayerRecord
from ladder.services import data_service
from ladder.utils.constants import CACHE_TTL_SECONDS

logger = logging.getLogger(__name__)


@dataclass
class Snapshot:
    """Everything the aggregations read, loaded at one point in time."""

    players: List[PlayerRecord] = field(default_factory=list)
    matches: List[MatchRecord] = field(default_factory=list)
    awards: List[Dict] = field(default_factory=list)


class SnapshotCache:
    """
    Single-entry TTL cache.

    The clock is injectable so tests can move time without sleeping; it
    must be monotonic and return seconds.
    """

    def __init__(self, ttl_seconds: float = CACHE_TTL_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._snapshot: Optional[Snapshot] = None
        self._stored_at: Optional[float] = None

    def is_valid(self) -> bool:
        if self._snapshot is None or self._stored_at is None:
            return False
        return self.clock() - self._stored_at < self.ttl_seconds

    def get(self) -> Optional[Snapshot]:
        """Cached snapshot, or None when empty or expired."""
        if not self.is_valid():
            return None
        return self._snapshot

    def put(self, snapshot: Snapshot) -> None:
        self._snapshot = snapshot
        self._stored_at = self.clock()

    def invalidate(self) -> None:
        if self._snapshot is not None:
            logger.debug("Snapshot cache invalidated")
        self._snapshot = None
        self._stored_at = None


# Process-local cache shared by the API routes
_cache: Optional[SnapshotCache] = None


def get_snapshot_cache() -> SnapshotCache:
    global _cache
    if _cache is None:
        _cache = SnapshotCache()
    return _cache


async def load_snapshot(
    session: AsyncSession,
    cache: Optional[SnapshotCache] = None,
    force_refresh: bool = False,
) -> Snapshot:
    """
    Return the cached snapshot, loading it from the database when the
    cache is empty, expired or a refresh is forced.

    Args:
        session: Database session
        cache: Cache to use (defaults to the process-wide one)
        force_refresh: Skip the cache and reload
    """
    cache = cache or get_snapshot_cache()
    if not force_refresh:
        cached = cache.get()
        if cached is not None:
            return cached

    snapshot = Snapshot(
        players=await data_service.load_player_records(session),
        matches=await data_service.load_match_records(session),
        awards=await data_service.list_awards(session),
    )
    cache.put(snapshot)
    logger.debug(
        f"Loaded snapshot: {len(snapshot.players)} players, "
        f"{len(snapshot.matches)} matches, {len(snapshot.awards)} awards"
    )
    return snapshot
