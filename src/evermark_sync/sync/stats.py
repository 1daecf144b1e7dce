"""Cache health snapshot, read from the cache only."""

import asyncio
import logging
from dataclasses import dataclass

from ..db import CYCLE_TABLE, TALLY_TABLE, Repository

logger = logging.getLogger(__name__)


@dataclass
class CacheStats:
    total_entries: int
    last_updated: str | None
    active_cycles: int
    cache_health: str

    def to_dict(self) -> dict:
        return {
            "totalEntries": self.total_entries,
            "lastUpdated": self.last_updated,
            "activeCycles": self.active_cycles,
            "cacheHealth": self.cache_health,
        }


class StatsReporter:
    """Reports entry counts and freshness of the voting cache."""

    def __init__(self, repository: Repository):
        self.repository = repository

    async def get_cache_stats(self) -> CacheStats:
        """
        Run the three stat reads concurrently.

        Never raises: if any read fails the report comes back zeroed with
        cache_health set to "error".
        """
        try:
            total_entries, latest, active_cycles = await asyncio.gather(
                self.repository.count(TALLY_TABLE),
                self.repository.select_latest(TALLY_TABLE, "last_updated", limit=1),
                self.repository.count(CYCLE_TABLE, {"is_active": True}),
            )
        except Exception as e:
            logger.error(f"Failed to get cache stats: {e}")
            return CacheStats(
                total_entries=0,
                last_updated=None,
                active_cycles=0,
                cache_health="error",
            )

        return CacheStats(
            total_entries=total_entries,
            last_updated=latest[0]["last_updated"] if latest else None,
            active_cycles=active_cycles,
            cache_health="healthy",
        )
