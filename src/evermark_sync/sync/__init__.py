"""Sync operations over the voting cache."""

from .orchestrator import (
    BatchSyncResult,
    CycleSyncResult,
    RecentSyncResult,
    SyncOrchestrator,
    TallySyncResult,
    derive_is_active,
)
from .stats import CacheStats, StatsReporter
from .webhook import VoteCastPayload, normalize_evermark_id
from .writer import CacheWriter

__all__ = [
    "SyncOrchestrator",
    "TallySyncResult",
    "CycleSyncResult",
    "RecentSyncResult",
    "BatchSyncResult",
    "derive_is_active",
    "StatsReporter",
    "CacheStats",
    "CacheWriter",
    "VoteCastPayload",
    "normalize_evermark_id",
]
