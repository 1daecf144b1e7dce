"""Tests for the cache stats report."""

from datetime import datetime, timedelta, timezone

import pytest

from evermark_sync.sync import CacheWriter

T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_empty_cache_is_healthy(reporter):
    stats = await reporter.get_cache_stats()

    assert stats.to_dict() == {
        "totalEntries": 0,
        "lastUpdated": None,
        "activeCycles": 0,
        "cacheHealth": "healthy",
    }


@pytest.mark.asyncio
async def test_counts_and_latest_update(repository, reporter):
    now = [T0]
    writer = CacheWriter(repository, clock=lambda: now[0])
    await writer.upsert_tally("1", 3, 10, 1)
    now[0] = T0 + timedelta(minutes=5)
    await writer.upsert_tally("2", 3, 20, 2)
    await writer.upsert_cycle(3, T0, T0 + timedelta(days=7), is_active=True, finalized=False)
    await writer.upsert_cycle(2, T0, T0, is_active=False, finalized=True)

    stats = await reporter.get_cache_stats()

    assert stats.total_entries == 2
    assert stats.last_updated == (T0 + timedelta(minutes=5)).isoformat()
    assert stats.active_cycles == 1
    assert stats.cache_health == "healthy"


@pytest.mark.asyncio
async def test_read_failure_reports_error(repository, reporter, monkeypatch):
    async def broken_count(*args, **kwargs):
        raise RuntimeError("no such table")

    monkeypatch.setattr(repository, "count", broken_count)

    stats = await reporter.get_cache_stats()

    assert stats.cache_health == "error"
    assert stats.total_entries == 0
    assert stats.last_updated is None
    assert stats.active_cycles == 0
