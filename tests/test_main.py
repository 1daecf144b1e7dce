"""Tests for the command line entry point."""

import pytest

from evermark_sync.chain import JsonRpcProvider
from evermark_sync.main import parse_args, run_command
from evermark_sync.sync import BatchSyncResult, SyncOrchestrator


def test_parse_sync_evermark():
    args = parse_args(["--config", "c.yaml", "sync-evermark", "42", "--cycle", "3"])

    assert args.config == "c.yaml"
    assert args.command == "sync-evermark"
    assert args.evermark_id == "42"
    assert args.cycle == 3


def test_parse_refresh_stale_defaults():
    args = parse_args(["refresh-stale"])

    assert args.max_age_minutes is None
    assert args.limit is None


def test_command_required():
    with pytest.raises(SystemExit):
        parse_args([])


@pytest.mark.asyncio
async def test_stats_command_reads_cache_only(config):
    result = await run_command(parse_args(["stats"]), config)

    assert result["cacheHealth"] == "healthy"
    assert result["totalEntries"] == 0


@pytest.mark.asyncio
async def test_sync_evermark_rejects_non_numeric_id(config, monkeypatch):
    async def no_chain(*args, **kwargs):
        raise AssertionError("chain should not be read")

    monkeypatch.setattr(JsonRpcProvider, "read_contract", no_chain)

    result = await run_command(parse_args(["sync-evermark", "abc"]), config)

    assert result["synced"] is False
    assert "evermark_id" in result["error"]


@pytest.mark.asyncio
async def test_refresh_stale_passes_explicit_zero(config, monkeypatch):
    seen = {}

    async def fake_refresh(self, max_age_minutes, limit):
        seen.update(max_age_minutes=max_age_minutes, limit=limit)
        return BatchSyncResult(processed=0, total=0, failed=0)

    monkeypatch.setattr(SyncOrchestrator, "refresh_stale_tallies", fake_refresh)

    await run_command(
        parse_args(["refresh-stale", "--max-age-minutes", "0", "--limit", "0"]), config
    )
    assert seen == {"max_age_minutes": 0, "limit": 0}

    await run_command(parse_args(["refresh-stale"]), config)
    assert seen == {
        "max_age_minutes": config.sync.stale_after_minutes,
        "limit": config.sync.stale_batch_limit,
    }
