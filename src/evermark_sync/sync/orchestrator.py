"""Sync orchestrator - reconciles contract state into the voting cache."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable

from ..chain import ChainProvider, ChainReader, EventScanner
from ..db import Repository
from ..errors import CacheWriteError
from .webhook import VoteCastPayload, normalize_evermark_id
from .writer import CacheWriter, utc_now

logger = logging.getLogger(__name__)


@dataclass
class TallySyncResult:
    evermark_id: str
    cycle: int
    total_votes: str
    voter_count: int


@dataclass
class CycleSyncResult:
    cycle: int
    start_time: str
    end_time: str
    total_votes: str
    is_active: bool
    finalized: bool


@dataclass
class RecentSyncResult:
    from_block: int
    to_block: int
    events: int
    written: int
    skipped: int
    failed: int


@dataclass
class BatchSyncResult:
    processed: int
    total: int
    failed: int


def derive_is_active(finalized: bool, end_time: int, now: datetime) -> bool:
    """A cycle is active until it is finalized or its end time (unix seconds) has passed."""
    return not finalized and now.timestamp() < end_time


class SyncOrchestrator:
    """
    Runs the externally triggered sync operations.

    Each operation is a stateless read-then-write: chain truth is read
    through ChainReader / EventScanner and persisted through CacheWriter's
    full-replacement upserts, so any operation is safe to repeat and safe
    to run concurrently for different keys.

    Chain read failures abort only the affected unit of work and are logged.
    Cache write failures propagate, except inside the batch operations which
    log them per item and continue.
    """

    def __init__(
        self,
        reader: ChainReader,
        scanner: EventScanner,
        writer: CacheWriter,
        provider: ChainProvider,
        repository: Repository,
        voter_scan_from_block: int = 0,
        default_block_range: int = 1000,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.reader = reader
        self.scanner = scanner
        self.writer = writer
        self.provider = provider
        self.repository = repository
        self.voter_scan_from_block = voter_scan_from_block
        self.default_block_range = default_block_range
        self.clock = clock

    async def sync_evermark_voting_data(
        self, evermark_id: str, cycle: int | None = None
    ) -> TallySyncResult | None:
        """
        Re-derive one evermark's tally for a cycle from the contract.

        Args:
            evermark_id: Evermark token ID
            cycle: Cycle number, or None for the current cycle

        Returns:
            The written tally, or None if chain state could not be read
            and nothing was written

        Raises:
            ValidationError: If evermark_id is not a non-negative integer
        """
        evermark_id = normalize_evermark_id(evermark_id)
        if cycle is None:
            cycle = await self.reader.get_current_cycle()
            if cycle is None:
                logger.warning(
                    f"Skipping sync for evermark {evermark_id}: current cycle unavailable"
                )
                return None

        total_votes = await self.reader.get_evermark_votes(cycle, evermark_id)
        if total_votes is None:
            logger.warning(
                f"Skipping sync for evermark {evermark_id} cycle {cycle}: votes unavailable"
            )
            return None

        # Full history scan; see EventScanner for why this is not windowed
        voters = await self.scanner.scan_voters(
            cycle, evermark_id, from_block=self.voter_scan_from_block
        )
        if voters is None:
            logger.warning(
                f"Skipping sync for evermark {evermark_id} cycle {cycle}: voters unavailable"
            )
            return None

        await self.writer.upsert_tally(evermark_id, cycle, total_votes, len(voters))

        logger.info(
            f"Synced evermark {evermark_id} cycle {cycle}: "
            f"{total_votes} votes, {len(voters)} voters"
        )
        return TallySyncResult(
            evermark_id=evermark_id,
            cycle=cycle,
            total_votes=str(total_votes),
            voter_count=len(voters),
        )

    async def sync_voting_cycle_data(self, cycle: int) -> CycleSyncResult | None:
        """Re-derive a cycle's metadata row from the contract."""
        info = await self.reader.get_cycle_info(cycle)
        if info is None:
            logger.warning(f"Skipping sync for cycle {cycle}: cycle info unavailable")
            return None

        is_active = derive_is_active(info.finalized, info.end_time, self.clock())

        await self.writer.upsert_cycle(
            cycle_number=cycle,
            start_time=info.start_datetime,
            end_time=info.end_datetime,
            is_active=is_active,
            finalized=info.finalized,
            total_votes=info.total_votes,
            total_voters=info.total_delegations,
            active_evermarks_count=info.active_evermarks_count,
        )

        logger.info(
            f"Synced cycle {cycle}: active={is_active}, finalized={info.finalized}, "
            f"total_votes={info.total_votes}"
        )
        return CycleSyncResult(
            cycle=cycle,
            start_time=info.start_datetime.isoformat(),
            end_time=info.end_datetime.isoformat(),
            total_votes=str(info.total_votes),
            is_active=is_active,
            finalized=info.finalized,
        )

    async def sync_recent_voting_events(
        self, block_range: int | None = None
    ) -> RecentSyncResult | None:
        """
        Backfill user vote records from a trailing block window.

        Best effort: a failed write is logged and the batch continues.
        Only user vote rows are written. Tallies for the touched evermarks
        are not refreshed here; run sync_evermark_voting_data for each of
        them when aggregate freshness is needed.

        Args:
            block_range: Number of blocks back from the latest block

        Returns:
            Batch counts, or None if the chain could not be read
        """
        if block_range is None:
            block_range = self.default_block_range

        try:
            current_block = await self.provider.get_block_number()
        except Exception as e:
            logger.error(f"Failed to read current block number: {e}")
            return None

        from_block = max(0, current_block - block_range)
        events = await self.scanner.scan_recent(from_block, current_block)
        if events is None:
            return None

        written = skipped = failed = 0
        for event in events:
            if not event.is_complete:
                skipped += 1
                logger.debug(f"Skipping incomplete event in tx {event.tx_hash}")
                continue

            try:
                await self.writer.upsert_user_vote(
                    event.user,
                    event.evermark_id,
                    event.cycle,
                    event.amount,
                    tx_hash=event.tx_hash,
                    block_number=event.block_number,
                )
                written += 1
            except CacheWriteError as e:
                failed += 1
                logger.error(
                    f"Failed to cache vote by {event.user} on evermark "
                    f"{event.evermark_id} (tx {event.tx_hash}): {e}"
                )

        logger.info(
            f"Synced {len(events)} recent voting events from blocks "
            f"{from_block}-{current_block}: {written} written, "
            f"{skipped} skipped, {failed} failed"
        )
        return RecentSyncResult(
            from_block=from_block,
            to_block=current_block,
            events=len(events),
            written=written,
            skipped=skipped,
            failed=failed,
        )

    async def ingest_vote_cast_webhook(self, payload: Any) -> TallySyncResult | None:
        """
        Cache a pushed vote, then re-derive the evermark's tally from chain.

        The tally is never incremented by the pushed amount; it is read back
        from the contract so repeated or reordered deliveries cannot drift.

        Raises:
            ValidationError: Before any I/O if the payload is malformed
            CacheWriteError: If the vote record cannot be written
        """
        vote = VoteCastPayload.from_dict(payload)

        await self.writer.upsert_user_vote(
            vote.user_address,
            vote.evermark_id,
            vote.cycle,
            vote.amount,
            tx_hash=vote.transaction_hash,
            block_number=vote.block_number,
        )
        logger.info(
            f"Cached vote by {vote.user_address.lower()} on evermark "
            f"{vote.evermark_id} cycle {vote.cycle}: {vote.amount}"
        )

        return await self.sync_evermark_voting_data(vote.evermark_id, vote.cycle)

    async def sync_cycle_tallies(self, cycle: int) -> BatchSyncResult:
        """Re-derive the tally of every evermark already cached for a cycle."""
        evermark_ids = await self.repository.list_tally_evermarks(cycle)
        return await self._sync_many([(evermark_id, cycle) for evermark_id in evermark_ids])

    async def refresh_stale_tallies(
        self, max_age_minutes: int = 5, limit: int = 50
    ) -> BatchSyncResult:
        """Re-derive tallies not refreshed within the age window, oldest first."""
        cutoff = self.clock() - timedelta(minutes=max_age_minutes)
        stale = await self.repository.list_stale_tallies(cutoff, limit=limit)
        if not stale:
            logger.info("No stale cache entries found")
        return await self._sync_many([(t.evermark_id, t.cycle_number) for t in stale])

    async def _sync_many(self, keys: list[tuple[str, int]]) -> BatchSyncResult:
        processed = failed = 0
        for evermark_id, cycle in keys:
            try:
                result = await self.sync_evermark_voting_data(evermark_id, cycle)
            except CacheWriteError as e:
                failed += 1
                logger.error(f"Failed to sync evermark {evermark_id} cycle {cycle}: {e}")
                continue
            if result is not None:
                processed += 1

        if keys:
            logger.info(f"Batch sync completed: {processed}/{len(keys)} entries updated")
        return BatchSyncResult(processed=processed, total=len(keys), failed=failed)
