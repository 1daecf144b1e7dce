"""Idempotent cache writes keyed by natural composite keys."""

import logging
from datetime import datetime, timezone
from typing import Callable

from ..db import CYCLE_TABLE, TALLY_TABLE, USER_VOTE_TABLE, Repository
from ..errors import CacheWriteError

logger = logging.getLogger(__name__)

TALLY_KEY = ("evermark_id", "cycle_number")
USER_VOTE_KEY = ("user_address", "evermark_id", "cycle_number")
CYCLE_KEY = ("cycle_number",)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CacheWriter:
    """
    Full-replacement upserts for tallies, user votes and cycles.

    Every write replaces all non-key fields, so there is no read-modify-write
    step and concurrent writers for one key converge on the last write.
    Store failures are raised as CacheWriteError.
    """

    def __init__(self, repository: Repository, clock: Callable[[], datetime] = utc_now):
        self.repository = repository
        self.clock = clock

    async def _upsert(self, table: str, row: dict, conflict_key: tuple[str, ...]):
        try:
            await self.repository.upsert(table, row, conflict_key)
        except Exception as e:
            key = ", ".join(f"{c}={row.get(c)}" for c in conflict_key)
            logger.error(f"Failed to write {table} ({key}): {e}")
            raise CacheWriteError(f"Failed to write {table} ({key}): {e}") from e

    async def upsert_tally(
        self,
        evermark_id: str,
        cycle: int,
        total_votes: int,
        voter_count: int,
    ):
        """Replace the tally for (evermark_id, cycle)."""
        await self._upsert(
            TALLY_TABLE,
            {
                "evermark_id": str(evermark_id),
                "cycle_number": cycle,
                "total_votes": str(total_votes),
                "voter_count": voter_count,
                "last_updated": self.clock().isoformat(),
            },
            TALLY_KEY,
        )

    async def upsert_user_vote(
        self,
        user_address: str,
        evermark_id: str,
        cycle: int,
        amount: int,
        tx_hash: str | None = None,
        block_number: int | None = None,
    ):
        """
        Replace a user's vote record for (user_address, evermark_id, cycle).

        The address is lower-cased so the key is stable regardless of
        input casing.
        """
        await self._upsert(
            USER_VOTE_TABLE,
            {
                "user_address": user_address.lower(),
                "evermark_id": str(evermark_id),
                "cycle_number": cycle,
                "vote_amount": str(amount),
                "transaction_hash": tx_hash,
                "block_number": block_number,
                "updated_at": self.clock().isoformat(),
            },
            USER_VOTE_KEY,
        )

    async def upsert_cycle(
        self,
        cycle_number: int,
        start_time: datetime,
        end_time: datetime,
        is_active: bool,
        finalized: bool,
        total_votes: int | None = None,
        total_voters: int | None = None,
        active_evermarks_count: int | None = None,
    ):
        """Replace the cycle row. Missing numeric fields are written as zero."""
        await self._upsert(
            CYCLE_TABLE,
            {
                "cycle_number": cycle_number,
                "start_time": start_time.isoformat(),
                "end_time": end_time.isoformat(),
                "total_votes": str(total_votes) if total_votes is not None else "0",
                "total_voters": total_voters or 0,
                "active_evermarks_count": active_evermarks_count or 0,
                "is_active": is_active,
                "finalized": finalized,
                "updated_at": self.clock().isoformat(),
            },
            CYCLE_KEY,
        )
