"""Typed read access to the voting contract."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from .abi import GET_CURRENT_CYCLE, GET_CYCLE_INFO, GET_EVERMARK_VOTES_IN_CYCLE
from .rpc import ChainProvider

logger = logging.getLogger(__name__)


@dataclass
class CycleInfo:
    """Cycle metadata as reported by the contract."""

    start_time: int  # unix seconds
    end_time: int  # unix seconds
    total_votes: int
    total_delegations: int
    finalized: bool
    active_evermarks_count: int

    @property
    def start_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.start_time, tz=timezone.utc)

    @property
    def end_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.end_time, tz=timezone.utc)


class ChainReader:
    """
    Read-only accessor over the voting contract.

    No retries happen here. Every failure is logged and surfaced as None
    so the caller decides whether to skip the affected work.
    """

    def __init__(self, provider: ChainProvider):
        self.provider = provider

    async def get_current_cycle(self) -> int | None:
        """Return the current cycle number, or None if it cannot be read."""
        try:
            (cycle,) = await self.provider.read_contract(GET_CURRENT_CYCLE, [])
            return int(cycle)
        except Exception as e:
            logger.error(f"Failed to read current cycle: {e}")
            return None

    async def get_cycle_info(self, cycle: int) -> CycleInfo | None:
        """Return metadata for a cycle, or None if it cannot be read."""
        try:
            (
                start_time,
                end_time,
                total_votes,
                total_delegations,
                finalized,
                active_evermarks_count,
            ) = await self.provider.read_contract(GET_CYCLE_INFO, [cycle])
        except Exception as e:
            logger.error(f"Failed to read info for cycle {cycle}: {e}")
            return None

        return CycleInfo(
            start_time=int(start_time),
            end_time=int(end_time),
            total_votes=int(total_votes),
            total_delegations=int(total_delegations),
            finalized=bool(finalized),
            active_evermarks_count=int(active_evermarks_count),
        )

    async def get_evermark_votes(self, cycle: int, evermark_id: str) -> int | None:
        """
        Get the cumulative delegated amount for one evermark in one cycle.

        Args:
            cycle: Cycle number
            evermark_id: Evermark token ID (decimal string)

        Returns:
            Vote total in wei, or None if the read failed
        """
        try:
            (votes,) = await self.provider.read_contract(
                GET_EVERMARK_VOTES_IN_CYCLE, [cycle, int(evermark_id)]
            )
            return int(votes)
        except Exception as e:
            logger.error(
                f"Failed to read votes for evermark {evermark_id} in cycle {cycle}: {e}"
            )
            return None
