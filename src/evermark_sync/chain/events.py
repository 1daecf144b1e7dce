"""Vote delegation event scanning."""

import logging
from dataclasses import dataclass

from .abi import VOTE_DELEGATED
from .rpc import ChainProvider

logger = logging.getLogger(__name__)


@dataclass
class VoteEvent:
    """A single VoteDelegated event."""

    user: str | None
    evermark_id: str | None
    amount: int | None
    cycle: int | None
    tx_hash: str | None
    block_number: int | None

    @property
    def is_complete(self) -> bool:
        """True when every field a cache write needs is present."""
        return None not in (self.user, self.evermark_id, self.amount, self.cycle)


class EventScanner:
    """
    Fetches VoteDelegated events over a block range and reduces them.

    There are two paths. scan_voters is used for voter counts and
    normally covers the full history from block 0, which is always correct
    but grows with the chain. scan_recent covers a short trailing window for
    backfill of votes that just happened and does no reduction at all.
    """

    def __init__(self, provider: ChainProvider):
        self.provider = provider

    async def _fetch(self, from_block: int, to_block: int | None) -> list[VoteEvent]:
        logs = await self.provider.get_events(VOTE_DELEGATED, from_block, to_block)
        events = []
        for log in logs:
            args = log.args
            evermark_id = args.get("evermarkId")
            cycle = args.get("cycle")
            events.append(
                VoteEvent(
                    user=args.get("user"),
                    evermark_id=str(evermark_id) if evermark_id is not None else None,
                    amount=args.get("amount"),
                    cycle=int(cycle) if cycle is not None else None,
                    tx_hash=log.transaction_hash,
                    block_number=log.block_number,
                )
            )
        return events

    async def scan_voters(
        self,
        cycle: int,
        evermark_id: str,
        from_block: int = 0,
        to_block: int | None = None,
    ) -> set[str] | None:
        """
        Collect the distinct addresses that delegated to an evermark in a cycle.

        The log filter only narrows by event, so evermark and cycle are
        matched client-side on each decoded event.

        Returns:
            Set of lower-cased voter addresses, or None if the fetch failed
        """
        try:
            events = await self._fetch(from_block, to_block)
        except Exception as e:
            logger.error(
                f"Failed to scan voters for evermark {evermark_id} cycle {cycle}: {e}"
            )
            return None

        voters = {
            event.user.lower()
            for event in events
            if event.user
            and event.evermark_id == str(evermark_id)
            and event.cycle == cycle
        }
        logger.debug(
            f"Evermark {evermark_id} cycle {cycle}: {len(voters)} voters "
            f"from {len(events)} events"
        )
        return voters

    async def scan_recent(
        self,
        from_block: int,
        to_block: int | None = None,
    ) -> list[VoteEvent] | None:
        """
        Fetch every delegation event in a window, in chain order.

        Nothing is deduplicated: each event becomes one write downstream.

        Returns:
            Events in block order, or None if the fetch failed
        """
        try:
            return await self._fetch(from_block, to_block)
        except Exception as e:
            logger.error(f"Failed to scan events from block {from_block}: {e}")
            return None
