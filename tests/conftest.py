"""
Pytest configuration and shared fixtures.

Chain access is replaced by FakeChainProvider, an in-memory voting contract
that implements the same three calls as the JSON-RPC provider. The cache is
a real SQLite file under tmp_path.
"""

import pytest
import pytest_asyncio

from evermark_sync.chain import ChainReader, DecodedLog, EventScanner
from evermark_sync.config import ChainConfig, Config, DatabaseConfig
from evermark_sync.db import Repository
from evermark_sync.errors import ChainReadError
from evermark_sync.sync import CacheWriter, StatsReporter, SyncOrchestrator

VOTING_ADDRESS = "0x1234567890123456789012345678901234567892"


class FakeChainProvider:
    """In-memory stand-in for the voting contract."""

    def __init__(self, current_cycle: int | None = 3, block_number: int = 5000):
        self.current_cycle = current_cycle
        self.block_number = block_number
        self.cycles: dict[int, tuple] = {}
        self.votes: dict[tuple[int, int], int] = {}
        self.logs: list[DecodedLog] = []
        self.failing: set[str] = set()
        self.event_calls: list[tuple[int, int | None]] = []
        self.read_calls: list[tuple[str, tuple]] = []

    def set_cycle(
        self,
        cycle: int,
        start_time: int,
        end_time: int,
        total_votes: int = 0,
        total_delegations: int = 0,
        finalized: bool = False,
        active_evermarks_count: int = 0,
    ):
        self.cycles[cycle] = (
            start_time,
            end_time,
            total_votes,
            total_delegations,
            finalized,
            active_evermarks_count,
        )

    def add_vote_event(
        self,
        user: str,
        evermark_id: int,
        cycle: int,
        amount: int,
        block_number: int,
        tx_hash: str | None = None,
    ):
        self.logs.append(
            DecodedLog(
                args={"user": user, "evermarkId": evermark_id, "amount": amount, "cycle": cycle},
                block_number=block_number,
                transaction_hash=tx_hash or f"0x{len(self.logs) + 1:064x}",
                log_index=0,
            )
        )

    async def read_contract(self, function, params):
        self.read_calls.append((function.name, tuple(params)))
        if function.name in self.failing:
            raise ChainReadError(f"{function.name} failed")

        if function.name == "getCurrentCycle":
            if self.current_cycle is None:
                raise ChainReadError("execution reverted")
            return (self.current_cycle,)
        if function.name == "getCycleInfo":
            if params[0] not in self.cycles:
                raise ChainReadError("execution reverted")
            return self.cycles[params[0]]
        if function.name == "getEvermarkVotesInCycle":
            return (self.votes.get((params[0], params[1]), 0),)
        raise ChainReadError(f"unknown function {function.name}")

    async def get_events(self, event, from_block, to_block=None):
        self.event_calls.append((from_block, to_block))
        if "eth_getLogs" in self.failing:
            raise ChainReadError("eth_getLogs failed")
        upper = self.block_number if to_block is None else to_block
        return [log for log in self.logs if from_block <= log.block_number <= upper]

    async def get_block_number(self):
        if "eth_blockNumber" in self.failing:
            raise ChainReadError("eth_blockNumber failed")
        return self.block_number


@pytest.fixture
def provider():
    return FakeChainProvider()


@pytest_asyncio.fixture
async def repository(tmp_path):
    repo = Repository(tmp_path / "cache.db")
    await repo.initialize()
    yield repo
    await repo.close()


@pytest.fixture
def writer(repository):
    return CacheWriter(repository)


@pytest.fixture
def orchestrator(provider, repository, writer):
    return SyncOrchestrator(
        reader=ChainReader(provider),
        scanner=EventScanner(provider),
        writer=writer,
        provider=provider,
        repository=repository,
    )


@pytest.fixture
def reporter(repository):
    return StatsReporter(repository)


@pytest.fixture
def config(tmp_path):
    return Config(
        chain=ChainConfig(rpc_url="http://rpc.invalid", voting_contract_address=VOTING_ADDRESS),
        database=DatabaseConfig(path=str(tmp_path / "cache.db")),
    )
