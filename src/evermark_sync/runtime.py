"""Component wiring shared by the HTTP app and the CLI."""

import logging

from .chain import ChainProvider, ChainReader, EventScanner, JsonRpcProvider
from .config import Config
from .db import Repository
from .sync import CacheWriter, StatsReporter, SyncOrchestrator

logger = logging.getLogger(__name__)


class VotingSyncApp:
    """
    Owns the chain provider and cache connection for one process.

    Components hold no data between calls; only the HTTP client and the
    database connection live as long as this object.
    """

    def __init__(self, config: Config, provider: ChainProvider | None = None):
        self.config = config
        self._owns_provider = provider is None
        self.provider = provider
        self.repository = Repository(config.database.path)

        self.reader: ChainReader | None = None
        self.scanner: EventScanner | None = None
        self.writer: CacheWriter | None = None
        self.orchestrator: SyncOrchestrator | None = None
        self.reporter: StatsReporter | None = None

    async def start(self):
        """Open the cache and build the sync components."""
        await self.repository.initialize()

        if self.provider is None:
            self.provider = JsonRpcProvider(
                rpc_url=self.config.chain.rpc_url,
                contract_address=self.config.chain.voting_contract_address,
                timeout=self.config.chain.request_timeout_seconds,
                max_range_splits=self.config.chain.max_log_range_splits,
            )

        self.reader = ChainReader(self.provider)
        self.scanner = EventScanner(self.provider)
        self.writer = CacheWriter(self.repository)
        self.orchestrator = SyncOrchestrator(
            reader=self.reader,
            scanner=self.scanner,
            writer=self.writer,
            provider=self.provider,
            repository=self.repository,
            voter_scan_from_block=self.config.sync.voter_scan_from_block,
            default_block_range=self.config.sync.default_block_range,
        )
        self.reporter = StatsReporter(self.repository)

        logger.info(
            f"Voting sync ready for contract {self.config.chain.voting_contract_address}"
        )

    async def stop(self):
        """Close the provider (if created here) and the cache connection."""
        if self._owns_provider and self.provider is not None:
            await self.provider.close()
            self.provider = None
        await self.repository.close()

    async def __aenter__(self) -> "VotingSyncApp":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()
