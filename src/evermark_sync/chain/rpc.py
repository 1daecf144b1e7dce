"""JSON-RPC client for reading the voting contract."""

import itertools
import logging
from typing import Any, Protocol, Sequence

import httpx

from ..errors import ChainReadError
from .abi import ContractEvent, ContractFunction, DecodedLog

logger = logging.getLogger(__name__)

# Substrings nodes use when an eth_getLogs range returns too much
RANGE_TOO_WIDE_MARKERS = (
    "more than",
    "too many results",
    "response size exceeded",
    "query returned more than",
    "block range too wide",
    "block range is too wide",
    "exceed maximum block range",
)


class ChainProvider(Protocol):
    """Read-only access to the chain, as consumed by ChainReader and EventScanner."""

    async def read_contract(
        self, function: ContractFunction, params: Sequence[Any]
    ) -> tuple:
        """Call a view function at the latest block and return decoded outputs."""
        ...

    async def get_events(
        self,
        event: ContractEvent,
        from_block: int,
        to_block: int | None = None,
    ) -> list[DecodedLog]:
        """Fetch and decode logs of one event. to_block=None means latest."""
        ...

    async def get_block_number(self) -> int:
        """Return the latest block number."""
        ...


class JsonRpcProvider:
    """ChainProvider backed by an Ethereum JSON-RPC endpoint."""

    def __init__(
        self,
        rpc_url: str,
        contract_address: str,
        timeout: float = 30.0,
        max_range_splits: int = 24,
        client: httpx.AsyncClient | None = None,
    ):
        self.rpc_url = rpc_url
        self.contract_address = contract_address
        self.max_range_splits = max_range_splits
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._ids = itertools.count(1)

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()

    async def _call(self, method: str, params: list[Any]) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        try:
            response = await self._client.post(self.rpc_url, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise ChainReadError(f"{method} transport error: {e}") from e
        except ValueError as e:
            raise ChainReadError(f"{method} returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ChainReadError(f"{method} returned unexpected payload: {data!r}")
        if data.get("error") is not None:
            error = data["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise ChainReadError(f"{method} failed: {message}")

        return data.get("result")

    async def get_block_number(self) -> int:
        result = await self._call("eth_blockNumber", [])
        try:
            return int(result, 16)
        except (TypeError, ValueError) as e:
            raise ChainReadError(f"eth_blockNumber returned {result!r}") from e

    async def read_contract(
        self, function: ContractFunction, params: Sequence[Any]
    ) -> tuple:
        call = {"to": self.contract_address, "data": function.encode_call(params)}
        result = await self._call("eth_call", [call, "latest"])
        try:
            return function.decode_result(result)
        except Exception as e:
            raise ChainReadError(f"Could not decode {function.name} result: {e}") from e

    async def get_events(
        self,
        event: ContractEvent,
        from_block: int,
        to_block: int | None = None,
    ) -> list[DecodedLog]:
        """
        Fetch logs for one event over a block range.

        Args:
            event: Event declaration to filter and decode by
            from_block: First block (inclusive)
            to_block: Last block (inclusive), None for latest

        Returns:
            Decoded logs in node order
        """
        raw_logs = await self._get_logs_range(
            event.topic, from_block, to_block, self.max_range_splits
        )

        decoded = []
        for log in raw_logs:
            try:
                entry = event.decode_log(log)
            except Exception as e:
                raise ChainReadError(f"Could not decode {event.name} log: {e}") from e
            if entry is not None:
                decoded.append(entry)
        return decoded

    async def _get_logs_range(
        self,
        topic: str,
        from_block: int,
        to_block: int | None,
        splits_left: int,
    ) -> list[dict]:
        log_filter = {
            "address": self.contract_address,
            "topics": [topic],
            "fromBlock": hex(from_block),
            "toBlock": hex(to_block) if to_block is not None else "latest",
        }
        try:
            return await self._call("eth_getLogs", [log_filter]) or []
        except ChainReadError as e:
            message = str(e).lower()
            too_wide = any(marker in message for marker in RANGE_TOO_WIDE_MARKERS)
            if not too_wide or splits_left <= 0:
                raise

        # Halving needs a concrete upper bound
        if to_block is None:
            to_block = await self.get_block_number()
        if from_block >= to_block:
            raise ChainReadError(
                f"eth_getLogs rejected single block {from_block} as too wide"
            )

        mid = (from_block + to_block) // 2
        logger.debug(f"Splitting log range {from_block}-{to_block} at {mid}")
        left = await self._get_logs_range(topic, from_block, mid, splits_left - 1)
        right = await self._get_logs_range(topic, mid + 1, to_block, splits_left - 1)
        return left + right
