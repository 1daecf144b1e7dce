"""ABI definitions for the Evermark voting contract.

The contract surface is fixed, so functions and events are declared here once
and everything above the provider works with decoded Python values.
"""

from dataclasses import dataclass, field
from typing import Any, Sequence

from eth_abi import decode, encode
from eth_utils import (
    decode_hex,
    encode_hex,
    event_signature_to_log_topic,
    function_signature_to_4byte_selector,
)


@dataclass(frozen=True)
class ContractFunction:
    """A read-only contract function with its input and output types."""

    name: str
    inputs: tuple[str, ...]
    outputs: tuple[str, ...]

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(self.inputs)})"

    @property
    def selector(self) -> bytes:
        return function_signature_to_4byte_selector(self.signature)

    def encode_call(self, params: Sequence[Any]) -> str:
        """Build the hex calldata for an eth_call."""
        if len(params) != len(self.inputs):
            raise ValueError(
                f"{self.name} expects {len(self.inputs)} params, got {len(params)}"
            )
        return encode_hex(self.selector + encode(list(self.inputs), list(params)))

    def decode_result(self, result: str) -> tuple:
        """Decode the hex return data of an eth_call."""
        raw = decode_hex(result)
        if not raw:
            raise ValueError(f"{self.name} returned no data")
        return tuple(decode(list(self.outputs), raw))


@dataclass(frozen=True)
class EventParam:
    name: str
    type: str
    indexed: bool = False


@dataclass
class DecodedLog:
    """A contract log with its arguments decoded by name."""

    args: dict[str, Any]
    block_number: int | None
    transaction_hash: str | None
    log_index: int | None = None


@dataclass(frozen=True)
class ContractEvent:
    """An event declaration able to decode raw eth_getLogs entries."""

    name: str
    params: tuple[EventParam, ...] = field(default_factory=tuple)

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(p.type for p in self.params)})"

    @property
    def topic(self) -> str:
        return encode_hex(event_signature_to_log_topic(self.signature))

    def decode_log(self, log: dict[str, Any]) -> DecodedLog | None:
        """
        Decode a raw log entry.

        Returns None for logs of a different event or logs the node has
        flagged as removed.
        """
        topics = log.get("topics") or []
        if not topics or topics[0].lower() != self.topic.lower():
            return None
        if log.get("removed"):
            return None

        indexed = [p for p in self.params if p.indexed]
        plain = [p for p in self.params if not p.indexed]
        if len(topics) - 1 != len(indexed):
            raise ValueError(
                f"{self.name} log has {len(topics) - 1} indexed topics, expected {len(indexed)}"
            )

        args: dict[str, Any] = {}
        for param, topic in zip(indexed, topics[1:]):
            (args[param.name],) = decode([param.type], decode_hex(topic))

        if plain:
            values = decode([p.type for p in plain], decode_hex(log.get("data") or "0x"))
            for param, value in zip(plain, values):
                args[param.name] = value

        return DecodedLog(
            args=args,
            block_number=_hex_to_int(log.get("blockNumber")),
            transaction_hash=log.get("transactionHash"),
            log_index=_hex_to_int(log.get("logIndex")),
        )


def _hex_to_int(value: str | int | None) -> int | None:
    if value is None:
        return None
    if isinstance(value, int):
        return value
    return int(value, 16)


GET_CURRENT_CYCLE = ContractFunction(
    name="getCurrentCycle",
    inputs=(),
    outputs=("uint256",),
)

# (startTime, endTime, totalVotes, totalDelegations, finalized, activeEvermarksCount)
GET_CYCLE_INFO = ContractFunction(
    name="getCycleInfo",
    inputs=("uint256",),
    outputs=("uint256", "uint256", "uint256", "uint256", "bool", "uint256"),
)

GET_EVERMARK_VOTES_IN_CYCLE = ContractFunction(
    name="getEvermarkVotesInCycle",
    inputs=("uint256", "uint256"),
    outputs=("uint256",),
)

VOTE_DELEGATED = ContractEvent(
    name="VoteDelegated",
    params=(
        EventParam("user", "address", indexed=True),
        EventParam("evermarkId", "uint256", indexed=True),
        EventParam("amount", "uint256"),
        EventParam("cycle", "uint256", indexed=True),
    ),
)
