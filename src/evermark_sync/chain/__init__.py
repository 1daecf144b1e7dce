"""Voting contract access."""

from .abi import ContractEvent, ContractFunction, DecodedLog, EventParam
from .events import EventScanner, VoteEvent
from .reader import ChainReader, CycleInfo
from .rpc import ChainProvider, JsonRpcProvider

__all__ = [
    "ChainProvider",
    "JsonRpcProvider",
    "ChainReader",
    "CycleInfo",
    "EventScanner",
    "VoteEvent",
    "ContractFunction",
    "ContractEvent",
    "EventParam",
    "DecodedLog",
]
