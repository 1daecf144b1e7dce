"""Tests for the JSON-RPC chain provider against a mocked node."""

import json

import httpx
import pytest
from eth_abi import encode
from eth_utils import encode_hex

from evermark_sync.chain import JsonRpcProvider
from evermark_sync.chain.abi import (
    GET_CURRENT_CYCLE,
    GET_CYCLE_INFO,
    GET_EVERMARK_VOTES_IN_CYCLE,
    VOTE_DELEGATED,
)
from evermark_sync.errors import ChainReadError

from .conftest import VOTING_ADDRESS

VOTER = "0x00000000000000000000000000000000000000ab"


def vote_log(user: str, evermark_id: int, amount: int, cycle: int, block: int) -> dict:
    return {
        "address": VOTING_ADDRESS,
        "topics": [
            VOTE_DELEGATED.topic,
            encode_hex(encode(["address"], [user])),
            encode_hex(encode(["uint256"], [evermark_id])),
            encode_hex(encode(["uint256"], [cycle])),
        ],
        "data": encode_hex(encode(["uint256"], [amount])),
        "blockNumber": hex(block),
        "transactionHash": "0x" + "ab" * 32,
        "logIndex": "0x0",
        "removed": False,
    }


def make_provider(handler) -> tuple[JsonRpcProvider, list[dict]]:
    requests: list[dict] = []

    def record(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        requests.append(body)
        result = handler(body)
        if isinstance(result, httpx.Response):
            return result
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], **result})

    client = httpx.AsyncClient(transport=httpx.MockTransport(record))
    return JsonRpcProvider("http://node.test", VOTING_ADDRESS, client=client), requests


class TestContractReads:
    @pytest.mark.asyncio
    async def test_block_number_decodes_hex(self):
        provider, requests = make_provider(lambda body: {"result": "0x1388"})

        assert await provider.get_block_number() == 5000
        assert requests[0]["method"] == "eth_blockNumber"
        await provider.close()

    @pytest.mark.asyncio
    async def test_eth_call_encodes_selector_and_args(self):
        result = encode_hex(encode(["uint256"], [10**24]))
        provider, requests = make_provider(lambda body: {"result": result})

        (votes,) = await provider.read_contract(GET_EVERMARK_VOTES_IN_CYCLE, [3, 42])

        assert votes == 10**24
        call, block_tag = requests[0]["params"]
        assert block_tag == "latest"
        assert call["to"] == VOTING_ADDRESS
        assert call["data"].startswith(encode_hex(GET_EVERMARK_VOTES_IN_CYCLE.selector))
        assert call["data"].endswith(encode(["uint256", "uint256"], [3, 42]).hex())
        await provider.close()

    @pytest.mark.asyncio
    async def test_cycle_info_decodes_tuple(self):
        result = encode_hex(
            encode(
                ["uint256", "uint256", "uint256", "uint256", "bool", "uint256"],
                [1000, 2000, 77, 5, True, 4],
            )
        )
        provider, _ = make_provider(lambda body: {"result": result})

        info = await provider.read_contract(GET_CYCLE_INFO, [3])

        assert info == (1000, 2000, 77, 5, True, 4)
        await provider.close()

    @pytest.mark.asyncio
    async def test_rpc_error_raises_chain_read_error(self):
        provider, _ = make_provider(
            lambda body: {"error": {"code": 3, "message": "execution reverted"}}
        )

        with pytest.raises(ChainReadError, match="execution reverted"):
            await provider.read_contract(GET_CURRENT_CYCLE, [])
        await provider.close()

    @pytest.mark.asyncio
    async def test_http_error_raises_chain_read_error(self):
        provider, _ = make_provider(lambda body: httpx.Response(503))

        with pytest.raises(ChainReadError):
            await provider.get_block_number()
        await provider.close()

    @pytest.mark.asyncio
    async def test_empty_call_result_raises_chain_read_error(self):
        provider, _ = make_provider(lambda body: {"result": "0x"})

        with pytest.raises(ChainReadError):
            await provider.read_contract(GET_CURRENT_CYCLE, [])
        await provider.close()


class TestGetEvents:
    @pytest.mark.asyncio
    async def test_decodes_indexed_and_data_fields(self):
        provider, requests = make_provider(
            lambda body: {"result": [vote_log(VOTER, 42, 100, 3, 4500)]}
        )

        logs = await provider.get_events(VOTE_DELEGATED, 4000, 5000)

        assert len(logs) == 1
        log = logs[0]
        assert log.args["user"].lower() == VOTER
        assert log.args["evermarkId"] == 42
        assert log.args["amount"] == 100
        assert log.args["cycle"] == 3
        assert log.block_number == 4500

        log_filter = requests[0]["params"][0]
        assert log_filter["fromBlock"] == hex(4000)
        assert log_filter["toBlock"] == hex(5000)
        assert log_filter["topics"] == [VOTE_DELEGATED.topic]
        await provider.close()

    @pytest.mark.asyncio
    async def test_open_range_uses_latest(self):
        provider, requests = make_provider(lambda body: {"result": []})

        assert await provider.get_events(VOTE_DELEGATED, 0) == []
        assert requests[0]["params"][0]["toBlock"] == "latest"
        await provider.close()

    @pytest.mark.asyncio
    async def test_skips_removed_and_foreign_logs(self):
        removed = vote_log(VOTER, 42, 100, 3, 4500)
        removed["removed"] = True
        foreign = vote_log(VOTER, 42, 100, 3, 4501)
        foreign["topics"][0] = "0x" + "11" * 32
        provider, _ = make_provider(lambda body: {"result": [removed, foreign]})

        assert await provider.get_events(VOTE_DELEGATED, 4000, 5000) == []
        await provider.close()

    @pytest.mark.asyncio
    async def test_splits_range_when_node_rejects_it(self):
        def handler(body):
            log_filter = body["params"][0]
            start = int(log_filter["fromBlock"], 16)
            end = int(log_filter["toBlock"], 16)
            if end - start > 500:
                return {"error": {"code": -32005, "message": "query returned more than 10000 results"}}
            logs = [vote_log(VOTER, 1, 1, 1, b) for b in (100, 900) if start <= b <= end]
            return {"result": logs}

        provider, requests = make_provider(handler)

        logs = await provider.get_events(VOTE_DELEGATED, 0, 1000)

        assert [log.block_number for log in logs] == [100, 900]
        assert len(requests) == 3
        await provider.close()

    @pytest.mark.asyncio
    async def test_other_log_errors_are_not_split(self):
        provider, requests = make_provider(
            lambda body: {"error": {"code": -32000, "message": "header not found"}}
        )

        with pytest.raises(ChainReadError):
            await provider.get_events(VOTE_DELEGATED, 0, 1000)
        assert len(requests) == 1
        await provider.close()
