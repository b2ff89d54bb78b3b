"""Tests for the legacy tool-call adapter."""

import pytest

from blockpool_client.rpc.compat import LegacyToolAdapter, resolve_method, unwrap_tool_content


class RecordingClient:
    """Stands in for RpcClient.call and records its arguments."""

    def __init__(self, result=None) -> None:
        self.result = result
        self.calls = []

    async def call(self, method, params=None):
        self.calls.append((method, params))
        return self.result


def test_resolve_method():
    assert resolve_method("getWalletBalance") == "get_balance"
    assert resolve_method("get_wallet_balance") == "get_balance"
    assert resolve_method("analyze_risk") == "get_risk_analysis"
    assert resolve_method("get_chain_info") == "get_chain_info"


def test_unwrap_tool_content():
    assert unwrap_tool_content({"content": [{"type": "text", "text": '{"amount": "1"}'}]}) == {"amount": "1"}
    assert unwrap_tool_content({"content": [{"type": "text", "text": "plain"}]}) == "plain"
    assert unwrap_tool_content({"content": []}) == {"content": []}
    assert unwrap_tool_content({"balances": []}) == {"balances": []}
    assert unwrap_tool_content([1, 2]) == [1, 2]


@pytest.mark.asyncio
async def test_call_tool_maps_names_and_arguments():
    client = RecordingClient({"content": [{"type": "text", "text": '{"status": "success"}'}]})
    adapter = LegacyToolAdapter(client)

    result = await adapter.call_tool("getTransaction", {"txHash": "0xabc", "network": "sei"})

    assert result == {"status": "success"}
    assert client.calls == [("get_transaction", {"hash": "0xabc", "network": "sei"})]


@pytest.mark.asyncio
async def test_send_request_handles_tools_call_envelope():
    client = RecordingClient({"number": 5})
    adapter = LegacyToolAdapter(client)

    result = await adapter.send_request(
        "tools/call",
        {"name": "get_wallet_balance", "arguments": {"address": "sei1abc"}},
    )

    assert result == {"number": 5}
    assert client.calls == [("get_balance", {"address": "sei1abc"})]


@pytest.mark.asyncio
async def test_send_request_plain_method():
    client = RecordingClient([])
    adapter = LegacyToolAdapter(client)

    await adapter.send_request("getLatestBlock")

    assert client.calls == [("get_latest_block", {})]
