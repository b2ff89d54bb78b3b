"""Adapter translating legacy tool-call shapes onto ``RpcClient.call``."""

import json
import logging
from typing import Any

from blockpool_client.rpc.client import RpcClient

logger = logging.getLogger(__name__)

# Old tool names used by earlier dashboard clients -> current RPC methods
LEGACY_METHOD_ALIASES: dict[str, str] = {
    "get_wallet_balance": "get_balance",
    "getWalletBalance": "get_balance",
    "getBalance": "get_balance",
    "getTransaction": "get_transaction",
    "getLatestBlock": "get_latest_block",
    "getChainInfo": "get_chain_info",
    "analyzeWallet": "analyze_wallet",
    "analyze_risk": "get_risk_analysis",
    "getRiskAnalysis": "get_risk_analysis",
    "getMarketData": "get_market_data",
    "getNFTActivity": "get_nft_activity",
    "getTokenInfo": "get_token_info",
    "searchTransactions": "search_transactions",
}

# Legacy argument names -> current parameter names
LEGACY_PARAM_ALIASES: dict[str, str] = {
    "txHash": "hash",
}


def resolve_method(name: str) -> str:
    """Map a legacy tool name to its RPC method (unknown names pass through)."""
    return LEGACY_METHOD_ALIASES.get(name, name)


def unwrap_tool_content(result: Any) -> Any:
    """
    Unwrap ``{"content": [{"text": "<json>"}]}`` tool results.

    Parameters
    ----------
    result : Any
        Raw result from the server

    Returns
    -------
    Any
        Decoded JSON from the first text block, the plain text when it is
        not JSON, or ``result`` unchanged when it is not a tool envelope

    """
    if not isinstance(result, dict):
        return result
    content = result.get("content")
    if not isinstance(content, list) or not content:
        return result
    first = content[0]
    text = first.get("text") if isinstance(first, dict) else None
    if text is None:
        return result
    try:
        return json.loads(text)
    except ValueError:
        return text


class LegacyToolAdapter:
    """
    Accepts the older call shapes and forwards them to an ``RpcClient``.

    Supports both ``call_tool(name, arguments)`` and full
    ``tools/call`` envelopes (``{"name": ..., "arguments": ...}``). No logic
    is duplicated here; every call goes through ``RpcClient.call``.

    Parameters
    ----------
    client : RpcClient
        Client that performs the calls

    """

    def __init__(self, client: RpcClient) -> None:
        self.client = client

    async def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> Any:
        """
        Call a tool by its legacy name.

        Parameters
        ----------
        name : str
            Legacy tool name (e.g. 'getWalletBalance')
        arguments : dict[str, Any] | None
            Tool arguments in the legacy naming

        Returns
        -------
        Any
            Unwrapped result

        """
        method = resolve_method(name)
        params = {LEGACY_PARAM_ALIASES.get(k, k): v for k, v in (arguments or {}).items()}
        if method != name:
            logger.debug("Legacy tool %s mapped to %s", name, method)
        result = await self.client.call(method, params)
        return unwrap_tool_content(result)

    async def send_request(self, method: str, params: dict[str, Any] | None = None) -> Any:
        """Handle a legacy request, including ``tools/call`` envelopes."""
        params = params or {}
        if method == "tools/call":
            return await self.call_tool(params.get("name", ""), params.get("arguments"))
        return await self.call_tool(method, params)
