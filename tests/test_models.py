"""Tests for Pydantic data models."""

import pytest
from pydantic import ValidationError

from blockpool_client.core.models import (
    BlockchainEvent,
    BlockInfo,
    RpcRequest,
    RpcResponse,
    TokenBalance,
    TokenInfo,
    TransactionData,
    WalletBalance,
)


def test_rpc_request_envelope():
    request = RpcRequest(id=3, method="get_balance", params={"address": "sei1abc"})

    assert request.model_dump() == {
        "jsonrpc": "2.0",
        "id": 3,
        "method": "get_balance",
        "params": {"address": "sei1abc"},
    }


def test_rpc_response_with_result():
    response = RpcResponse.model_validate({"jsonrpc": "2.0", "id": 1, "result": {"height": 1}})

    assert response.ok
    assert response.result == {"height": 1}


def test_rpc_response_with_null_result():
    response = RpcResponse.model_validate({"id": 1, "result": None})

    assert response.ok
    assert response.result is None


def test_rpc_response_with_error():
    response = RpcResponse.model_validate({"id": 1, "error": {"code": -32000, "message": "boom"}})

    assert not response.ok
    assert response.error.code == -32000


@pytest.mark.parametrize(
    "payload",
    [
        {"id": 1},
        {"id": 1, "result": 1, "error": {"message": "both"}},
        {"id": 1, "error": None},
        "result",
        None,
    ],
)
def test_rpc_response_requires_exactly_one_outcome(payload):
    with pytest.raises(ValidationError):
        RpcResponse.model_validate(payload)


def test_wallet_balance_coerces_numbers():
    """Test numeric amounts from the wire become strings."""
    balance = WalletBalance.model_validate(
        {"address": "sei1abc", "amount": 100, "tokens": [{"denom": "usei", "amount": 100}]}
    )

    assert balance.amount == "100"
    assert balance.tokens[0].amount == "100"


def test_transaction_aliases():
    tx = TransactionData.model_validate(
        {"hash": "0x1", "from": "0xa", "to": "0xb", "gasUsed": 21000, "blockNumber": 5, "extra": "kept"}
    )

    assert tx.from_address == "0xa"
    assert tx.to_address == "0xb"
    assert tx.gas_used == "21000"
    assert tx.block_number == 5
    assert tx.model_dump(by_alias=True)["from"] == "0xa"
    assert tx.model_extra == {"extra": "kept"}


def test_blockchain_event_requires_id_and_type():
    with pytest.raises(ValidationError):
        BlockchainEvent.model_validate({"description": "no id"})


def test_null_fields_use_defaults():
    """Test null wire fields are treated as not reported."""
    tx = TransactionData.model_validate({"hash": "0xabc", "to": None, "blockNumber": None, "gasPrice": None})

    assert tx.to_address == ""
    assert tx.block_number == 0
    assert tx.gas_price == "0"
    assert TokenBalance.model_validate({"amount": None}).amount == "0"


@pytest.mark.parametrize(("raw", "expected"), [(17, 17), ("17", 17), ("0x11", 17), ("0X11", 17)])
def test_chain_integers_accept_hex(raw, expected):
    assert BlockInfo.model_validate({"number": raw}).number == expected
    assert TokenInfo.model_validate({"decimals": raw}).decimals == expected
    assert BlockchainEvent.model_validate({"id": "e1", "type": "transfer", "blockHeight": raw}).block_height == expected


def test_chain_integers_reject_garbage():
    with pytest.raises(ValidationError):
        BlockInfo.model_validate({"number": "0xzz"})
    with pytest.raises(ValidationError):
        BlockInfo.model_validate({"number": "latest"})


def test_block_transactions_reduced_to_hashes():
    block = BlockInfo.model_validate({"transactions": [{"hash": "0x1", "value": "5"}, "0x2"]})

    assert block.transactions == ["0x1", "0x2"]
