"""Tests for the error taxonomy."""

import logging
from datetime import UTC, datetime, timedelta

from blockpool_client.core.errors import (
    BlockpoolError,
    ErrorCode,
    ErrorKind,
    RateLimitError,
    RpcConnectionError,
    RpcTimeoutError,
    UnexpectedError,
    log_and_format,
    wrap_error,
)


def test_taxonomy_attributes():
    error = RpcConnectionError("refused", {"operation": "connect"})

    assert error.kind == ErrorKind.CONNECTION
    assert error.code == ErrorCode.CONNECTION_FAILED
    assert error.retryable
    assert error.context["operation"] == "connect"
    assert "timestamp" in error.context


def test_unauthorized_code():
    assert RpcConnectionError("401", unauthorized=True).code == ErrorCode.SESSION_UNAUTHORIZED


def test_user_message_hides_technical_detail():
    error = RpcTimeoutError("ReadTimeout on http://10.0.0.1:8080/api/mcp")

    assert "10.0.0.1" not in error.display_message()
    assert "Suggestions:" in error.display_message()
    assert "10.0.0.1" in error.technical_details()["error"]


def test_rate_limit_retry_after():
    error = RateLimitError(reset_time=datetime.now(UTC) + timedelta(seconds=30))

    assert 0 < error.retry_after <= 30
    assert RateLimitError().retry_after is None


def test_wrap_error_classifies_by_type():
    assert isinstance(wrap_error(TimeoutError(), "balance lookup"), RpcTimeoutError)
    assert isinstance(wrap_error(ConnectionRefusedError("nope"), "balance lookup"), RpcConnectionError)

    wrapped = wrap_error(KeyError("balances"), "balance lookup", address="sei1abc")
    assert isinstance(wrapped, UnexpectedError)
    assert wrapped.context["operation"] == "balance lookup"
    assert wrapped.context["address"] == "sei1abc"
    assert wrapped.user_message == "An unexpected error occurred while balance lookup."


def test_wrap_error_keeps_client_errors():
    error = RpcTimeoutError()

    assert wrap_error(error, "block lookup") is error
    assert error.context["operation"] == "block lookup"


def test_log_and_format(caplog):
    with caplog.at_level(logging.ERROR):
        message = log_and_format(RpcConnectionError("refused"), "connect")

    assert message.startswith(RpcConnectionError.default_user_message)
    assert "connect failed" in caplog.text


def test_base_error_defaults():
    error = BlockpoolError("boom")

    assert error.display_message() == BlockpoolError.default_user_message
    assert error.technical_details()["traceback"] is None
