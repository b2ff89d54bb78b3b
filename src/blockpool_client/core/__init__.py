"""Core functionality including models, errors, configuration and formatting."""

from blockpool_client.core.config import CacheConfig, ClientConfig, RateLimitConfig, ServerConfig, load_config
from blockpool_client.core.errors import (
    BlockpoolError,
    ErrorCode,
    ErrorKind,
    RateLimitError,
    RequestCancelledError,
    RpcConnectionError,
    RpcRequestError,
    RpcTimeoutError,
    ServerUnavailableError,
    log_and_format,
    wrap_error,
)
from blockpool_client.core.models import (
    BlockchainEvent,
    BlockInfo,
    ConnectionState,
    ConnectionStatus,
    MarketUpdate,
    Session,
    TokenInfo,
    TransactionData,
    WalletBalance,
)

__all__ = [
    "BlockInfo",
    "BlockchainEvent",
    "BlockpoolError",
    "CacheConfig",
    "ClientConfig",
    "ConnectionState",
    "ConnectionStatus",
    "ErrorCode",
    "ErrorKind",
    "MarketUpdate",
    "RateLimitConfig",
    "RateLimitError",
    "RequestCancelledError",
    "RpcConnectionError",
    "RpcRequestError",
    "RpcTimeoutError",
    "ServerConfig",
    "ServerUnavailableError",
    "Session",
    "TokenInfo",
    "TransactionData",
    "WalletBalance",
    "load_config",
    "log_and_format",
    "wrap_error",
]
