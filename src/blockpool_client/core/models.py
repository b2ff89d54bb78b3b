"""Data models for sessions, wire messages, diagnostics and chain data."""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ConnectionState(StrEnum):
    """Connection state exposed to collaborators."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DEGRADED = "degraded"


class Session(BaseModel):
    """
    Logical session correlating requests on the remote side.

    Attributes
    ----------
    id : str
        Client-generated session identifier
    created_at : datetime
        When the session was established
    last_activity_at : datetime
        Last successful dispatch
    request_count : int
        Successful dispatches within this session
    is_active : bool
        Whether the session is usable

    """

    id: str
    created_at: datetime = Field(default_factory=_utcnow)
    last_activity_at: datetime = Field(default_factory=_utcnow)
    request_count: int = 0
    is_active: bool = True


class ConnectionStatus(BaseModel):
    """Derived connection status snapshot."""

    connected: bool
    state: ConnectionState
    session_id: str | None = None
    attempts: int = 0
    last_error: str | None = None


class RateLimitStatus(BaseModel):
    """
    Rate limiter snapshot.

    Attributes
    ----------
    remaining : int
        Requests still admissible in the current window
    reset_time : datetime
        When the oldest recorded request leaves the window

    """

    remaining: int
    reset_time: datetime


class CacheEntryStats(BaseModel):
    """Diagnostic view of a single cache entry."""

    key: str
    hits: int
    age_ms: int


class CacheStats(BaseModel):
    """Diagnostic cache summary."""

    size: int
    hit_rate: float
    entries: list[CacheEntryStats] = Field(default_factory=list)


class RequestMetrics(BaseModel):
    """Running request counters for one client instance."""

    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    average_response_ms: float = 0.0
    last_request_at: datetime | None = None


class RpcRequest(BaseModel):
    """JSON-RPC request envelope."""

    jsonrpc: str = "2.0"
    id: int
    method: str
    params: dict[str, Any] = Field(default_factory=dict)


class RpcErrorObject(BaseModel):
    """Error object of a JSON-RPC response."""

    message: str = "RPC request error"
    code: int | None = None
    data: Any = None


class RpcResponse(BaseModel):
    """
    JSON-RPC response envelope.

    Exactly one of ``result`` and ``error`` is present; anything else is a
    malformed payload and fails validation.

    """

    id: int | str | None = None
    result: Any = None
    error: RpcErrorObject | None = None

    @model_validator(mode="before")
    @classmethod
    def _exactly_one_outcome(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            msg = "response must be a JSON object"
            raise ValueError(msg)
        has_result = "result" in data
        has_error = data.get("error") is not None
        if has_result == has_error:
            msg = "response must contain exactly one of 'result' or 'error'"
            raise ValueError(msg)
        return data

    @property
    def ok(self) -> bool:
        """True when the response carries a result."""
        return self.error is None


def _parse_int(value: Any) -> Any:
    if isinstance(value, str) and value.strip().lower().startswith("0x"):
        return int(value.strip(), 16)
    return value


# Block heights arrive as JSON numbers, decimal strings or 0x-prefixed hex
ChainInt = Annotated[int, BeforeValidator(_parse_int)]


class _WireModel(BaseModel):
    # Servers send numeric amounts either as strings or as JSON numbers
    model_config = ConfigDict(populate_by_name=True, extra="allow", coerce_numbers_to_str=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # null means "not reported", so the field default applies
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class TokenBalance(_WireModel):
    """Balance of a single denomination."""

    denom: str = "usei"
    amount: str = "0"
    value: str | None = None


class WalletBalance(_WireModel):
    """Wallet balance summary."""

    address: str
    amount: str = "0"
    denom: str = "usei"
    formatted: str = ""
    network: str = "sei"
    tokens: list[TokenBalance] = Field(default_factory=list)


class TransactionData(_WireModel):
    """Transaction detail."""

    hash: str
    from_address: str = Field(default="", alias="from")
    to_address: str = Field(default="", alias="to")
    value: str = "0"
    gas_used: str = Field(default="0", alias="gasUsed")
    gas_price: str = Field(default="0", alias="gasPrice")
    block_number: ChainInt = Field(default=0, alias="blockNumber")
    timestamp: str | None = None
    status: str = "success"
    network: str = "sei"


class BlockInfo(_WireModel):
    """Block header summary."""

    number: ChainInt = 0
    hash: str = ""
    timestamp: str | None = None
    transactions: list[str] = Field(default_factory=list)
    gas_used: str = Field(default="0", alias="gasUsed")
    gas_limit: str = Field(default="0", alias="gasLimit")
    network: str = "sei"

    @field_validator("transactions", mode="before")
    @classmethod
    def _transaction_hashes(cls, value: Any) -> Any:
        # Full-transaction blocks are reduced to their hashes
        if isinstance(value, list):
            return [item.get("hash") if isinstance(item, dict) else item for item in value]
        return value


class TokenInfo(_WireModel):
    """ERC-20 or native token metadata."""

    address: str = ""
    name: str = ""
    symbol: str = ""
    decimals: ChainInt = 18
    total_supply: str | None = Field(default=None, alias="totalSupply")
    network: str = "sei"


class BlockchainEvent(_WireModel):
    """Live-feed event pushed by the server."""

    id: str
    type: str
    description: str = ""
    amount: str | None = None
    from_address: str | None = Field(default=None, alias="from")
    to_address: str | None = Field(default=None, alias="to")
    timestamp: str | None = None
    tx_hash: str | None = Field(default=None, alias="txHash")
    block_height: ChainInt | None = Field(default=None, alias="blockHeight")
    gas_used: str | None = Field(default=None, alias="gasUsed")
    fee: str | None = None


class MarketUpdate(_WireModel):
    """Market data push; fields vary by feed."""

    symbol: str | None = None
    price: float | None = None
    change_24h: float | None = Field(default=None, alias="change24h")
    volume_24h: str | None = Field(default=None, alias="volume24h")


class ConnectedEvent(BaseModel):
    """Payload of the ``connected`` event."""

    session_id: str
    health: dict[str, Any] = Field(default_factory=dict)


class DisconnectedEvent(BaseModel):
    """Payload of the ``disconnected`` event."""

    session_id: str | None = None
    reason: str = "disconnect"
