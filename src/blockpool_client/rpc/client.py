"""RPC client orchestrating session, cache, rate limiting and transport."""

import asyncio
import logging
import time
from datetime import UTC, datetime
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from blockpool_client.core.config import ClientConfig
from blockpool_client.core.errors import (
    BlockpoolError,
    RateLimitError,
    RpcConnectionError,
    RpcRequestError,
    RpcTimeoutError,
    ServerUnavailableError,
)
from blockpool_client.core.formatting import format_usei
from blockpool_client.core.models import (
    BlockInfo,
    CacheStats,
    ConnectedEvent,
    ConnectionStatus,
    DisconnectedEvent,
    RateLimitStatus,
    RequestMetrics,
    RpcRequest,
    TokenBalance,
    TokenInfo,
    TransactionData,
    WalletBalance,
)
from blockpool_client.rpc.cache import CacheManager, make_cache_key
from blockpool_client.rpc.events import ClientEvent, EventNotifier
from blockpool_client.rpc.rate_limit import SlidingWindowRateLimiter
from blockpool_client.rpc.retry import RetryConfig, retry_async
from blockpool_client.rpc.session import SessionManager, generate_session_id
from blockpool_client.rpc.stream import EventStream
from blockpool_client.rpc.transport import HTTPTransport

logger = logging.getLogger(__name__)

RPC_ENDPOINT = "/api/mcp"
HEALTH_ENDPOINT = "/health"
SESSION_CREATE_ENDPOINT = "/session/create"
SESSION_CLOSE_ENDPOINT = "/session/close"
SESSION_HEADER = "X-Session-ID"

# Cache lifetimes in milliseconds; unlisted methods use the configured default
METHOD_TTLS: dict[str, int] = {
    "get_latest_block": 5_000,
    "estimate_gas": 5_000,
    "get_balance": 10_000,
    "get_erc20_balance": 10_000,
    "get_market_data": 15_000,
    "get_nft_activity": 15_000,
    "search_transactions": 15_000,
    "get_chain_info": 30_000,
    "analyze_wallet": 30_000,
    "get_transaction": 60_000,
    "get_token_info": 60_000,
    "get_risk_analysis": 60_000,
    "get_erc20_token_info": 300_000,
    "is_contract": 300_000,
    "get_supported_networks": 300_000,
}


M = TypeVar("M", bound=BaseModel)


def _malformed(method: str, detail: str) -> ServerUnavailableError:
    return ServerUnavailableError(f"Malformed {method} result: {detail}", {"operation": method})


def _expect_dict(method: str, result: Any) -> dict[str, Any]:
    if not isinstance(result, dict):
        raise _malformed(method, f"expected an object, got {type(result).__name__}")
    return result


def _require(method: str, result: Any, key: str) -> Any:
    value = _expect_dict(method, result).get(key)
    if value is None:
        raise _malformed(method, f"missing '{key}'")
    return value


def _expect_list(method: str, result: Any, key: str) -> list[Any]:
    """Accept a bare list or an object wrapping it under ``key``."""
    items = result if isinstance(result, list) else _require(method, result, key)
    if not isinstance(items, list):
        raise _malformed(method, f"'{key}' is not a list")
    return items


def _validate(model: type[M], method: str, data: Any) -> M:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise _malformed(method, f"{e.error_count()} invalid field(s) for {model.__name__}") from e


class RpcClient:
    """
    Resilient client for the Sei data service.

    Each instance owns its cache, rate limiter, session state and transport;
    construct one with a ``ClientConfig`` and pass it to whatever needs it.

    Parameters
    ----------
    config : ClientConfig | None
        Client configuration (defaults apply when None)
    http_client : httpx.AsyncClient | None
        Optional shared HTTP client, mainly for tests
    clock : callable
        Time source in seconds for cache and rate limiter

    Examples
    --------
    >>> async with RpcClient(load_config()) as client:
    ...     balance = await client.get_balance("sei1...")

    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        clock=time.time,
    ) -> None:
        self.config = config or ClientConfig()
        self.debug = self.config.debug

        server = self.config.server
        self.retry_config = RetryConfig(
            max_retries=server.max_retries,
            base_delay=server.retry_delay_ms / 1000,
            max_delay=30.0,
            exponential_base=2.0,
        )
        self.reconnect_config = self.retry_config.with_max_retries(self.config.max_reconnect_attempts - 1)
        self.transport = HTTPTransport(server.url, server.timeout_ms, self.retry_config, client=http_client)
        self.cache = CacheManager(self.config.cache.max_size, self.config.cache.ttl_ms, clock=clock)
        self.rate_limiter = SlidingWindowRateLimiter(
            self.config.rate_limit.max_requests_per_minute,
            self.config.rate_limit.window_ms,
            clock=clock,
        )
        self.sessions = SessionManager()
        self.notifier = EventNotifier()
        self.on = self.notifier.on
        self.off = self.notifier.off
        self.metrics = RequestMetrics()

        self._request_id = 0
        self._connecting: asyncio.Task[None] | None = None
        self._stream_task: asyncio.Task[None] | None = None

        if self.debug:
            logger.debug(
                "RPC client initialized: url=%s rate_limit=%d/window cache_size=%d timeout=%dms",
                server.url,
                self.config.rate_limit.max_requests_per_minute,
                self.config.cache.max_size,
                server.timeout_ms,
            )

    # Lifecycle

    async def connect(self) -> None:
        """
        Establish a session with the server.

        A no-op when already connected. Concurrent callers share a single
        in-flight handshake, so only one session is ever created.

        Raises
        ------
        RpcConnectionError
            If the health check or session creation fails

        """
        if self.sessions.is_connected:
            if self.debug:
                logger.debug("Already connected (session %s)", self.sessions.session_id)
            return

        if self._connecting is None:
            self._connecting = asyncio.ensure_future(self._handshake())
            self._connecting.add_done_callback(self._connect_done)

        # Shield so a cancelled waiter does not abort the shared attempt
        task = self._connecting
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if task.cancelled() and (current is None or not current.cancelling()):
                # The handshake was aborted by disconnect(), not this caller
                msg = "Connect aborted by disconnect"
                raise RpcConnectionError(msg, {"operation": "connect", "aborted": True}) from None
            raise

    async def disconnect(self) -> None:
        """
        Close the session and clear local state.

        Closing the remote session is best effort; this method never raises
        for transport failures.

        """
        await self.stop_event_stream()

        if self._connecting is not None and not self._connecting.done():
            self._connecting.cancel()

        session_id = self.sessions.session_id
        if session_id is not None:
            try:
                await self.transport.post(
                    SESSION_CLOSE_ENDPOINT,
                    {"sessionId": session_id},
                    headers={SESSION_HEADER: session_id},
                    max_retries=0,
                )
            except Exception as e:
                logger.warning("Failed to close session %s gracefully: %s", session_id, e)

        self.sessions.close()
        self.cache.clear()
        self.notifier.emit(ClientEvent.DISCONNECTED, DisconnectedEvent(session_id=session_id, reason="disconnect"))
        if self.debug:
            logger.debug("Disconnected")

    async def aclose(self) -> None:
        """Disconnect and release the HTTP client."""
        await self.disconnect()
        await self.transport.aclose()

    async def __aenter__(self) -> "RpcClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        await self.aclose()

    async def _handshake(self) -> None:
        self.sessions.begin_connect()
        session_id = generate_session_id()
        url = self.config.server.url
        if self.debug:
            logger.debug("Connecting to %s...", url)

        try:
            health = await self.transport.get(HEALTH_ENDPOINT)
            if self.debug:
                logger.debug("Server health check passed: %s", health)
            await self.transport.post(
                SESSION_CREATE_ENDPOINT,
                {"sessionId": session_id},
                headers={SESSION_HEADER: session_id},
            )
        except asyncio.CancelledError:
            self.sessions.fail_connect("connect cancelled")
            raise
        except BlockpoolError as e:
            self.sessions.fail_connect(e.message)
            logger.warning("Connection to %s failed: %s", url, e.message)
            msg = f"Failed to connect to {url}: {e.message}"
            raise RpcConnectionError(
                msg,
                {"operation": "connect", "url": url},
                unauthorized=getattr(e, "unauthorized", False),
            ) from e

        self.sessions.open(session_id)
        self.notifier.emit(
            ClientEvent.CONNECTED,
            ConnectedEvent(session_id=session_id, health=health if isinstance(health, dict) else {}),
        )
        if self.debug:
            logger.debug("Connected with session %s", session_id)

    def _connect_done(self, task: asyncio.Task[None]) -> None:
        if self._connecting is task:
            self._connecting = None
        if not task.cancelled():
            # Mark retrieved; waiters re-raise it through the shield
            task.exception()

    async def _ensure_connected(self) -> None:
        if self.sessions.is_connected:
            return
        await retry_async(
            self.connect,
            self.reconnect_config,
            retry_on=(RpcConnectionError,),
            should_retry=lambda e: not getattr(e, "unauthorized", False) and not e.context.get("aborted"),
            label="connect",
        )

    # Dispatch

    async def call(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        *,
        ttl_ms: int | None = None,
        use_cache: bool = True,
        cancel_event: asyncio.Event | None = None,
    ) -> Any:
        """
        Invoke an RPC method through cache, rate limiter and transport.

        Parameters
        ----------
        method : str
            RPC method name (e.g. 'get_balance')
        params : dict[str, Any] | None
            Method parameters
        ttl_ms : int | None
            Cache lifetime for this result; defaults to ``METHOD_TTLS`` or
            the configured default
        use_cache : bool
            Whether to read and populate the cache
        cancel_event : asyncio.Event | None
            Set it to abort the call with ``RequestCancelledError``

        Returns
        -------
        Any
            The RPC result

        Raises
        ------
        RateLimitError
            Local window exhausted (carries ``reset_time``) or server 429
        RpcConnectionError
            No session could be established, or it was lost
        RpcTimeoutError
            Every attempt timed out
        ServerUnavailableError
            Server errors persisted through all retries
        RpcRequestError
            The server rejected the request
        RequestCancelledError
            ``cancel_event`` was set

        """
        params = params or {}
        key = make_cache_key(method, params)

        if use_cache:
            cached = self.cache.get(key)
            if cached is not None:
                if self.debug:
                    logger.debug("Cache hit for %s", method)
                return cached

        # Check and record without yielding to the event loop in between
        if not self.rate_limiter.can_make_request():
            status = self.rate_limiter.status()
            msg = f"Rate limit exceeded for {method}"
            raise RateLimitError(msg, {"operation": method}, reset_time=status.reset_time)
        self.rate_limiter.record_request()

        await self._ensure_connected()

        self._request_id += 1
        request = RpcRequest(id=self._request_id, method=method, params=params)
        self.metrics.total_requests += 1
        self.metrics.last_request_at = datetime.now(UTC)
        started = time.perf_counter()

        if self.debug:
            logger.debug("Request %d: %s %s", request.id, method, params)

        try:
            response = await self.transport.send(
                RPC_ENDPOINT,
                request.model_dump(),
                headers={SESSION_HEADER: self.sessions.session_id or ""},
                cancel_event=cancel_event,
            )
        except BlockpoolError as e:
            e.context.setdefault("operation", method)
            self._record_failure(method, e)
            raise

        if response.error is not None:
            error = RpcRequestError(
                response.error.message,
                {"operation": method, "request_id": request.id},
                code_value=response.error.code,
                data=response.error.data,
            )
            self._record_failure(method, error)
            raise error

        self._record_success((time.perf_counter() - started) * 1000)
        if use_cache and response.result is not None:
            self.cache.set(key, response.result, ttl_ms or METHOD_TTLS.get(method, self.config.cache.ttl_ms))

        if self.debug:
            logger.debug("Request %d (%s) completed", request.id, method)
        return response.result

    def _record_success(self, elapsed_ms: float) -> None:
        self.sessions.record_activity()
        self.metrics.successful_requests += 1
        n = self.metrics.successful_requests
        self.metrics.average_response_ms += (elapsed_ms - self.metrics.average_response_ms) / n

    def _record_failure(self, method: str, error: BlockpoolError) -> None:
        self.metrics.failed_requests += 1
        if self.debug:
            logger.debug("%s failed: %s", method, error.technical_details())

        if isinstance(error, RpcConnectionError):
            session_id = self.sessions.session_id
            self.sessions.close(error.message)
            reason = "unauthorized" if error.unauthorized else "connection_lost"
            logger.warning("Session %s dropped (%s): %s", session_id, reason, error.message)
            self.notifier.emit(ClientEvent.DISCONNECTED, DisconnectedEvent(session_id=session_id, reason=reason))
        elif isinstance(error, RpcTimeoutError | ServerUnavailableError | RateLimitError):
            self.sessions.mark_degraded(error.message)

    # Typed domain calls

    async def get_balance(self, address: str, network: str | None = None) -> WalletBalance:
        """
        Get the native balance of a wallet.

        Parameters
        ----------
        address : str
            Wallet address, passed through unvalidated
        network : str | None
            Network name; the configured network when None

        Returns
        -------
        WalletBalance
            Primary balance plus every token balance reported

        """
        network = network or self.config.network
        result = await self.call("get_balance", {"address": address, "network": network})
        balances = _require("get_balance", result, "balances")
        if not isinstance(balances, list):
            raise _malformed("get_balance", "'balances' is not a list")
        tokens = [_validate(TokenBalance, "get_balance", item) for item in balances]
        first = tokens[0] if tokens else TokenBalance()
        return WalletBalance(
            address=address,
            amount=first.amount,
            denom=first.denom,
            formatted=format_usei(first.amount, first.denom),
            network=network,
            tokens=tokens,
        )

    async def get_transaction(self, tx_hash: str, network: str | None = None) -> TransactionData:
        """Get transaction detail by hash."""
        network = network or self.config.network
        result = _expect_dict(
            "get_transaction", await self.call("get_transaction", {"hash": tx_hash, "network": network})
        )
        return _validate(TransactionData, "get_transaction", {**result, "hash": tx_hash, "network": network})

    async def get_latest_block(self, network: str | None = None) -> BlockInfo:
        """Get the latest block header."""
        network = network or self.config.network
        result = _expect_dict("get_latest_block", await self.call("get_latest_block", {"network": network}))
        return _validate(BlockInfo, "get_latest_block", {**result, "network": network})

    async def get_chain_info(self, network: str | None = None) -> dict[str, Any]:
        network = network or self.config.network
        return _expect_dict("get_chain_info", await self.call("get_chain_info", {"network": network}))

    async def analyze_wallet(self, address: str, network: str | None = None) -> dict[str, Any]:
        network = network or self.config.network
        result = await self.call("analyze_wallet", {"address": address, "network": network})
        return _expect_dict("analyze_wallet", result)

    async def get_risk_analysis(self, address: str) -> dict[str, Any]:
        return _expect_dict("get_risk_analysis", await self.call("get_risk_analysis", {"address": address}))

    async def get_market_data(self) -> dict[str, Any]:
        return _expect_dict("get_market_data", await self.call("get_market_data"))

    async def get_nft_activity(self) -> list[dict[str, Any]]:
        """Recent NFT activity, newest first as returned by the server."""
        return _expect_list("get_nft_activity", await self.call("get_nft_activity"), "activities")

    async def search_transactions(self, filters: dict[str, Any]) -> list[dict[str, Any]]:
        return _expect_list("search_transactions", await self.call("search_transactions", filters), "transactions")

    async def get_token_info(self, denom: str) -> dict[str, Any]:
        return _expect_dict("get_token_info", await self.call("get_token_info", {"denom": denom}))

    async def get_erc20_balance(self, token_address: str, address: str, network: str | None = None) -> str:
        network = network or self.config.network
        result = await self.call(
            "get_erc20_balance",
            {"tokenAddress": token_address, "address": address, "network": network},
        )
        return str(_require("get_erc20_balance", result, "balance"))

    async def get_erc20_token_info(self, token_address: str, network: str | None = None) -> TokenInfo:
        network = network or self.config.network
        result = _expect_dict(
            "get_erc20_token_info",
            await self.call("get_erc20_token_info", {"tokenAddress": token_address, "network": network}),
        )
        return _validate(
            TokenInfo, "get_erc20_token_info", {**result, "address": token_address, "network": network}
        )

    async def estimate_gas(
        self,
        to: str,
        data: str = "0x",
        value: str = "0",
        network: str | None = None,
    ) -> str:
        network = network or self.config.network
        result = await self.call("estimate_gas", {"to": to, "data": data, "value": value, "network": network})
        return str(_require("estimate_gas", result, "gasEstimate"))

    async def is_contract(self, address: str, network: str | None = None) -> bool:
        network = network or self.config.network
        result = await self.call("is_contract", {"address": address, "network": network})
        flag = _require("is_contract", result, "isContract")
        if not isinstance(flag, bool):
            raise _malformed("is_contract", "'isContract' is not a boolean")
        return flag

    async def get_supported_networks(self) -> list[str]:
        return _expect_list("get_supported_networks", await self.call("get_supported_networks"), "networks")

    # Events

    def start_event_stream(self) -> asyncio.Task[None]:
        """
        Start listening for server push events in the background.

        Returns
        -------
        asyncio.Task[None]
            The listener task (already running tasks are returned as-is)

        Raises
        ------
        RpcConnectionError
            If there is no active session

        """
        session_id = self.sessions.session_id
        if session_id is None:
            msg = "Cannot open event stream without an active session"
            raise RpcConnectionError(msg, {"operation": "event stream"})

        if self._stream_task is None or self._stream_task.done():
            stream = EventStream(self.transport, self.notifier, session_id)
            self._stream_task = asyncio.create_task(stream.run())
            self._stream_task.add_done_callback(self._stream_done)
        return self._stream_task

    async def stop_event_stream(self) -> None:
        task, self._stream_task = self._stream_task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            # Only the listener was cancelled; a cancelled caller must still see it
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise

    @staticmethod
    def _stream_done(task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        if (error := task.exception()) is not None:
            logger.warning("Event stream stopped: %s", error)

    # Diagnostics

    def get_connection_status(self) -> ConnectionStatus:
        return self.sessions.status()

    def get_cache_stats(self) -> CacheStats:
        return self.cache.stats()

    def get_rate_limit_status(self) -> RateLimitStatus:
        return self.rate_limiter.status()

    def get_metrics(self) -> RequestMetrics:
        return self.metrics.model_copy()

    def get_debug_info(self) -> dict[str, Any]:
        """Snapshot of configuration and runtime state for troubleshooting."""
        return {
            "config": self.config.model_dump(),
            "connection_status": self.get_connection_status().model_dump(),
            "cache_stats": self.get_cache_stats().model_dump(exclude={"entries"}),
            "rate_limit_status": self.get_rate_limit_status().model_dump(),
            "metrics": self.metrics.model_dump(),
        }

    def clear_cache(self, method: str | None = None) -> int:
        """
        Drop cached results, for one method or all of them.

        Returns
        -------
        int
            Number of entries removed

        """
        if method is not None:
            return self.cache.invalidate(method)
        removed = len(self.cache)
        self.cache.clear()
        return removed

    def set_debug_mode(self, enabled: bool) -> None:
        self.debug = enabled
        self.config.debug = enabled
        logger.debug("Debug mode %s", "enabled" if enabled else "disabled")
