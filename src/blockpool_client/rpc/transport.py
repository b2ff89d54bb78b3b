"""HTTP transport with per-attempt timeout, retry and cancellation."""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from typing import Any, TypeVar

import httpx

from blockpool_client.core.errors import (
    BlockpoolError,
    RateLimitError,
    RequestCancelledError,
    RpcConnectionError,
    RpcRequestError,
    RpcTimeoutError,
    ServerUnavailableError,
)
from blockpool_client.core.models import RpcResponse
from blockpool_client.rpc.retry import RetryConfig, retry_async

logger = logging.getLogger(__name__)

T = TypeVar("T")

JSON_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}


def is_transient(error: BaseException) -> bool:
    """
    Whether the transport retries ``error`` itself.

    Timeouts, network failures and server-side errors are transient.
    Rate limiting, unauthorized sessions, client errors and cancellation
    are surfaced immediately.

    """
    if isinstance(error, RpcConnectionError):
        return not error.unauthorized
    return isinstance(error, RpcTimeoutError | ServerUnavailableError)


def _parse_retry_after(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        seconds = float(value)
    except ValueError:
        return None
    return datetime.now(UTC) + timedelta(seconds=seconds)


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
    return f"HTTP {response.status_code}: {response.reason_phrase}"


class HTTPTransport:
    """
    Sends single requests to the RPC server with retry and backoff.

    Every attempt gets a fresh ``timeout_ms`` window; there is no separate
    deadline for the whole call, so the worst case is the sum of all
    attempts plus backoff.

    Parameters
    ----------
    base_url : str
        Server base URL, endpoints are appended to it
    timeout_ms : int
        Per-attempt timeout in milliseconds
    retry_config : RetryConfig | None
        Retry policy for transient failures
    client : httpx.AsyncClient | None
        Shared HTTP client; one is created (and owned) when omitted

    """

    def __init__(
        self,
        base_url: str,
        timeout_ms: int = 15_000,
        retry_config: RetryConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_ms = timeout_ms
        self.retry_config = retry_config or RetryConfig(max_retries=3, base_delay=1.0)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient()

    @property
    def timeout(self) -> float:
        """Per-attempt timeout in seconds."""
        return self.timeout_ms / 1000

    def url(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    async def send(
        self,
        endpoint: str,
        payload: dict[str, Any],
        *,
        headers: dict[str, str] | None = None,
        cancel_event: asyncio.Event | None = None,
        max_retries: int | None = None,
    ) -> RpcResponse:
        """
        POST a JSON-RPC payload and return the decoded response.

        A well-formed RPC error object is returned in ``RpcResponse.error``
        rather than raised.

        Parameters
        ----------
        endpoint : str
            Path relative to the base URL
        payload : dict[str, Any]
            JSON body
        headers : dict[str, str] | None
            Extra headers (e.g. session id)
        cancel_event : asyncio.Event | None
            Setting this event aborts the call with ``RequestCancelledError``
        max_retries : int | None
            Override of the configured retry budget

        Returns
        -------
        RpcResponse
            Decoded response envelope

        Raises
        ------
        RpcTimeoutError
            Every attempt timed out
        RpcConnectionError
            Network failure on every attempt, or 401/403
        ServerUnavailableError
            5xx or malformed payload on every attempt
        RateLimitError
            Server replied 429 (never retried)
        RpcRequestError
            Other 4xx reply (never retried)
        RequestCancelledError
            ``cancel_event`` was set

        """
        response = await self._request(
            "POST",
            endpoint,
            parse=self._parse_rpc_response,
            json=payload,
            headers={**JSON_HEADERS, **(headers or {})},
            cancel_event=cancel_event,
            max_retries=max_retries,
        )
        request_id = payload.get("id")
        if response.id is not None and request_id is not None and response.id != request_id:
            logger.warning("Response id %r does not match request id %r", response.id, request_id)
        return response

    async def get(
        self,
        endpoint: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        cancel_event: asyncio.Event | None = None,
        max_retries: int | None = None,
    ) -> Any:
        """
        GET an endpoint and return its decoded JSON body.

        Same retry and error semantics as ``send``; an empty body decodes to
        an empty dict.

        """
        return await self._request(
            "GET",
            endpoint,
            parse=self._parse_json,
            params=params,
            headers={**JSON_HEADERS, **(headers or {})},
            cancel_event=cancel_event,
            max_retries=max_retries,
        )

    async def post(
        self,
        endpoint: str,
        body: dict[str, Any] | None = None,
        *,
        headers: dict[str, str] | None = None,
        cancel_event: asyncio.Event | None = None,
        max_retries: int | None = None,
    ) -> Any:
        """POST a plain JSON body (non-RPC endpoints) and decode the reply."""
        return await self._request(
            "POST",
            endpoint,
            parse=self._parse_json,
            json=body or {},
            headers={**JSON_HEADERS, **(headers or {})},
            cancel_event=cancel_event,
            max_retries=max_retries,
        )

    @asynccontextmanager
    async def stream(
        self,
        endpoint: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> AsyncIterator[httpx.Response]:
        """
        Open a long-lived GET response (server-sent events).

        Only connecting is bounded by the timeout; reads wait indefinitely.

        """
        timeout = httpx.Timeout(self.timeout, read=None)
        request_headers = {"Accept": "text/event-stream", **(headers or {})}
        try:
            async with self._client.stream(
                "GET", self.url(endpoint), params=params, headers=request_headers, timeout=timeout
            ) as response:
                if response.is_error:
                    await response.aread()
                    self._check_status(response)
                yield response
        except httpx.TimeoutException as e:
            msg = f"Stream {endpoint} timed out"
            raise RpcTimeoutError(msg, {"endpoint": endpoint}) from e
        except httpx.RequestError as e:
            msg = f"Stream {endpoint} failed: {e}"
            raise RpcConnectionError(msg, {"endpoint": endpoint}) from e

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this transport owns it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HTTPTransport":
        return self

    async def __aexit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        parse: Callable[[httpx.Response], T],
        cancel_event: asyncio.Event | None,
        max_retries: int | None,
        **kwargs: Any,
    ) -> T:
        url = self.url(endpoint)
        config = self.retry_config if max_retries is None else self.retry_config.with_max_retries(max_retries)

        async def attempt() -> T:
            response = await self._attempt(method, url, cancel_event, **kwargs)
            self._check_status(response)
            return parse(response)

        async def backoff(delay: float) -> None:
            await self._backoff(delay, cancel_event)

        return await retry_async(
            attempt,
            config,
            retry_on=(BlockpoolError,),
            should_retry=is_transient,
            sleep=backoff,
            label=f"{method} {endpoint}",
        )

    async def _attempt(
        self,
        method: str,
        url: str,
        cancel_event: asyncio.Event | None,
        **kwargs: Any,
    ) -> httpx.Response:
        if cancel_event is not None and cancel_event.is_set():
            raise RequestCancelledError(context={"url": url})

        request = asyncio.ensure_future(self._client.request(method, url, timeout=self.timeout, **kwargs))
        waiters: set[asyncio.Future[Any]] = {request}
        cancelled = None
        if cancel_event is not None:
            cancelled = asyncio.ensure_future(cancel_event.wait())
            waiters.add(cancelled)

        try:
            done, _ = await asyncio.wait(waiters, timeout=self.timeout, return_when=asyncio.FIRST_COMPLETED)
        finally:
            pending = [task for task in waiters if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        if request in done:
            try:
                return request.result()
            except httpx.TimeoutException as e:
                msg = f"Request timeout after {self.timeout_ms}ms"
                raise RpcTimeoutError(msg, {"url": url}) from e
            except httpx.RequestError as e:
                msg = f"Request to {url} failed: {e}"
                raise RpcConnectionError(msg, {"url": url}) from e

        if cancelled is not None and cancelled in done:
            raise RequestCancelledError(context={"url": url})

        msg = f"Request timeout after {self.timeout_ms}ms"
        raise RpcTimeoutError(msg, {"url": url})

    async def _backoff(self, delay: float, cancel_event: asyncio.Event | None) -> None:
        if cancel_event is None:
            await asyncio.sleep(delay)
            return
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=delay)
        except TimeoutError:
            return
        raise RequestCancelledError(context={"phase": "backoff"})

    def _check_status(self, response: httpx.Response) -> None:
        status = response.status_code
        if status < 400:
            return

        context = {"url": str(response.request.url), "status": status}
        message = _error_message(response)
        if status == 429:
            raise RateLimitError(
                message,
                context,
                reset_time=_parse_retry_after(response.headers.get("Retry-After")),
            )
        if status in (401, 403):
            raise RpcConnectionError(message, context, unauthorized=True)
        if status >= 500:
            raise ServerUnavailableError(f"Server error: {status}", context, status_code=status)
        raise RpcRequestError(message, context, code_value=status)

    @staticmethod
    def _parse_json(response: httpx.Response) -> Any:
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            msg = f"Malformed JSON from {response.request.url}"
            raise ServerUnavailableError(msg, status_code=response.status_code) from e

    @staticmethod
    def _parse_rpc_response(response: httpx.Response) -> RpcResponse:
        try:
            return RpcResponse.model_validate(response.json())
        except ValueError as e:
            msg = f"Malformed RPC response from {response.request.url}: {e}"
            raise ServerUnavailableError(msg, status_code=response.status_code) from e
