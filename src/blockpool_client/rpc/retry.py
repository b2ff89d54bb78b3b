"""Retry logic with exponential backoff for RPC calls."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


class RetryConfig:
    """
    Configuration for retry behavior.

    Parameters
    ----------
    max_retries : int
        Maximum number of retry attempts after the first one
    base_delay : float
        Initial delay in seconds before first retry
    max_delay : float
        Maximum delay between retries
    exponential_base : float
        Base for exponential backoff calculation

    """

    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        exponential_base: float = 2.0,
    ) -> None:
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base

    @property
    def max_attempts(self) -> int:
        """Total attempts including the first one."""
        return self.max_retries + 1

    def get_delay(self, attempt: int) -> float:
        """
        Calculate delay for a given retry attempt using exponential backoff.

        Parameters
        ----------
        attempt : int
            Current attempt number (0-indexed)

        Returns
        -------
        float
            Delay in seconds

        """
        delay = self.base_delay * (self.exponential_base**attempt)
        return min(delay, self.max_delay)

    def with_max_retries(self, max_retries: int) -> "RetryConfig":
        """Copy of this config with a different retry budget."""
        return RetryConfig(
            max_retries=max_retries,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
            exponential_base=self.exponential_base,
        )


async def retry_async(
    func: Callable[[], Awaitable[T]],
    config: RetryConfig,
    *,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    should_retry: Callable[[BaseException], bool] | None = None,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    label: str = "request",
) -> T:
    """
    Await ``func`` with retry and exponential backoff.

    Only exceptions matching ``retry_on`` (and accepted by ``should_retry``)
    are retried; anything else propagates immediately. The last exception is
    re-raised once all attempts are used.

    Parameters
    ----------
    func : Callable[[], Awaitable[T]]
        Zero-argument coroutine factory, called once per attempt
    config : RetryConfig
        Retry configuration
    retry_on : tuple[type[BaseException], ...]
        Exception types considered transient
    should_retry : Callable[[BaseException], bool] | None
        Finer-grained filter applied to exceptions matching ``retry_on``
    sleep : Callable[[float], Awaitable[object]]
        Backoff sleep, replaceable to make waits cancellable
    label : str
        Name used in log messages

    Returns
    -------
    T
        Result of the first successful attempt

    """
    for attempt in range(config.max_attempts):
        try:
            return await func()
        except retry_on as e:
            if should_retry is not None and not should_retry(e):
                raise

            # Don't retry on last attempt
            if attempt == config.max_retries:
                logger.debug("%s failed after %d attempts: %s", label, config.max_attempts, e)
                raise

            delay = config.get_delay(attempt)
            logger.debug(
                "%s failed (attempt %d/%d), retrying in %.1fs: %s",
                label,
                attempt + 1,
                config.max_attempts,
                delay,
                e,
            )
            await sleep(delay)

    msg = "retry loop exited without a result"
    raise AssertionError(msg)
