"""RPC layer with session management, retry logic, caching and rate limiting."""

from blockpool_client.rpc.cache import CacheEntry, CacheManager, make_cache_key
from blockpool_client.rpc.client import METHOD_TTLS, RpcClient
from blockpool_client.rpc.compat import LegacyToolAdapter
from blockpool_client.rpc.events import ClientEvent, EventNotifier
from blockpool_client.rpc.rate_limit import SlidingWindowRateLimiter
from blockpool_client.rpc.retry import RetryConfig, retry_async
from blockpool_client.rpc.session import SessionManager, generate_session_id
from blockpool_client.rpc.stream import EventStream
from blockpool_client.rpc.transport import HTTPTransport

__all__ = [
    "METHOD_TTLS",
    "CacheEntry",
    "CacheManager",
    "ClientEvent",
    "EventNotifier",
    "EventStream",
    "HTTPTransport",
    "LegacyToolAdapter",
    "RetryConfig",
    "RpcClient",
    "SessionManager",
    "SlidingWindowRateLimiter",
    "generate_session_id",
    "make_cache_key",
    "retry_async",
]
