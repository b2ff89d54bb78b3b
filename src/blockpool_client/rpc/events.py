"""Publish/subscribe notifier for connection and domain events."""

import logging
from collections import defaultdict
from collections.abc import Callable
from enum import StrEnum
from typing import Any, Literal, overload

from blockpool_client.core.models import BlockchainEvent, ConnectedEvent, DisconnectedEvent, MarketUpdate

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], None]


class ClientEvent(StrEnum):
    """Events emitted by the RPC client."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    BLOCKCHAIN_EVENT = "blockchainEvent"
    MARKET_UPDATE = "marketUpdate"


# Event names accepted by the typed overloads of on/off
ConnectedName = Literal[ClientEvent.CONNECTED, "connected"]
DisconnectedName = Literal[ClientEvent.DISCONNECTED, "disconnected"]
BlockchainEventName = Literal[ClientEvent.BLOCKCHAIN_EVENT, "blockchainEvent"]
MarketUpdateName = Literal[ClientEvent.MARKET_UPDATE, "marketUpdate"]


class EventNotifier:
    """
    Minimal synchronous publish/subscribe.

    Handlers run in registration order. A handler that raises is logged and
    skipped; it never stops the remaining handlers or reaches the emitter.
    Emission iterates over a snapshot, so handlers may subscribe or
    unsubscribe while an event is being delivered.

    """

    def __init__(self) -> None:
        self._handlers: defaultdict[str, list[EventHandler]] = defaultdict(list)

    @overload
    def on(self, event: ConnectedName, handler: Callable[[ConnectedEvent], None]) -> None: ...
    @overload
    def on(self, event: DisconnectedName, handler: Callable[[DisconnectedEvent], None]) -> None: ...
    @overload
    def on(self, event: BlockchainEventName, handler: Callable[[BlockchainEvent], None]) -> None: ...
    @overload
    def on(self, event: MarketUpdateName, handler: Callable[[MarketUpdate], None]) -> None: ...
    @overload
    def on(self, event: str, handler: EventHandler) -> None: ...

    def on(self, event: str, handler: EventHandler) -> None:
        """Subscribe ``handler`` to ``event``."""
        self._handlers[str(event)].append(handler)

    @overload
    def off(self, event: ConnectedName, handler: Callable[[ConnectedEvent], None]) -> bool: ...
    @overload
    def off(self, event: DisconnectedName, handler: Callable[[DisconnectedEvent], None]) -> bool: ...
    @overload
    def off(self, event: BlockchainEventName, handler: Callable[[BlockchainEvent], None]) -> bool: ...
    @overload
    def off(self, event: MarketUpdateName, handler: Callable[[MarketUpdate], None]) -> bool: ...
    @overload
    def off(self, event: str, handler: EventHandler) -> bool: ...

    def off(self, event: str, handler: EventHandler) -> bool:
        """
        Unsubscribe the first registration of ``handler``.

        Returns
        -------
        bool
            True if the handler was registered

        """
        handlers = self._handlers.get(str(event))
        if not handlers or handler not in handlers:
            return False
        handlers.remove(handler)
        return True

    def emit(self, event: str, payload: Any = None) -> int:
        """
        Deliver ``payload`` to every handler of ``event``.

        Returns
        -------
        int
            Number of handlers that completed without raising

        """
        delivered = 0
        for handler in tuple(self._handlers.get(str(event), ())):
            try:
                handler(payload)
            except Exception:
                logger.exception("Error in event handler for %s", event)
            else:
                delivered += 1
        return delivered

    def listener_count(self, event: str) -> int:
        return len(self._handlers.get(str(event), ()))

    def remove_all_listeners(self, event: str | None = None) -> None:
        """Drop handlers for one event, or for all events."""
        if event is None:
            self._handlers.clear()
        else:
            self._handlers.pop(str(event), None)
