"""Server-sent event channel for live blockchain and market updates."""

import json
import logging
from typing import Any

from pydantic import ValidationError

from blockpool_client.core.models import BlockchainEvent, MarketUpdate
from blockpool_client.rpc.events import ClientEvent, EventNotifier
from blockpool_client.rpc.transport import HTTPTransport

logger = logging.getLogger(__name__)

BLOCKCHAIN_EVENT_METHOD = "notifications/blockchain_event"
MARKET_UPDATE_METHOD = "notifications/market_update"


def parse_sse_data(lines: list[str]) -> dict[str, Any] | None:
    """
    Decode the ``data:`` lines of one SSE message as JSON.

    Parameters
    ----------
    lines : list[str]
        Raw lines of a single event (without the blank terminator)

    Returns
    -------
    dict[str, Any] | None
        Decoded object, or None for comments, keep-alives and bad JSON

    """
    data = "\n".join(line[5:].lstrip() for line in lines if line.startswith("data:"))
    if not data:
        return None
    try:
        message = json.loads(data)
    except ValueError:
        logger.warning("Skipping malformed event payload: %.200s", data)
        return None
    return message if isinstance(message, dict) else None


class EventStream:
    """
    Listens on ``/sse`` and republishes notifications through the notifier.

    ``notifications/blockchain_event`` becomes a ``blockchainEvent`` with a
    ``BlockchainEvent`` payload and ``notifications/market_update`` becomes a
    ``marketUpdate`` with a ``MarketUpdate`` payload. Other messages are
    ignored.

    Parameters
    ----------
    transport : HTTPTransport
        Transport used to open the stream
    notifier : EventNotifier
        Where events are published
    session_id : str
        Session the server should attach the stream to

    """

    def __init__(self, transport: HTTPTransport, notifier: EventNotifier, session_id: str) -> None:
        self.transport = transport
        self.notifier = notifier
        self.session_id = session_id
        self.events_received = 0

    async def run(self) -> None:
        """Consume the stream until the server closes it."""
        async with self.transport.stream(
            "/sse",
            params={"sessionId": self.session_id},
            headers={"X-Session-ID": self.session_id},
        ) as response:
            logger.debug("Event stream open for session %s", self.session_id)
            buffer: list[str] = []
            async for line in response.aiter_lines():
                if line:
                    buffer.append(line)
                    continue
                self._dispatch(buffer)
                buffer = []
            if buffer:
                self._dispatch(buffer)
        logger.debug("Event stream closed for session %s", self.session_id)

    def _dispatch(self, lines: list[str]) -> None:
        message = parse_sse_data(lines)
        if message is None:
            return

        method = message.get("method")
        params = message.get("params") or {}
        try:
            if method == BLOCKCHAIN_EVENT_METHOD:
                payload: Any = BlockchainEvent.model_validate(params)
                event = ClientEvent.BLOCKCHAIN_EVENT
            elif method == MARKET_UPDATE_METHOD:
                payload = MarketUpdate.model_validate(params)
                event = ClientEvent.MARKET_UPDATE
            else:
                logger.debug("Ignoring stream message %r", method)
                return
        except ValidationError as e:
            logger.warning("Invalid %s payload: %s", method, e)
            return

        self.events_received += 1
        self.notifier.emit(event, payload)
