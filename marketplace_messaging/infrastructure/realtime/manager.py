"""Connection management for realtime channels."""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import Any, DefaultDict, Protocol, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class Listener(Protocol):
    """Anything able to receive a JSON frame, websockets included."""

    async def send_json(self, data: Any) -> None:
        ...


class Subscription:
    """Handle returned by :meth:`ChannelConnectionManager.subscribe`."""

    def __init__(
        self, manager: "ChannelConnectionManager", channel: str, listener: Listener
    ) -> None:
        self._manager = manager
        self.channel = channel
        self.listener = listener
        self._cancelled = False

    @property
    def active(self) -> bool:
        return not self._cancelled and self._manager.is_subscribed(
            self.channel, self.listener
        )

    def cancel(self) -> None:
        """Stop delivering events to the listener. Safe to call repeatedly."""

        if self._cancelled:
            return
        self._cancelled = True
        self._manager.unsubscribe(self.channel, self.listener)


class ChannelConnectionManager:
    """Manage active listeners grouped by channel name."""

    def __init__(self) -> None:
        self._channels: DefaultDict[str, Set[Listener]] = defaultdict(set)
        self._lock = threading.Lock()

    async def connect(self, channel: str, websocket: WebSocket) -> Subscription:
        """Accept the websocket connection and register it on ``channel``."""

        await websocket.accept()
        return self.subscribe(channel, websocket)

    def subscribe(self, channel: str, listener: Listener) -> Subscription:
        with self._lock:
            self._channels[channel].add(listener)
        return Subscription(self, channel, listener)

    def unsubscribe(self, channel: str, listener: Listener) -> None:
        """Remove ``listener`` from ``channel``."""

        with self._lock:
            listeners = self._channels.get(channel)
            if listeners is None:
                return
            listeners.discard(listener)
            if not listeners:
                self._channels.pop(channel, None)

    def is_subscribed(self, channel: str, listener: Listener) -> bool:
        with self._lock:
            return listener in self._channels.get(channel, set())

    def listener_count(self, channel: str) -> int:
        with self._lock:
            return len(self._channels.get(channel, set()))

    async def send(self, channel: str, message: dict[str, Any]) -> None:
        """Send ``message`` to every listener currently on ``channel``."""

        with self._lock:
            listeners = list(self._channels.get(channel, set()))
        for listener in listeners:
            try:
                await listener.send_json(message)
            except Exception as exc:
                logger.debug("Dropping listener on %s after send failure: %s", channel, exc)
                self.unsubscribe(channel, listener)


connection_manager = ChannelConnectionManager()


__all__ = ["ChannelConnectionManager", "Listener", "Subscription", "connection_manager"]
