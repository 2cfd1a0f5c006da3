"""Publish realtime events to channel listeners.

Delivery is best-effort: events raised while no event loop is reachable are
dropped and clients reconcile through the regular query endpoints.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import threading
from collections import defaultdict
from typing import Any, Iterable

from anyio import from_thread

from marketplace_messaging.domain.entities import ChatThread, Message, Notification

from .events import (
    RealtimeEvent,
    RealtimeEventName,
    serialize_message,
    serialize_notification,
    serialize_thread,
    thread_channel,
    user_channel,
)
from .manager import ChannelConnectionManager, connection_manager

logger = logging.getLogger(__name__)


class RealtimeFanout:
    """Stamp events with a per-channel sequence number and schedule delivery."""

    def __init__(self, manager: ChannelConnectionManager) -> None:
        self._manager = manager
        self._sequences: defaultdict[str, int] = defaultdict(int)
        self._lock = threading.Lock()
        self._pending: set[asyncio.Task] = set()

    def publish(
        self, channel: str, event: RealtimeEventName, payload: dict[str, Any]
    ) -> RealtimeEvent:
        """Schedule ``event`` on ``channel`` and return the stamped frame."""

        with self._lock:
            self._sequences[channel] += 1
            seq = self._sequences[channel]
            if not self._manager.listener_count(channel):
                # Idle channels keep no counter.
                del self._sequences[channel]
        realtime_event = RealtimeEvent(
            channel=channel, event=event, seq=seq, data=copy.deepcopy(payload)
        )
        self._schedule_send(channel, realtime_event.to_message())
        return realtime_event

    def publish_many(
        self,
        channels: Iterable[str],
        event: RealtimeEventName,
        payload: dict[str, Any],
    ) -> list[RealtimeEvent]:
        """Broadcast the same event to several distinct channels."""

        published: list[RealtimeEvent] = []
        seen: set[str] = set()
        for channel in channels:
            if not channel or channel in seen:
                continue
            seen.add(channel)
            published.append(self.publish(channel, event, payload))
        return published

    def new_message(self, message: Message) -> RealtimeEvent:
        return self.publish(
            thread_channel(message.thread_id),
            RealtimeEventName.NEW_MESSAGE,
            serialize_message(message),
        )

    def new_notification(self, notification: Notification) -> RealtimeEvent:
        return self.publish(
            user_channel(notification.user_id),
            RealtimeEventName.NEW_NOTIFICATION,
            serialize_notification(notification),
        )

    def thread_updated(
        self,
        thread: ChatThread,
        *,
        change_type: str,
        actor_id: str,
        include_thread_channel: bool = False,
    ) -> list[RealtimeEvent]:
        """Tell both participants (and optionally thread listeners) about a change."""

        payload = {
            "change_type": change_type,
            "actor_id": actor_id,
            "thread": serialize_thread(thread),
        }
        channels = [user_channel(user_id) for user_id in thread.participant_ids]
        if include_thread_channel and thread.id is not None:
            channels.append(thread_channel(thread.id))
        return self.publish_many(channels, RealtimeEventName.THREAD_UPDATED, payload)

    def _schedule_send(self, channel: str, message: dict[str, Any]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            try:
                from_thread.run(self._manager.send, channel, message)
            except RuntimeError:
                logger.debug(
                    "No event loop reachable; dropping %s event for %s",
                    message.get("type"),
                    channel,
                )
        else:
            task = loop.create_task(self._manager.send(channel, message))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)


realtime_fanout = RealtimeFanout(connection_manager)


__all__ = ["RealtimeFanout", "realtime_fanout"]
