"""Realtime fan-out of thread, message and notification deltas."""

from .events import (
    RealtimeEvent,
    RealtimeEventName,
    serialize_message,
    serialize_notification,
    serialize_thread,
    thread_channel,
    user_channel,
)
from .manager import ChannelConnectionManager, Listener, Subscription, connection_manager
from .publisher import RealtimeFanout, realtime_fanout

__all__ = [
    "ChannelConnectionManager",
    "Listener",
    "Subscription",
    "connection_manager",
    "RealtimeEvent",
    "RealtimeEventName",
    "RealtimeFanout",
    "realtime_fanout",
    "serialize_message",
    "serialize_notification",
    "serialize_thread",
    "thread_channel",
    "user_channel",
]
