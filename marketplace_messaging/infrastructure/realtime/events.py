"""Realtime event names, channel naming and payload serializers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from marketplace_messaging.domain.entities import ChatThread, Message, Notification
from marketplace_messaging.utils import isoformat_or_none


class RealtimeEventName(str, Enum):
    NEW_MESSAGE = "new_message"
    NEW_NOTIFICATION = "new_notification"
    THREAD_UPDATED = "thread_updated"


@dataclass(frozen=True)
class RealtimeEvent:
    """One frame published on a channel."""

    channel: str
    event: RealtimeEventName
    seq: int
    data: dict[str, Any]

    def to_message(self) -> dict[str, Any]:
        return {
            "type": self.event.value,
            "channel": self.channel,
            "seq": self.seq,
            "data": self.data,
        }


def user_channel(user_id: str) -> str:
    return f"notifications:{user_id}"


def thread_channel(thread_id: int) -> str:
    return f"thread:{thread_id}"


def serialize_message(message: Message) -> dict[str, Any]:
    """Return the websocket payload representation for ``message``."""

    return {
        "id": message.id,
        "thread_id": message.thread_id,
        "sender_id": message.sender_id,
        "content": message.content,
        "created_at": isoformat_or_none(message.created_at),
        "read": message.read,
    }


def serialize_notification(notification: Notification) -> dict[str, Any]:
    """Return the websocket payload representation for ``notification``."""

    return {
        "id": notification.id,
        "user_id": notification.user_id,
        "type": notification.type.value,
        "title": notification.title,
        "message": notification.message,
        "data": notification.data or {},
        "is_read": notification.is_read,
        "action_url": notification.action_url,
        "created_at": isoformat_or_none(notification.created_at),
        "read_at": isoformat_or_none(notification.read_at),
        "expires_at": isoformat_or_none(notification.expires_at),
    }


def serialize_thread(thread: ChatThread) -> dict[str, Any]:
    return {
        "id": thread.id,
        "listing_id": thread.listing_id,
        "party_a_id": thread.party_a_id,
        "party_b_id": thread.party_b_id,
        "created_at": isoformat_or_none(thread.created_at),
        "last_message_at": isoformat_or_none(thread.last_message_at),
    }


__all__ = [
    "RealtimeEvent",
    "RealtimeEventName",
    "serialize_message",
    "serialize_notification",
    "serialize_thread",
    "thread_channel",
    "user_channel",
]
