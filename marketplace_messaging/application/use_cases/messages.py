"""Use cases for sending and reading chat messages."""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace_messaging.config import get_settings
from marketplace_messaging.domain.entities import ChatThread, Message
from marketplace_messaging.domain.errors import MessagingError, ValidationError
from marketplace_messaging.infrastructure.database import store_guard
from marketplace_messaging.infrastructure.realtime import (
    RealtimeEventName,
    RealtimeFanout,
    realtime_fanout,
    serialize_thread,
    thread_channel,
)
from marketplace_messaging.infrastructure.repositories import MessageRepository

from .notifications.events import notify_new_chat_message
from .threads import get_thread

logger = logging.getLogger(__name__)

CLIENT_TOKEN_MAX_LENGTH = 64
DEFAULT_SENDER_NAME = "Someone"


def _clean_content(content: str | None) -> str:
    text = (content or "").strip()
    if not text:
        raise ValidationError("content", "Message cannot be empty")
    max_length = get_settings().message_max_length
    if len(text) > max_length:
        raise ValidationError("content", f"Message cannot exceed {max_length} characters")
    return text


def _clean_client_token(client_token: str | None) -> str | None:
    if client_token is None:
        return None
    token = client_token.strip()
    if not token:
        return None
    if len(token) > CLIENT_TOKEN_MAX_LENGTH:
        raise ValidationError(
            "client_token", f"Cannot exceed {CLIENT_TOKEN_MAX_LENGTH} characters"
        )
    return token


def append_message(
    session: Session,
    *,
    thread_id: int,
    sender_id: str,
    content: str,
    client_token: str | None = None,
    sender_name: str | None = None,
    fanout: RealtimeFanout = realtime_fanout,
) -> Message:
    """Store a message from a participant and notify the other one.

    Replaying a send with the same ``client_token`` returns the stored message
    without repeating the notification or the realtime events.
    """

    text = _clean_content(content)
    token = _clean_client_token(client_token)
    thread = get_thread(session, thread_id=thread_id, user_id=sender_id)
    repository = MessageRepository(session)

    with store_guard(session, retryable=token is not None):
        if token is not None:
            stored = repository.get_by_client_token(
                thread_id=thread_id, sender_id=sender_id, client_token=token
            )
            if stored is not None:
                return stored
        try:
            message = repository.append(
                Message(
                    id=None,
                    thread_id=thread_id,
                    sender_id=sender_id,
                    content=text,
                    client_token=token,
                )
            )
        except IntegrityError:
            if token is None:
                raise
            stored = repository.get_by_client_token(
                thread_id=thread_id, sender_id=sender_id, client_token=token
            )
            if stored is None:
                raise
            return stored

    recipient_id = thread.other_party(sender_id)
    try:
        notify_new_chat_message(
            session,
            thread_id=thread_id,
            sender_name=sender_name or DEFAULT_SENDER_NAME,
            message_preview=text,
            recipient_id=recipient_id,
            fanout=fanout,
        )
    except MessagingError as exc:
        logger.error(
            "Message %s stored but notifying user %s failed: %s",
            message.id,
            recipient_id,
            exc,
        )

    fanout.new_message(message)
    thread.last_message_at = message.created_at
    fanout.thread_updated(
        thread, change_type="new_message", actor_id=sender_id, include_thread_channel=True
    )
    return message


def _publish_read(
    fanout: RealtimeFanout, thread: ChatThread, *, reader_id: str, updated: int
) -> None:
    if not updated:
        return
    fanout.publish(
        thread_channel(thread.id),
        RealtimeEventName.THREAD_UPDATED,
        {
            "change_type": "read",
            "actor_id": reader_id,
            "updated": updated,
            "thread": serialize_thread(thread),
        },
    )


def mark_thread_read(
    session: Session,
    *,
    thread_id: int,
    user_id: str,
    fanout: RealtimeFanout = realtime_fanout,
) -> int:
    """Mark the messages ``user_id`` received in the thread as read.

    Returns the number of messages flipped; a repeated call returns ``0`` and
    publishes nothing.
    """

    thread = get_thread(session, thread_id=thread_id, user_id=user_id)
    with store_guard(session):
        updated = MessageRepository(session).mark_thread_read(thread_id, reader_id=user_id)
    _publish_read(fanout, thread, reader_id=user_id, updated=updated)
    return updated


def list_messages(
    session: Session,
    *,
    thread_id: int,
    user_id: str,
    fanout: RealtimeFanout = realtime_fanout,
) -> list[Message]:
    """Return the thread in chronological order and mark it read for ``user_id``."""

    thread = get_thread(session, thread_id=thread_id, user_id=user_id)
    repository = MessageRepository(session)
    with store_guard(session):
        updated = repository.mark_thread_read(thread_id, reader_id=user_id)
        messages = list(repository.list_for_thread(thread_id))
    _publish_read(fanout, thread, reader_id=user_id, updated=updated)
    return messages


__all__ = ["append_message", "list_messages", "mark_thread_read"]
