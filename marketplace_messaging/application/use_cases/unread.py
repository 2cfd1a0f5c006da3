"""Unread message counters, always read from the store."""

from __future__ import annotations

from sqlalchemy.orm import Session

from marketplace_messaging.infrastructure.database import store_guard
from marketplace_messaging.infrastructure.repositories import MessageRepository


def unread_count_for_user(session: Session, *, user_id: str) -> int:
    """Count messages sent to ``user_id`` that they have not read, across all threads."""

    with store_guard(session):
        return MessageRepository(session).count_unread_for_user(user_id)


def unread_count_for_thread(session: Session, *, thread_id: int, user_id: str) -> int:
    with store_guard(session):
        return MessageRepository(session).count_unread_for_thread(thread_id, user_id)


def thread_has_unread(session: Session, *, thread_id: int, user_id: str) -> bool:
    return unread_count_for_thread(session, thread_id=thread_id, user_id=user_id) > 0


__all__ = ["unread_count_for_user", "unread_count_for_thread", "thread_has_unread"]
