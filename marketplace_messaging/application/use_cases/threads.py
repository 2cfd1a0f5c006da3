"""Use cases for opening and listing chat threads."""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace_messaging.domain.entities import ChatThread, ThreadSummary, canonical_pair
from marketplace_messaging.domain.errors import Forbidden, NotFound, ValidationError
from marketplace_messaging.infrastructure.database import store_guard
from marketplace_messaging.infrastructure.realtime import RealtimeFanout, realtime_fanout
from marketplace_messaging.infrastructure.repositories import (
    ListingRepository,
    MessageRepository,
    ThreadRepository,
)

from .notifications.events import truncate_preview

logger = logging.getLogger(__name__)


def create_or_get_thread(
    session: Session,
    *,
    listing_id: str,
    requester_id: str,
    other_party_id: str | None = None,
    fanout: RealtimeFanout = realtime_fanout,
) -> tuple[ChatThread, bool]:
    """Return the thread between two users about a listing, creating it once.

    When ``other_party_id`` is omitted the requester is contacting the
    listing owner. The boolean tells whether this call created the thread.
    """

    if not listing_id:
        raise ValidationError("listing_id", "Listing is required")

    with store_guard(session):
        listing = ListingRepository(session).get(listing_id)
    if listing is None:
        raise NotFound("Listing not found")

    other_party_id = other_party_id or listing.owner_id
    if other_party_id == requester_id:
        raise ValidationError("other_party_id", "Cannot open a conversation with yourself")

    repository = ThreadRepository(session)
    with store_guard(session):
        existing = repository.find_by_pair(listing_id, requester_id, other_party_id)
        if existing is not None:
            return existing, False

        party_a, party_b = canonical_pair(requester_id, other_party_id)
        try:
            thread = repository.create(
                ChatThread(id=None, listing_id=listing_id, party_a_id=party_a, party_b_id=party_b)
            )
        except IntegrityError:
            # Both parties made first contact at the same time.
            session.rollback()
            winner = repository.find_by_pair(listing_id, requester_id, other_party_id)
            if winner is None:
                raise
            logger.info("Thread %s already created for listing %s", winner.id, listing_id)
            return winner, False

    logger.info("Opened thread %s on listing %s", thread.id, listing_id)
    fanout.thread_updated(thread, change_type="created", actor_id=requester_id)
    return thread, True


def get_thread(session: Session, *, thread_id: int, user_id: str) -> ChatThread:
    """Return ``thread_id`` if ``user_id`` takes part in it."""

    with store_guard(session):
        thread = ThreadRepository(session).get(thread_id)
    if thread is None:
        raise NotFound("Thread not found")
    if not thread.has_participant(user_id):
        raise Forbidden("You are not a participant of this thread")
    return thread


def list_user_threads(session: Session, *, user_id: str) -> list[ThreadSummary]:
    """Return the user's inbox, most recently active first."""

    messages = MessageRepository(session)
    with store_guard(session):
        threads = ThreadRepository(session).list_for_user(user_id)
        thread_ids = [thread.id for thread in threads]
        unread = messages.unread_counts_by_thread(thread_ids, user_id)
        latest = messages.latest_by_thread(thread_ids)

    summaries: list[ThreadSummary] = []
    for thread in threads:
        last_message = latest.get(thread.id)
        summaries.append(
            ThreadSummary(
                thread=thread,
                other_party_id=thread.other_party(user_id),
                unread_count=unread.get(thread.id, 0),
                last_message_preview=(
                    truncate_preview(last_message.content) if last_message else None
                ),
                last_message_sender_id=last_message.sender_id if last_message else None,
            )
        )
    return summaries


__all__ = ["create_or_get_thread", "get_thread", "list_user_threads"]
