"""Domain entity representing a conversation between two parties."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


def canonical_pair(first_party_id: str, second_party_id: str) -> tuple[str, str]:
    """Return the pair ordered so that (A, B) and (B, A) share one key."""

    if first_party_id <= second_party_id:
        return first_party_id, second_party_id
    return second_party_id, first_party_id


@dataclass
class ChatThread:
    """The single conversation about ``listing_id`` between two parties."""

    id: int | None
    listing_id: str
    party_a_id: str
    party_b_id: str
    created_at: datetime | None = None
    last_message_at: datetime | None = None

    @property
    def participant_ids(self) -> tuple[str, str]:
        return self.party_a_id, self.party_b_id

    def has_participant(self, user_id: str) -> bool:
        """Return ``True`` when ``user_id`` is one of the two parties."""

        return user_id in (self.party_a_id, self.party_b_id)

    def other_party(self, user_id: str) -> str:
        """Return the participant that is not ``user_id``."""

        if user_id == self.party_a_id:
            return self.party_b_id
        if user_id == self.party_b_id:
            return self.party_a_id
        msg = f"User {user_id} is not a participant of thread {self.id}"
        raise ValueError(msg)


@dataclass
class ThreadSummary:
    """Inbox row for a thread as seen by one participant."""

    thread: ChatThread
    other_party_id: str
    unread_count: int
    last_message_preview: str | None = None
    last_message_sender_id: str | None = None

    @property
    def has_unread(self) -> bool:
        return self.unread_count > 0


__all__ = ["ChatThread", "ThreadSummary", "canonical_pair"]
