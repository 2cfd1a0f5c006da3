"""Persistence helpers for chat threads."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from marketplace_messaging.domain.entities import ChatThread, canonical_pair
from marketplace_messaging.infrastructure.models import ChatThreadModel
from marketplace_messaging.utils import (
    ensure_app_timezone,
    now_in_app_timezone,
    to_utc_naive,
)


class ThreadRepository:
    """Provide lookup and creation of :class:`ChatThread` rows."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, thread_id: int) -> ChatThread | None:
        model = self.session.get(ChatThreadModel, thread_id)
        return self._to_entity(model) if model else None

    def find_by_pair(
        self, listing_id: str, first_party_id: str, second_party_id: str
    ) -> ChatThread | None:
        """Return the thread for the unordered pair on ``listing_id`` if any."""

        party_a, party_b = canonical_pair(first_party_id, second_party_id)
        model = (
            self.session.query(ChatThreadModel)
            .filter(ChatThreadModel.listing_id == listing_id)
            .filter(
                or_(
                    and_(
                        ChatThreadModel.party_a_id == party_a,
                        ChatThreadModel.party_b_id == party_b,
                    ),
                    and_(
                        ChatThreadModel.party_a_id == party_b,
                        ChatThreadModel.party_b_id == party_a,
                    ),
                )
            )
            .order_by(ChatThreadModel.id.asc())
            .first()
        )
        return self._to_entity(model) if model else None

    def create(self, thread: ChatThread) -> ChatThread:
        """Insert ``thread`` with its pair canonicalized.

        A concurrent insert of the same pair raises
        :class:`sqlalchemy.exc.IntegrityError`; the caller decides how to recover.
        """

        party_a, party_b = canonical_pair(thread.party_a_id, thread.party_b_id)
        model = ChatThreadModel(
            listing_id=thread.listing_id,
            party_a_id=party_a,
            party_b_id=party_b,
            created_at=to_utc_naive(
                thread.created_at or now_in_app_timezone()
            ),
            last_message_at=to_utc_naive(thread.last_message_at),
        )
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def list_for_user(self, user_id: str) -> Sequence[ChatThread]:
        """Return the user's threads, most recently active first."""

        activity = func.coalesce(
            ChatThreadModel.last_message_at, ChatThreadModel.created_at
        )
        query = (
            self.session.query(ChatThreadModel)
            .filter(
                or_(
                    ChatThreadModel.party_a_id == user_id,
                    ChatThreadModel.party_b_id == user_id,
                )
            )
            .order_by(activity.desc(), ChatThreadModel.id.desc())
        )
        return [self._to_entity(model) for model in query.all()]

    def count(self) -> int:
        return self.session.query(func.count(ChatThreadModel.id)).scalar() or 0

    @staticmethod
    def _to_entity(model: ChatThreadModel) -> ChatThread:
        return ChatThread(
            id=model.id,
            listing_id=model.listing_id,
            party_a_id=model.party_a_id,
            party_b_id=model.party_b_id,
            created_at=ensure_app_timezone(model.created_at),
            last_message_at=ensure_app_timezone(model.last_message_at),
        )


__all__ = ["ThreadRepository"]
