"""Persistence helpers for chat messages and their read state."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from marketplace_messaging.domain.entities import Message
from marketplace_messaging.infrastructure.models import ChatThreadModel, MessageModel
from marketplace_messaging.utils import (
    ensure_app_timezone,
    now_in_app_timezone,
    to_utc_naive,
)


class MessageRepository:
    """Provide append, ordered listing and read transitions for messages."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def append(self, message: Message) -> Message:
        """Insert ``message`` and advance the thread's ``last_message_at``.

        Both statements are committed together. A duplicate ``client_token``
        raises :class:`sqlalchemy.exc.IntegrityError` before anything is stored.
        """

        created_at = to_utc_naive(
            message.created_at or now_in_app_timezone()
        )
        model = MessageModel(
            thread_id=message.thread_id,
            sender_id=message.sender_id,
            content=message.content,
            created_at=created_at,
            read=False,
            read_at=None,
            client_token=message.client_token,
        )
        try:
            self.session.add(model)
            self.session.flush()
            self.session.query(ChatThreadModel).filter(
                ChatThreadModel.id == message.thread_id
            ).filter(
                or_(
                    ChatThreadModel.last_message_at.is_(None),
                    ChatThreadModel.last_message_at < created_at,
                )
            ).update(
                {ChatThreadModel.last_message_at: created_at},
                synchronize_session=False,
            )
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(model)
        return self._to_entity(model)

    def get_by_client_token(
        self, *, thread_id: int, sender_id: str, client_token: str
    ) -> Message | None:
        model = (
            self.session.query(MessageModel)
            .filter(MessageModel.thread_id == thread_id)
            .filter(MessageModel.sender_id == sender_id)
            .filter(MessageModel.client_token == client_token)
            .first()
        )
        return self._to_entity(model) if model else None

    def list_for_thread(self, thread_id: int) -> Sequence[Message]:
        """Return the thread's messages ordered by ``(created_at, id)``."""

        query = (
            self.session.query(MessageModel)
            .filter(MessageModel.thread_id == thread_id)
            .order_by(MessageModel.created_at.asc(), MessageModel.id.asc())
        )
        return [self._to_entity(model) for model in query.all()]

    def mark_thread_read(self, thread_id: int, *, reader_id: str) -> int:
        """Flip every unread message not sent by ``reader_id`` to read.

        Returns the number of rows changed; a repeated call returns ``0``.
        """

        updated = (
            self.session.query(MessageModel)
            .filter(MessageModel.thread_id == thread_id)
            .filter(MessageModel.sender_id != reader_id)
            .filter(MessageModel.read.is_(False))
            .update(
                {
                    MessageModel.read: True,
                    MessageModel.read_at: to_utc_naive(
                        now_in_app_timezone()
                    ),
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return int(updated or 0)

    def count_unread_for_user(self, user_id: str) -> int:
        query = (
            self.session.query(func.count(MessageModel.id))
            .join(ChatThreadModel, ChatThreadModel.id == MessageModel.thread_id)
            .filter(
                or_(
                    ChatThreadModel.party_a_id == user_id,
                    ChatThreadModel.party_b_id == user_id,
                )
            )
            .filter(MessageModel.sender_id != user_id)
            .filter(MessageModel.read.is_(False))
        )
        return int(query.scalar() or 0)

    def count_unread_for_thread(self, thread_id: int, user_id: str) -> int:
        query = (
            self.session.query(func.count(MessageModel.id))
            .filter(MessageModel.thread_id == thread_id)
            .filter(MessageModel.sender_id != user_id)
            .filter(MessageModel.read.is_(False))
        )
        return int(query.scalar() or 0)

    def unread_counts_by_thread(
        self, thread_ids: Sequence[int], user_id: str
    ) -> dict[int, int]:
        if not thread_ids:
            return {}
        rows = (
            self.session.query(MessageModel.thread_id, func.count(MessageModel.id))
            .filter(MessageModel.thread_id.in_(list(thread_ids)))
            .filter(MessageModel.sender_id != user_id)
            .filter(MessageModel.read.is_(False))
            .group_by(MessageModel.thread_id)
            .all()
        )
        return {thread_id: int(count) for thread_id, count in rows}

    def latest_by_thread(self, thread_ids: Sequence[int]) -> dict[int, Message]:
        """Return the newest message of each thread in ``thread_ids``."""

        if not thread_ids:
            return {}
        latest: dict[int, Message] = {}
        query = (
            self.session.query(MessageModel)
            .filter(MessageModel.thread_id.in_(list(thread_ids)))
            .order_by(MessageModel.created_at.desc(), MessageModel.id.desc())
        )
        for model in query.all():
            if model.thread_id not in latest:
                latest[model.thread_id] = self._to_entity(model)
        return latest

    @staticmethod
    def _to_entity(model: MessageModel) -> Message:
        return Message(
            id=model.id,
            thread_id=model.thread_id,
            sender_id=model.sender_id,
            content=model.content,
            created_at=ensure_app_timezone(model.created_at),
            read=bool(model.read),
            read_at=ensure_app_timezone(model.read_at),
            client_token=model.client_token,
        )


__all__ = ["MessageRepository"]
