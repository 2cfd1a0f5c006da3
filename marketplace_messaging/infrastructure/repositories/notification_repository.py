"""Persistence helpers for notification entities."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session

from marketplace_messaging.domain.entities import Notification
from marketplace_messaging.domain.notification_types import NotificationType
from marketplace_messaging.infrastructure.models import NotificationModel
from marketplace_messaging.utils import (
    ensure_app_timezone,
    now_in_app_timezone,
    to_utc_naive,
)


class NotificationRepository:
    """Provide CRUD operations for :class:`Notification` objects."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, notification_id: int) -> Notification | None:
        model = self.session.get(NotificationModel, notification_id)
        return self._to_entity(model) if model else None

    def list_for_user(
        self,
        user_id: str,
        *,
        limit: int,
        offset: int = 0,
        include_read: bool = False,
        notification_type: NotificationType | None = None,
        now: datetime | None = None,
    ) -> tuple[Sequence[Notification], int]:
        """Return a page of live notifications and the total that match."""

        query = self._live_query(user_id, now=now)
        if not include_read:
            query = query.filter(NotificationModel.is_read.is_(False))
        if notification_type is not None:
            query = query.filter(NotificationModel.type == notification_type.value)
        total = query.count()
        page = (
            query.order_by(
                NotificationModel.created_at.desc(), NotificationModel.id.desc()
            )
            .offset(offset)
            .limit(limit)
            .all()
        )
        return [self._to_entity(model) for model in page], total

    def list_unread_for_user(
        self,
        user_id: str,
        *,
        since: datetime | None = None,
        limit: int | None = 50,
    ) -> Sequence[Notification]:
        query = self._live_query(user_id).filter(NotificationModel.is_read.is_(False))
        if since is not None:
            query = query.filter(
                NotificationModel.created_at > to_utc_naive(since)
            )
        query = query.order_by(
            NotificationModel.created_at.desc(), NotificationModel.id.desc()
        )
        if limit is not None:
            query = query.limit(limit)
        return [self._to_entity(model) for model in query.all()]

    def counts_for_user(self, user_id: str) -> tuple[int, int]:
        """Return ``(total, unread)`` for the user's live notifications."""

        query = self._live_query(user_id)
        total = query.count()
        unread = query.filter(NotificationModel.is_read.is_(False)).count()
        return total, unread

    def create(self, notification: Notification) -> Notification:
        model = NotificationModel(
            user_id=notification.user_id,
            type=notification.type.value,
            title=notification.title,
            message=notification.message,
            data=notification.data or {},
            is_read=False,
            action_url=notification.action_url,
            created_at=to_utc_naive(
                notification.created_at or now_in_app_timezone()
            ),
            read_at=None,
            expires_at=to_utc_naive(notification.expires_at),
        )
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def mark_as_read(self, notification_id: int, *, user_id: str) -> bool:
        """Mark one notification read; an already read row keeps its ``read_at``."""

        updated = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.id == notification_id)
            .filter(NotificationModel.user_id == user_id)
            .filter(NotificationModel.is_read.is_(False))
            .update(
                {
                    NotificationModel.is_read: True,
                    NotificationModel.read_at: to_utc_naive(
                        now_in_app_timezone()
                    ),
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return bool(updated)

    def mark_all_as_read(self, user_id: str) -> int:
        updated = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.user_id == user_id)
            .filter(NotificationModel.is_read.is_(False))
            .update(
                {
                    NotificationModel.is_read: True,
                    NotificationModel.read_at: to_utc_naive(
                        now_in_app_timezone()
                    ),
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return int(updated or 0)

    def delete(self, notification_id: int) -> None:
        model = self.session.get(NotificationModel, notification_id)
        if model is None:
            msg = f"Notification with id {notification_id} not found"
            raise ValueError(msg)
        self.session.delete(model)
        self.session.commit()

    def count_for_user(self, user_id: str) -> int:
        """Count every stored row for ``user_id``, expired and read included."""

        return int(
            self.session.query(func.count(NotificationModel.id))
            .filter(NotificationModel.user_id == user_id)
            .scalar()
            or 0
        )

    def _live_query(self, user_id: str, *, now: datetime | None = None) -> Query:
        cutoff = to_utc_naive(now or now_in_app_timezone())
        return (
            self.session.query(NotificationModel)
            .filter(NotificationModel.user_id == user_id)
            .filter(
                or_(
                    NotificationModel.expires_at.is_(None),
                    NotificationModel.expires_at > cutoff,
                )
            )
        )

    @staticmethod
    def _to_entity(model: NotificationModel) -> Notification:
        return Notification(
            id=model.id,
            user_id=model.user_id,
            type=NotificationType(model.type),
            title=model.title,
            message=model.message,
            data=model.data or {},
            is_read=bool(model.is_read),
            action_url=model.action_url,
            created_at=ensure_app_timezone(model.created_at),
            read_at=ensure_app_timezone(model.read_at),
            expires_at=ensure_app_timezone(model.expires_at),
        )


__all__ = ["NotificationRepository"]
