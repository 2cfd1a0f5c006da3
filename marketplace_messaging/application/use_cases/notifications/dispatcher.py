"""Create, filter and manage notifications according to user preferences."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from marketplace_messaging.config import get_settings
from marketplace_messaging.domain.entities import (
    Notification,
    NotificationCounts,
    NotificationPage,
    Suppressed,
)
from marketplace_messaging.domain.errors import Forbidden, NotFound, ValidationError
from marketplace_messaging.domain.notification_types import NotificationType, canonicalize_type
from marketplace_messaging.infrastructure.database import store_guard
from marketplace_messaging.infrastructure.realtime import RealtimeFanout, realtime_fanout
from marketplace_messaging.infrastructure.repositories import NotificationRepository
from marketplace_messaging.utils import ensure_app_timezone, now_in_app_timezone

from ..preferences import get_preferences, suppression_reason
from .email_delivery import deliver_immediate_email

logger = logging.getLogger(__name__)


def notify(
    session: Session,
    *,
    user_id: str,
    type: str | NotificationType,
    title: str,
    message: str,
    data: dict[str, Any] | None = None,
    action_url: str | None = None,
    expires_at: datetime | None = None,
    fanout: RealtimeFanout = realtime_fanout,
) -> Notification | Suppressed:
    """Persist and publish a notification unless the recipient suppressed it.

    A suppressed delivery is returned as :class:`Suppressed`, never raised.
    """

    if not user_id:
        raise ValidationError("user_id", "Recipient is required")
    if not (title or "").strip():
        raise ValidationError("title", "Title cannot be empty")
    if data is not None and not isinstance(data, dict):
        raise ValidationError("data", "Must be an object")
    notification_type = canonicalize_type(type)

    preference = get_preferences(session, user_id)
    reason = suppression_reason(preference, notification_type)
    if reason is not None:
        logger.info(
            "Suppressed %s notification for user %s (%s)",
            notification_type.value,
            user_id,
            reason,
        )
        return Suppressed(user_id=user_id, type=notification_type, reason=reason)

    notification = Notification(
        id=None,
        user_id=user_id,
        type=notification_type,
        title=title.strip(),
        message=message or "",
        data=dict(data or {}),
        is_read=False,
        action_url=action_url,
        created_at=now_in_app_timezone(),
        read_at=None,
        expires_at=ensure_app_timezone(expires_at),
    )
    with store_guard(session, retryable=False):
        saved = NotificationRepository(session).create(notification)

    fanout.new_notification(saved)
    if preference.wants_immediate_email():
        deliver_immediate_email(preference, saved)
    return saved


def get_user_notifications(
    session: Session,
    *,
    user_id: str,
    limit: int | None = None,
    offset: int = 0,
    include_read: bool = False,
    type: str | NotificationType | None = None,
) -> NotificationPage:
    """Return a page of the user's live notifications, newest first."""

    settings = get_settings()
    limit = settings.notification_page_size if limit is None else limit
    if limit < 1 or limit > settings.notification_max_page_size:
        raise ValidationError(
            "limit", f"Must be between 1 and {settings.notification_max_page_size}"
        )
    if offset < 0:
        raise ValidationError("offset", "Cannot be negative")
    notification_type = canonicalize_type(type) if type else None

    with store_guard(session):
        items, count = NotificationRepository(session).list_for_user(
            user_id,
            limit=limit,
            offset=offset,
            include_read=include_read,
            notification_type=notification_type,
        )
    return NotificationPage(
        items=list(items), count=count, has_more=count > offset + limit
    )


def _get_owned_notification(
    repository: NotificationRepository, notification_id: int, user_id: str
) -> Notification:
    notification = repository.get(notification_id)
    if notification is None:
        raise NotFound("Notification not found")
    if notification.user_id != user_id:
        raise Forbidden("Notification belongs to another user")
    return notification


def mark_notification_read(
    session: Session, *, notification_id: int, user_id: str
) -> bool:
    """Mark one notification as read; returns ``False`` when it already was."""

    repository = NotificationRepository(session)
    with store_guard(session):
        _get_owned_notification(repository, notification_id, user_id)
        return repository.mark_as_read(notification_id, user_id=user_id)


def mark_all_notifications_read(session: Session, *, user_id: str) -> int:
    with store_guard(session):
        return NotificationRepository(session).mark_all_as_read(user_id)


def delete_notification(session: Session, *, notification_id: int, user_id: str) -> None:
    """Remove a notification owned by ``user_id``."""

    repository = NotificationRepository(session)
    with store_guard(session, retryable=False):
        _get_owned_notification(repository, notification_id, user_id)
        repository.delete(notification_id)
    logger.info("User %s deleted notification %s", user_id, notification_id)


def get_notification_counts(session: Session, *, user_id: str) -> NotificationCounts:
    with store_guard(session):
        total, unread = NotificationRepository(session).counts_for_user(user_id)
    return NotificationCounts(total=total, unread=unread)


__all__ = [
    "notify",
    "get_user_notifications",
    "mark_notification_read",
    "mark_all_notifications_read",
    "delete_notification",
    "get_notification_counts",
]
