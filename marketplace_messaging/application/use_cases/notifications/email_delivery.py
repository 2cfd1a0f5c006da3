"""Email channel: immediate delivery and periodic digests."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from marketplace_messaging.domain.entities import (
    EmailFrequency,
    Notification,
    NotificationPreference,
)
from marketplace_messaging.domain.errors import ValidationError
from marketplace_messaging.infrastructure.database import store_guard
from marketplace_messaging.infrastructure.email import (
    send_digest_email,
    send_notification_email,
)
from marketplace_messaging.infrastructure.repositories import (
    NotificationRepository,
    PreferenceRepository,
)
from marketplace_messaging.utils import ensure_app_timezone, now_in_app_timezone

logger = logging.getLogger(__name__)

DIGEST_PERIODS: dict[EmailFrequency, timedelta] = {
    EmailFrequency.DAILY: timedelta(days=1),
    EmailFrequency.WEEKLY: timedelta(days=7),
}
DIGEST_ITEM_LIMIT = 50


def deliver_immediate_email(
    preference: NotificationPreference, notification: Notification
) -> bool:
    """Send ``notification`` right away; failures are logged and reported as ``False``."""

    if not preference.wants_immediate_email():
        return False
    delivered = send_notification_email(preference.email_address, notification)
    if not delivered:
        logger.warning(
            "Could not email notification %s to user %s",
            notification.id,
            notification.user_id,
        )
    return delivered


def send_email_digests(
    session: Session,
    *,
    frequency: EmailFrequency | str,
    now: datetime | None = None,
) -> int:
    """Email every opted-in user a summary of their unread notifications.

    Users already served within the current period are skipped, so running the
    job twice does not send twice. Returns the number of emails sent.
    """

    try:
        frequency = EmailFrequency(frequency)
    except ValueError as exc:
        raise ValidationError("frequency", "Must be 'daily' or 'weekly'") from exc
    period = DIGEST_PERIODS.get(frequency)
    if period is None:
        raise ValidationError("frequency", "Must be 'daily' or 'weekly'")

    now = ensure_app_timezone(now) or now_in_app_timezone()
    preference_repository = PreferenceRepository(session)
    notification_repository = NotificationRepository(session)

    sent = 0
    with store_guard(session):
        preferences = preference_repository.list_for_digest(frequency)
    for preference in preferences:
        if preference.is_muted(now):
            continue
        if preference.last_digest_sent_at and now - preference.last_digest_sent_at < period:
            continue
        with store_guard(session):
            notifications = notification_repository.list_unread_for_user(
                preference.user_id,
                since=preference.last_digest_sent_at,
                limit=DIGEST_ITEM_LIMIT,
            )
        if not notifications:
            continue
        if not send_digest_email(
            preference.email_address, notifications, period=frequency.value
        ):
            logger.warning("Could not send %s digest to user %s", frequency.value, preference.user_id)
            continue
        preference.last_digest_sent_at = now
        with store_guard(session):
            preference_repository.update(preference)
        sent += 1

    logger.info("Sent %s %s digest email(s)", sent, frequency.value)
    return sent


__all__ = ["deliver_immediate_email", "send_email_digests", "DIGEST_PERIODS"]
