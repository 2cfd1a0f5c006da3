"""Helpers that build notifications for common marketplace events."""

from __future__ import annotations

from sqlalchemy.orm import Session

from marketplace_messaging.domain.entities import Notification, Suppressed
from marketplace_messaging.domain.errors import ValidationError
from marketplace_messaging.domain.notification_types import NotificationType
from marketplace_messaging.infrastructure.realtime import RealtimeFanout, realtime_fanout

from .dispatcher import notify

MESSAGE_PREVIEW_LENGTH = 100

_LISTING_EVENT_LABELS = {
    NotificationType.LISTING_CREATED: "created",
    NotificationType.LISTING_UPDATED: "updated",
    NotificationType.LISTING_EXPIRED: "expired",
}


def _listing_url(listing_id: str) -> str:
    return f"/listings/{listing_id}"


def truncate_preview(text: str, limit: int = MESSAGE_PREVIEW_LENGTH) -> str:
    """Shorten ``text`` to ``limit`` characters followed by an ellipsis."""

    if len(text) > limit:
        return f"{text[:limit]}..."
    return text


def notify_listing_event(
    session: Session,
    *,
    listing_id: str,
    listing_title: str,
    event: str | NotificationType,
    user_id: str,
    fanout: RealtimeFanout = realtime_fanout,
) -> Notification | Suppressed:
    """Tell a listing owner that their listing was created, updated or expired."""

    if event in _LISTING_EVENT_LABELS.values():
        event = f"listing_{event}"
    try:
        event_type = NotificationType(event)
    except ValueError as exc:
        raise ValidationError("type", f"Unsupported listing event '{event}'") from exc
    label = _LISTING_EVENT_LABELS.get(event_type)
    if label is None:
        raise ValidationError("type", f"Unsupported listing event '{event}'")

    return notify(
        session,
        user_id=user_id,
        type=event_type,
        title=f"Listing {label.capitalize()}",
        message=f'Your listing "{listing_title}" has been {label}.',
        data={"listing_id": listing_id, "listing_title": listing_title},
        action_url=_listing_url(listing_id),
        fanout=fanout,
    )


def notify_new_chat_message(
    session: Session,
    *,
    thread_id: int,
    sender_name: str,
    message_preview: str,
    recipient_id: str,
    fanout: RealtimeFanout = realtime_fanout,
) -> Notification | Suppressed:
    return notify(
        session,
        user_id=recipient_id,
        type=NotificationType.NEW_MESSAGE,
        title=f"New message from {sender_name}",
        message=truncate_preview(message_preview),
        data={"thread_id": thread_id, "sender_name": sender_name},
        action_url=f"/chat/{thread_id}",
        fanout=fanout,
    )


def notify_listing_favorited(
    session: Session,
    *,
    listing_id: str,
    listing_title: str,
    favorited_by_id: str,
    listing_owner_id: str,
    fanout: RealtimeFanout = realtime_fanout,
) -> Notification | Suppressed:
    """Tell the owner that someone saved their listing."""

    return notify(
        session,
        user_id=listing_owner_id,
        type="favorite_added",
        title="Someone favorited your listing",
        message=f'Your listing "{listing_title}" was favorited.',
        data={
            "listing_id": listing_id,
            "listing_title": listing_title,
            "favorited_by_id": favorited_by_id,
        },
        action_url=_listing_url(listing_id),
        fanout=fanout,
    )


def notify_listing_nearby(
    session: Session,
    *,
    listing_id: str,
    listing_title: str,
    location: str,
    user_id: str,
    fanout: RealtimeFanout = realtime_fanout,
) -> Notification | Suppressed:
    return notify(
        session,
        user_id=user_id,
        type=NotificationType.NEW_LISTING_NEARBY,
        title="New listing near you",
        message=f'"{listing_title}" was posted in {location}',
        data={"listing_id": listing_id, "listing_title": listing_title, "location": location},
        action_url=_listing_url(listing_id),
        fanout=fanout,
    )


__all__ = [
    "MESSAGE_PREVIEW_LENGTH",
    "notify_listing_event",
    "notify_listing_favorited",
    "notify_listing_nearby",
    "notify_new_chat_message",
    "truncate_preview",
]
