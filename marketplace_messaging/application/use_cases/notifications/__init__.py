"""Public helpers for emitting and managing notifications."""

from .dispatcher import (
    delete_notification,
    get_notification_counts,
    get_user_notifications,
    mark_all_notifications_read,
    mark_notification_read,
    notify,
)
from .email_delivery import deliver_immediate_email, send_email_digests
from .events import (
    notify_listing_event,
    notify_listing_favorited,
    notify_listing_nearby,
    notify_new_chat_message,
    truncate_preview,
)

__all__ = [
    "notify",
    "get_user_notifications",
    "mark_notification_read",
    "mark_all_notifications_read",
    "delete_notification",
    "get_notification_counts",
    "deliver_immediate_email",
    "send_email_digests",
    "notify_listing_event",
    "notify_listing_favorited",
    "notify_listing_nearby",
    "notify_new_chat_message",
    "truncate_preview",
]
