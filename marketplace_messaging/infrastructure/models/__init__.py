"""ORM models used by the application infrastructure."""

from .chat_thread import ChatThreadModel
from .listing import ListingModel
from .message import MessageModel
from .notification import NotificationModel
from .notification_preference import NotificationPreferenceModel

__all__ = [
    "ChatThreadModel",
    "ListingModel",
    "MessageModel",
    "NotificationModel",
    "NotificationPreferenceModel",
]
