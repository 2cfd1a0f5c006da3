"""Domain entities exposed by the application."""

from .chat_thread import ChatThread, ThreadSummary, canonical_pair
from .identity import Identity
from .listing import Listing
from .message import Message
from .notification import Notification, NotificationCounts, NotificationPage, Suppressed
from .notification_preference import EmailFrequency, NotificationPreference

__all__ = [
    "ChatThread",
    "ThreadSummary",
    "canonical_pair",
    "Identity",
    "Listing",
    "Message",
    "Notification",
    "NotificationCounts",
    "NotificationPage",
    "Suppressed",
    "EmailFrequency",
    "NotificationPreference",
]
