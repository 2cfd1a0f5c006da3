"""Repository implementations for infrastructure layer."""

from .listing_repository import ListingRepository
from .message_repository import MessageRepository
from .notification_repository import NotificationRepository
from .preference_repository import PreferenceRepository
from .thread_repository import ThreadRepository

__all__ = [
    "ListingRepository",
    "MessageRepository",
    "NotificationRepository",
    "PreferenceRepository",
    "ThreadRepository",
]
