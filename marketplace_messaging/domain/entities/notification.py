"""Domain entities representing user notifications."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..notification_types import NotificationType


@dataclass
class Notification:
    """Information message delivered to a specific user."""

    id: int | None
    user_id: str
    type: NotificationType
    title: str
    message: str
    data: dict[str, Any] = field(default_factory=dict)
    is_read: bool = False
    action_url: str | None = None
    created_at: datetime | None = None
    read_at: datetime | None = None
    expires_at: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now


@dataclass(frozen=True)
class Suppressed:
    """Result of a delivery deliberately skipped because of user preferences."""

    user_id: str
    type: NotificationType
    reason: str


@dataclass
class NotificationPage:
    """One page of notifications plus the total matching the filters."""

    items: list[Notification]
    count: int
    has_more: bool


@dataclass
class NotificationCounts:
    total: int
    unread: int


__all__ = ["Notification", "NotificationCounts", "NotificationPage", "Suppressed"]
