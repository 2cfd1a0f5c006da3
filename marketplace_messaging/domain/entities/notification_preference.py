"""Domain entity holding per-user delivery preferences."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class EmailFrequency(str, Enum):
    IMMEDIATE = "immediate"
    DAILY = "daily"
    WEEKLY = "weekly"
    NEVER = "never"


@dataclass
class NotificationPreference:
    """Channel toggles, mute window and per-type switches for one user."""

    id: int | None
    user_id: str
    email_enabled: bool = True
    push_enabled: bool = True
    in_app_enabled: bool = True
    email_frequency: EmailFrequency = EmailFrequency.IMMEDIATE
    muted_until: datetime | None = None
    preferences: dict[str, bool] = field(default_factory=dict)
    email_address: str | None = None
    last_digest_sent_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def is_muted(self, now: datetime) -> bool:
        """Return ``True`` while the mute window is still open."""

        return self.muted_until is not None and self.muted_until > now

    def wants_immediate_email(self) -> bool:
        return (
            self.email_enabled
            and self.email_frequency is EmailFrequency.IMMEDIATE
            and bool(self.email_address)
        )


__all__ = ["EmailFrequency", "NotificationPreference"]
