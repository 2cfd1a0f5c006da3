"""Closed set of notification types and the legacy alias table.

Every place that compares types (creation, preference lookup and filtering)
goes through :func:`canonicalize_type` so that aliases behave exactly like
their canonical counterpart.
"""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Mapping

from .errors import ValidationError


class NotificationType(str, Enum):
    """Canonical notification categories."""

    NEW_MESSAGE = "new_message"
    NEW_LISTING_NEARBY = "new_listing_nearby"
    SYSTEM = "system"
    TRANSACTION_UPDATE = "transaction_update"
    REVIEW = "review"
    LISTING_CREATED = "listing_created"
    LISTING_UPDATED = "listing_updated"
    LISTING_EXPIRED = "listing_expired"
    NEW_FOLLOWER = "new_follower"
    MENTION = "mention"
    ADMIN_ANNOUNCEMENT = "admin_announcement"


TYPE_ALIASES: Mapping[str, NotificationType] = MappingProxyType(
    {
        "message_received": NotificationType.NEW_MESSAGE,
        "chat_message": NotificationType.NEW_MESSAGE,
        "system_alert": NotificationType.SYSTEM,
        "favorite_added": NotificationType.REVIEW,
    }
)

# Types whose per-user switch is off unless the user turns it on.
DISABLED_BY_DEFAULT: frozenset[NotificationType] = frozenset(
    {NotificationType.ADMIN_ANNOUNCEMENT}
)


def canonicalize_type(value: str | NotificationType) -> NotificationType:
    """Return the canonical :class:`NotificationType` for ``value``.

    Raises :class:`ValidationError` when ``value`` is neither a canonical type
    nor a known alias.
    """

    if isinstance(value, NotificationType):
        return value
    key = (value or "").strip().lower()
    alias = TYPE_ALIASES.get(key)
    if alias is not None:
        return alias
    try:
        return NotificationType(key)
    except ValueError as exc:
        raise ValidationError("type", f"Unknown notification type '{value}'") from exc


def default_type_switches() -> dict[str, bool]:
    """Return the per-type map stored for a freshly created preference row."""

    return {
        notification_type.value: notification_type not in DISABLED_BY_DEFAULT
        for notification_type in NotificationType
    }


def is_type_enabled(switches: Mapping[str, bool] | None, notification_type: NotificationType) -> bool:
    """Resolve the per-type switch, honouring aliases stored by older clients."""

    switches = switches or {}
    if notification_type.value in switches:
        return bool(switches[notification_type.value])
    for alias, target in TYPE_ALIASES.items():
        if target is notification_type and alias in switches:
            return bool(switches[alias])
    return notification_type not in DISABLED_BY_DEFAULT


__all__ = [
    "NotificationType",
    "TYPE_ALIASES",
    "DISABLED_BY_DEFAULT",
    "canonicalize_type",
    "default_type_switches",
    "is_type_enabled",
]
