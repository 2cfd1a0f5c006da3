"""Use cases for reading and updating notification preferences."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace_messaging.domain.entities import EmailFrequency, NotificationPreference
from marketplace_messaging.domain.errors import ValidationError
from marketplace_messaging.domain.notification_types import (
    TYPE_ALIASES,
    NotificationType,
    canonicalize_type,
    default_type_switches,
    is_type_enabled,
)
from marketplace_messaging.infrastructure.database import store_guard
from marketplace_messaging.infrastructure.repositories import PreferenceRepository
from marketplace_messaging.utils import ensure_app_timezone, now_in_app_timezone

logger = logging.getLogger(__name__)

_BOOLEAN_FIELDS = ("email_enabled", "push_enabled", "in_app_enabled")
_UPDATABLE_FIELDS = frozenset(
    {*_BOOLEAN_FIELDS, "email_frequency", "muted_until", "preferences", "email_address"}
)


def get_preferences(
    session: Session, user_id: str, *, email_address: str | None = None
) -> NotificationPreference:
    """Return the user's preferences, creating the default row on first access.

    ``email_address`` seeds the email channel destination when none is stored.
    """

    repository = PreferenceRepository(session)
    with store_guard(session):
        preference = repository.get_by_user(user_id)
        if preference is None:
            preference = _create_defaults(repository, session, user_id, email_address)
        elif email_address and not preference.email_address:
            preference.email_address = email_address
            preference = repository.update(preference)
    return preference


def _create_defaults(
    repository: PreferenceRepository,
    session: Session,
    user_id: str,
    email_address: str | None,
) -> NotificationPreference:
    defaults = NotificationPreference(
        id=None,
        user_id=user_id,
        email_enabled=True,
        push_enabled=True,
        in_app_enabled=True,
        email_frequency=EmailFrequency.IMMEDIATE,
        muted_until=None,
        preferences=default_type_switches(),
        email_address=email_address,
    )
    try:
        return repository.create(defaults)
    except IntegrityError:
        # Another request created the row first.
        session.rollback()
        existing = repository.get_by_user(user_id)
        if existing is None:
            raise
        return existing


def update_preferences(
    session: Session, user_id: str, partial_updates: Mapping[str, Any]
) -> NotificationPreference:
    """Merge ``partial_updates`` into the stored preferences.

    Fields missing from ``partial_updates`` keep their current value. Entries of
    the per-type map are merged key by key after canonicalization.
    """

    unknown = set(partial_updates) - _UPDATABLE_FIELDS
    if unknown:
        field = sorted(unknown)[0]
        raise ValidationError(field, "Unknown preference field")

    preference = get_preferences(session, user_id)

    for field in _BOOLEAN_FIELDS:
        if field in partial_updates:
            value = partial_updates[field]
            if not isinstance(value, bool):
                raise ValidationError(field, "Must be a boolean")
            setattr(preference, field, value)

    if "email_frequency" in partial_updates:
        preference.email_frequency = _parse_frequency(partial_updates["email_frequency"])

    if "muted_until" in partial_updates:
        muted_until = partial_updates["muted_until"]
        if muted_until is not None and not isinstance(muted_until, datetime):
            raise ValidationError("muted_until", "Must be a timestamp or null")
        preference.muted_until = ensure_app_timezone(muted_until)

    if "email_address" in partial_updates:
        email_address = partial_updates["email_address"]
        if email_address is not None and (
            not isinstance(email_address, str) or "@" not in email_address
        ):
            raise ValidationError("email_address", "Must be a valid email address")
        preference.email_address = email_address

    if "preferences" in partial_updates:
        preference.preferences = _merge_type_switches(
            preference.preferences, partial_updates["preferences"]
        )

    with store_guard(session):
        updated = PreferenceRepository(session).update(preference)
    logger.info("Updated notification preferences for user %s", user_id)
    return updated


def _parse_frequency(value: Any) -> EmailFrequency:
    try:
        return EmailFrequency(value)
    except ValueError as exc:
        allowed = ", ".join(item.value for item in EmailFrequency)
        raise ValidationError("email_frequency", f"Must be one of: {allowed}") from exc


def _merge_type_switches(current: Mapping[str, bool], updates: Any) -> dict[str, bool]:
    if not isinstance(updates, Mapping):
        raise ValidationError("preferences", "Must be an object of type to boolean")
    merged: dict[str, bool] = {}
    # Canonical keys win over aliases stored by older clients.
    for notification_type in NotificationType:
        if _is_known_type_key(current, notification_type):
            merged[notification_type.value] = is_type_enabled(current, notification_type)
    for key, value in updates.items():
        if not isinstance(value, bool):
            raise ValidationError("preferences", f"Value for '{key}' must be a boolean")
        try:
            notification_type = canonicalize_type(key)
        except ValidationError as exc:
            raise ValidationError("preferences", exc.reason) from exc
        merged[notification_type.value] = value
    return merged


def _is_known_type_key(
    switches: Mapping[str, bool], notification_type: NotificationType
) -> bool:
    if notification_type.value in switches:
        return True
    return any(
        target is notification_type and alias in switches
        for alias, target in TYPE_ALIASES.items()
    )


def suppression_reason(
    preference: NotificationPreference,
    notification_type: NotificationType,
    *,
    now: datetime | None = None,
) -> str | None:
    """Return why ``notification_type`` must not be delivered, or ``None``."""

    now = ensure_app_timezone(now) or now_in_app_timezone()
    if preference.is_muted(now):
        return "muted"
    if not preference.in_app_enabled:
        return "in_app_disabled"
    if not is_type_enabled(preference.preferences, notification_type):
        return "type_disabled"
    return None


def is_suppressed(
    session: Session,
    user_id: str,
    notification_type: str | NotificationType,
    *,
    now: datetime | None = None,
) -> bool:
    """Return ``True`` when the user's preferences block ``notification_type``."""

    canonical = canonicalize_type(notification_type)
    preference = get_preferences(session, user_id)
    return suppression_reason(preference, canonical, now=now) is not None


__all__ = [
    "get_preferences",
    "update_preferences",
    "is_suppressed",
    "suppression_reason",
]
