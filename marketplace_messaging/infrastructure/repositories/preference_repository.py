"""Persistence helpers for notification preferences."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy.orm import Session

from marketplace_messaging.domain.entities import EmailFrequency, NotificationPreference
from marketplace_messaging.infrastructure.models import NotificationPreferenceModel
from marketplace_messaging.utils import (
    ensure_app_timezone,
    now_in_app_timezone,
    to_utc_naive,
)


class PreferenceRepository:
    """Provide lookup, insert and update of :class:`NotificationPreference` rows."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_by_user(self, user_id: str) -> NotificationPreference | None:
        model = self._get_model(user_id)
        return self._to_entity(model) if model else None

    def create(self, preference: NotificationPreference) -> NotificationPreference:
        """Insert a preference row.

        A concurrent insert for the same user raises
        :class:`sqlalchemy.exc.IntegrityError` through the unique ``user_id``.
        """

        model = NotificationPreferenceModel()
        self._apply_entity_to_model(model, preference)
        model.created_at = to_utc_naive(
            preference.created_at or now_in_app_timezone()
        )
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def update(self, preference: NotificationPreference) -> NotificationPreference:
        model = self._get_model(preference.user_id)
        if model is None:
            msg = f"Preferences for user {preference.user_id} not found"
            raise ValueError(msg)
        self._apply_entity_to_model(model, preference)
        model.updated_at = to_utc_naive(now_in_app_timezone())
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def list_for_digest(self, frequency: EmailFrequency) -> Sequence[NotificationPreference]:
        query = (
            self.session.query(NotificationPreferenceModel)
            .filter(NotificationPreferenceModel.email_enabled.is_(True))
            .filter(NotificationPreferenceModel.email_frequency == frequency.value)
            .filter(NotificationPreferenceModel.email_address.isnot(None))
            .order_by(NotificationPreferenceModel.id.asc())
        )
        return [self._to_entity(model) for model in query.all()]

    def _get_model(self, user_id: str) -> NotificationPreferenceModel | None:
        return (
            self.session.query(NotificationPreferenceModel)
            .filter(NotificationPreferenceModel.user_id == user_id)
            .first()
        )

    @staticmethod
    def _apply_entity_to_model(
        model: NotificationPreferenceModel, preference: NotificationPreference
    ) -> None:
        model.user_id = preference.user_id
        model.email_enabled = preference.email_enabled
        model.push_enabled = preference.push_enabled
        model.in_app_enabled = preference.in_app_enabled
        model.email_frequency = preference.email_frequency.value
        model.muted_until = to_utc_naive(preference.muted_until)
        # A new dict so SQLAlchemy detects the JSON change.
        model.preferences = dict(preference.preferences or {})
        model.email_address = preference.email_address
        model.last_digest_sent_at = to_utc_naive(
            preference.last_digest_sent_at
        )

    @staticmethod
    def _to_entity(model: NotificationPreferenceModel) -> NotificationPreference:
        return NotificationPreference(
            id=model.id,
            user_id=model.user_id,
            email_enabled=bool(model.email_enabled),
            push_enabled=bool(model.push_enabled),
            in_app_enabled=bool(model.in_app_enabled),
            email_frequency=EmailFrequency(model.email_frequency),
            muted_until=ensure_app_timezone(model.muted_until),
            preferences=dict(model.preferences or {}),
            email_address=model.email_address,
            last_digest_sent_at=ensure_app_timezone(model.last_digest_sent_at),
            created_at=ensure_app_timezone(model.created_at),
            updated_at=ensure_app_timezone(model.updated_at),
        )


__all__ = ["PreferenceRepository"]
