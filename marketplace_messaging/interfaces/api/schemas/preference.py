"""Notification preference schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr

from marketplace_messaging.domain.entities import EmailFrequency


class PreferenceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    email_enabled: bool
    push_enabled: bool
    in_app_enabled: bool
    email_frequency: EmailFrequency
    muted_until: datetime | None = None
    preferences: dict[str, bool]
    email_address: str | None = None


class PreferenceUpdate(BaseModel):
    """Partial update; only the fields sent by the client are applied."""

    model_config = ConfigDict(extra="forbid")

    email_enabled: bool | None = None
    push_enabled: bool | None = None
    in_app_enabled: bool | None = None
    email_frequency: str | None = None
    muted_until: datetime | None = None
    preferences: dict[str, bool] | None = None
    email_address: EmailStr | None = None

    def partial_updates(self) -> dict[str, object]:
        """Return the fields present in the request body.

        ``muted_until`` and ``email_address`` may be cleared with ``null``;
        the remaining fields ignore ``null``.
        """

        updates = self.model_dump(exclude_unset=True)
        nullable = {"muted_until", "email_address"}
        return {
            key: value
            for key, value in updates.items()
            if value is not None or key in nullable
        }


__all__ = ["PreferenceRead", "PreferenceUpdate"]
