"""Pydantic models describing notification payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class NotificationRead(BaseModel):
    """Representation of a notification delivered to the client."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    type: str
    title: str
    message: str
    data: dict[str, Any] = Field(default_factory=dict)
    is_read: bool
    action_url: str | None = None
    created_at: datetime
    read_at: datetime | None = None
    expires_at: datetime | None = None


class NotificationPageRead(BaseModel):
    items: list[NotificationRead]
    count: int
    has_more: bool


class NotificationCountsRead(BaseModel):
    total: int
    unread: int


class SuccessResponse(BaseModel):
    success: bool = True


class MarkAllReadResponse(SuccessResponse):
    updated: int = 0


__all__ = [
    "MarkAllReadResponse",
    "NotificationCountsRead",
    "NotificationPageRead",
    "NotificationRead",
    "SuccessResponse",
]
