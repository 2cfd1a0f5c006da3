"""Pydantic models describing threads and messages."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ThreadCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    listing_id: str = Field(..., min_length=1, max_length=64)
    other_party_id: str | None = Field(
        default=None,
        max_length=64,
        description="User to talk to; defaults to the listing owner",
    )


class ThreadRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    listing_id: str
    party_a_id: str
    party_b_id: str
    created_at: datetime | None
    last_message_at: datetime | None


class ThreadCreateResponse(BaseModel):
    thread_id: int
    is_new: bool
    thread: ThreadRead


class ThreadSummaryRead(BaseModel):
    """Inbox entry for one thread."""

    thread: ThreadRead
    listing_id: str
    other_party_id: str
    unread_count: int
    has_unread: bool
    last_message_preview: str | None = None
    last_message_sender_id: str | None = None


class UnreadCountRead(BaseModel):
    count: int


class MessageCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    content: str
    client_token: str | None = Field(
        default=None,
        description="Client generated key that makes retried sends idempotent",
    )


class MessageRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    thread_id: int
    sender_id: str
    content: str
    created_at: datetime
    read: bool
    read_at: datetime | None = None


class MessageCreateResponse(BaseModel):
    message_id: int
    created_at: datetime
    message: MessageRead


class MarkReadResponse(BaseModel):
    success: bool = True
    updated: int = 0


__all__ = [
    "MarkReadResponse",
    "MessageCreate",
    "MessageCreateResponse",
    "MessageRead",
    "ThreadCreate",
    "ThreadCreateResponse",
    "ThreadRead",
    "ThreadSummaryRead",
    "UnreadCountRead",
]
