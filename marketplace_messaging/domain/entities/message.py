"""Domain entity representing a chat message."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Message:
    """Immutable text sent inside a thread; only the read flag ever changes."""

    id: int | None
    thread_id: int
    sender_id: str
    content: str
    created_at: datetime | None = None
    read: bool = False
    read_at: datetime | None = None
    client_token: str | None = None


__all__ = ["Message"]
