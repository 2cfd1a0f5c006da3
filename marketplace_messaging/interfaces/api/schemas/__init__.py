from .notification import (
    MarkAllReadResponse,
    NotificationCountsRead,
    NotificationPageRead,
    NotificationRead,
    SuccessResponse,
)
from .preference import PreferenceRead, PreferenceUpdate
from .thread import (
    MarkReadResponse,
    MessageCreate,
    MessageCreateResponse,
    MessageRead,
    ThreadCreate,
    ThreadCreateResponse,
    ThreadRead,
    ThreadSummaryRead,
    UnreadCountRead,
)

__all__ = [
    "MarkAllReadResponse",
    "MarkReadResponse",
    "MessageCreate",
    "MessageCreateResponse",
    "MessageRead",
    "NotificationCountsRead",
    "NotificationPageRead",
    "NotificationRead",
    "PreferenceRead",
    "PreferenceUpdate",
    "SuccessResponse",
    "ThreadCreate",
    "ThreadCreateResponse",
    "ThreadRead",
    "ThreadSummaryRead",
    "UnreadCountRead",
]
