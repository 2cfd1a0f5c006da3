"""Error taxonomy shared by every messaging and notification operation."""

from __future__ import annotations


class MessagingError(Exception):
    """Base class for failures surfaced to API callers."""

    code = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, object]:
        return {"ok": False, "code": self.code, "message": self.message}


class Unauthenticated(MessagingError):
    """No valid caller identity was provided."""

    code = "unauthenticated"


class Forbidden(MessagingError):
    """The caller is authenticated but does not own or take part in the resource."""

    code = "forbidden"


class NotFound(MessagingError):
    """The referenced thread, listing or notification does not exist."""

    code = "not_found"


class ValidationError(MessagingError):
    """Input rejected with a field-level reason."""

    code = "validation_error"

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"{field}: {reason}")
        self.field = field
        self.reason = reason

    def to_dict(self) -> dict[str, object]:
        payload = super().to_dict()
        payload["message"] = self.reason
        payload["field"] = self.field
        return payload


class TransientStoreError(MessagingError):
    """The store or broadcast medium is unavailable."""

    code = "transient_store_error"

    def __init__(self, message: str, *, retryable: bool = True) -> None:
        super().__init__(message)
        self.retryable = retryable

    def to_dict(self) -> dict[str, object]:
        payload = super().to_dict()
        payload["retryable"] = self.retryable
        return payload


__all__ = [
    "MessagingError",
    "Unauthenticated",
    "Forbidden",
    "NotFound",
    "ValidationError",
    "TransientStoreError",
]
