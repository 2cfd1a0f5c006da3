"""Authenticated caller identity resolved from a bearer token."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Identity:
    """The user on whose behalf an operation runs."""

    user_id: str
    name: str | None = None
    email: str | None = None

    @property
    def display_name(self) -> str:
        return self.name or "Someone"


__all__ = ["Identity"]
