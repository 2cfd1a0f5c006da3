"""Read-only view of a marketplace listing owned by the listings service."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Listing:
    id: str
    owner_id: str
    title: str


__all__ = ["Listing"]
