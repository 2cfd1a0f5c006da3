"""Utility helpers for reusable functionality."""

from .datetime import (
    ensure_app_timezone,
    get_app_timezone,
    isoformat_or_none,
    now_in_app_timezone,
    to_utc_naive,
    utc_now_naive,
)

__all__ = [
    "ensure_app_timezone",
    "get_app_timezone",
    "isoformat_or_none",
    "now_in_app_timezone",
    "to_utc_naive",
    "utc_now_naive",
]
