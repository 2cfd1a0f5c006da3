"""Timestamp helpers.

Columns are plain ``DATETIME`` holding naive UTC values, so stored instants
stay ordered across daylight saving changes. Domain code works with aware
values expressed in the configured ``APP_TIMEZONE``.
"""

from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from functools import lru_cache

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from marketplace_messaging.config import get_settings


@lru_cache(maxsize=1)
def get_app_timezone() -> tzinfo:
    """Return the configured timezone, or UTC when it cannot be resolved."""

    tz_name = (get_settings().app_timezone or "").strip()
    if not tz_name or tz_name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


def now_in_app_timezone() -> datetime:
    return datetime.now(tz=get_app_timezone())


def utc_now_naive() -> datetime:
    """Column default: the current instant as naive UTC."""

    return datetime.now(tz=timezone.utc).replace(tzinfo=None)


def ensure_app_timezone(value: datetime | None) -> datetime | None:
    """Express ``value`` in the app timezone; naive values are read as UTC."""

    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(get_app_timezone())


def to_utc_naive(value: datetime | None) -> datetime | None:
    """Return the storage form of ``value``; naive values are taken as UTC."""

    if value is None:
        return None
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def isoformat_or_none(value: datetime | None) -> str | None:
    return value.isoformat() if value else None
