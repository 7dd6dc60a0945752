"""Datetime utilities for timezone-aware timestamps.

Storage is always UTC. Store-local time (``settings.TIMEZONE``) is only used
for human-facing values: order codes, report buckets and export headers.

Usage:
    from libs.common.datetime_utils import utc_now

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
"""

from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from libs.common.config import get_settings


def utc_now() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC (some drivers drop the offset on read)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def store_timezone() -> ZoneInfo:
    return ZoneInfo(get_settings().TIMEZONE)


def to_store_time(value: datetime) -> datetime:
    """Convert a stored timestamp to the store's local time zone."""
    return ensure_utc(value).astimezone(store_timezone())


def store_now() -> datetime:
    return utc_now().astimezone(store_timezone())
