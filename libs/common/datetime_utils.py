"""Datetime utilities for timezone-aware timestamps.

Usage:
    from libs.common.datetime_utils import utc_now

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

Course schedules are stored as a local date plus local start/end times.
``local_now`` and ``combine_local`` convert between those wall-clock values
and aware datetimes using the configured ``TIMEZONE``.
"""

from datetime import date, datetime, time, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from libs.common.config import get_settings


def utc_now() -> datetime:
    """Return timezone-aware UTC datetime.

    This replaces the deprecated datetime.utcnow() which returns naive datetimes.
    Always use this for timestamps in the database.
    """
    return datetime.now(timezone.utc)


def local_zone() -> ZoneInfo:
    return ZoneInfo(get_settings().TIMEZONE)


def local_now(now: Optional[datetime] = None) -> datetime:
    """Return ``now`` (default: current time) expressed in the local zone."""
    now = now or utc_now()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(local_zone())


def combine_local(day: date, at: time) -> datetime:
    """Build an aware datetime from a local calendar date and wall-clock time."""
    return datetime.combine(day, at.replace(tzinfo=None), tzinfo=local_zone())
