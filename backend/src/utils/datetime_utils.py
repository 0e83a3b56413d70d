"""
Datetime utilities for consistent timezone handling across the application.

Booking dates arrive as ISO strings. Stored values are UTC; business-day
arithmetic (notice windows, message dates) happens in the studio timezone.
"""

import logging
from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from core.config import STUDIO_TIMEZONE

logger = logging.getLogger(__name__)

STUDIO_TZ = ZoneInfo(STUDIO_TIMEZONE)


def studio_now() -> datetime:
    """
    Get current datetime in the studio timezone.

    Returns:
        Current timezone-aware datetime in the studio timezone
    """
    return datetime.now(STUDIO_TZ)


def ensure_studio_tz(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure a datetime is timezone-aware in the studio timezone.

    Naive datetimes are assumed to already be studio-local.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=STUDIO_TZ)
    return dt.astimezone(STUDIO_TZ)


def as_utc(dt: datetime) -> datetime:
    """
    Normalize a stored or parsed datetime to aware UTC.

    Naive values coming back from the database are UTC (that is how they are
    written); SQLite drops tzinfo on the way in.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_booking_datetime(value: str | datetime) -> datetime:
    """
    Parse a booking date into an aware UTC datetime.

    Handles:
    - ISO format with offset (e.g., "2025-06-01T17:00:00+07:00")
    - ISO format with Z (e.g., "2025-06-01T10:00:00Z")
    - ISO format without timezone (interpreted as studio-local time)
    - datetime objects (naive ones interpreted as studio-local time)

    Raises:
        ValueError: If the string cannot be parsed
    """
    if isinstance(value, datetime):
        dt = value
    else:
        text_value = value.strip()
        if not text_value:
            raise ValueError("Booking date cannot be empty")
        try:
            dt = datetime.fromisoformat(text_value.replace("Z", "+00:00"))
        except ValueError as e:
            raise ValueError(f"Invalid datetime string format: {value}") from e

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=STUDIO_TZ)
    return dt.astimezone(timezone.utc)


def slot_key(dt: datetime) -> str:
    """
    Canonical slot identifier: UTC timestamp at second precision.

    Two bookings conflict exactly when their slot keys are equal.
    """
    return as_utc(dt).strftime("%Y-%m-%dT%H:%M:%SZ")


def studio_date(dt: datetime) -> date:
    """Calendar date of a datetime in the studio timezone."""
    return as_utc(dt).astimezone(STUDIO_TZ).date()


def calendar_days_between(start: datetime, end: datetime) -> int:
    """
    Whole calendar days from start to end in the studio timezone.

    Time of day is stripped before subtracting, so 23:59 today to 00:01
    tomorrow is one day.
    """
    return (studio_date(end) - studio_date(start)).days
