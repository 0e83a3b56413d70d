"""
Unit tests for datetime utilities.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from utils.datetime_utils import (
    STUDIO_TZ,
    as_utc,
    calendar_days_between,
    ensure_studio_tz,
    parse_booking_datetime,
    slot_key,
    studio_date,
    studio_now,
)


class TestParseBookingDatetime:
    """Test booking date parsing."""

    def test_z_suffix(self):
        assert parse_booking_datetime("2025-06-01T10:00:00Z") == datetime(2025, 6, 1, 10, 0, tzinfo=timezone.utc)

    def test_offset(self):
        assert parse_booking_datetime("2025-06-01T17:00:00+07:00") == datetime(2025, 6, 1, 10, 0, tzinfo=timezone.utc)

    def test_naive_is_studio_local(self):
        assert parse_booking_datetime("2025-06-01T17:00:00") == datetime(2025, 6, 1, 10, 0, tzinfo=timezone.utc)

    def test_datetime_input(self):
        naive = datetime(2025, 6, 1, 17, 0)
        assert parse_booking_datetime(naive) == datetime(2025, 6, 1, 10, 0, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", ["", "   ", "not-a-date", "2025-13-01T10:00:00Z"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_booking_datetime(value)


class TestSlotKey:
    """Test the canonical slot key."""

    def test_equivalent_instants_share_a_key(self):
        a = parse_booking_datetime("2025-06-01T10:00:00Z")
        b = parse_booking_datetime("2025-06-01T17:00:00+07:00")
        assert slot_key(a) == slot_key(b) == "2025-06-01T10:00:00Z"

    def test_different_times_differ(self):
        assert slot_key(parse_booking_datetime("2025-06-01T10:30:00Z")) != slot_key(parse_booking_datetime("2025-06-01T10:00:00Z"))

    def test_naive_stored_value(self):
        assert slot_key(datetime(2025, 6, 1, 10, 0)) == "2025-06-01T10:00:00Z"


class TestCalendarDays:
    """Test studio calendar-day arithmetic."""

    def test_studio_date(self):
        assert studio_date(datetime(2025, 5, 31, 18, 0, tzinfo=timezone.utc)) == date(2025, 6, 1)

    def test_days_between_ignores_time(self):
        start = datetime(2025, 5, 25, 23, 59, tzinfo=STUDIO_TZ)
        end = datetime(2025, 5, 26, 0, 1, tzinfo=STUDIO_TZ)
        assert calendar_days_between(start, end) == 1

    def test_negative_for_past(self):
        start = datetime(2025, 5, 25, 9, 0, tzinfo=STUDIO_TZ)
        assert calendar_days_between(start, start - timedelta(days=2)) == -2


class TestTimezoneHelpers:
    """Test timezone normalization helpers."""

    def test_studio_now_is_aware(self):
        assert studio_now().tzinfo is not None

    def test_ensure_studio_tz(self):
        assert ensure_studio_tz(None) is None
        assert ensure_studio_tz(datetime(2025, 6, 1, 10, 0)).tzinfo == STUDIO_TZ
        converted = ensure_studio_tz(datetime(2025, 6, 1, 3, 0, tzinfo=timezone.utc))
        assert converted.hour == 10

    def test_as_utc(self):
        assert as_utc(datetime(2025, 6, 1, 10, 0)).tzinfo == timezone.utc
        assert as_utc(datetime(2025, 6, 1, 17, 0, tzinfo=STUDIO_TZ)).hour == 10
