"""
Unit tests for booking rule validation.
"""

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from core.exceptions import BookingRuleViolation, ErrorCode, SlotUnavailableError
from models import StudioSettings
from services.booking_rules_service import BookingRulesService
from utils.datetime_utils import STUDIO_TZ

NOW = datetime(2025, 5, 25, 9, 0, tzinfo=STUDIO_TZ)


def studio_time(day: int, hour: int = 10, minute: int = 0, month: int = 5) -> datetime:
    return datetime(2025, month, day, hour, minute, tzinfo=STUDIO_TZ)


class TestValidateService:
    """Test service selection checks."""

    def test_unknown_service(self):
        with pytest.raises(BookingRuleViolation) as exc_info:
            BookingRulesService.validate_service(None, "missing-id")
        assert exc_info.value.code == ErrorCode.INVALID_SERVICE
        assert exc_info.value.details == {"service_id": "missing-id"}

    def test_inactive_service(self):
        service = SimpleNamespace(id="svc-1", is_active=False)
        with pytest.raises(BookingRuleViolation) as exc_info:
            BookingRulesService.validate_service(service, "svc-1")
        assert exc_info.value.code == ErrorCode.SERVICE_INACTIVE
        assert exc_info.value.status_code == 400

    def test_active_service_is_returned(self):
        service = SimpleNamespace(id="svc-1", is_active=True)
        assert BookingRulesService.validate_service(service, "svc-1") is service


class TestValidateBookingWindow:
    """Test minimum notice and maximum advance rules."""

    def test_min_notice_two_days_rejects_tomorrow(self):
        settings = StudioSettings(min_booking_notice=2)
        with pytest.raises(BookingRuleViolation) as exc_info:
            BookingRulesService.validate_booking_window(studio_time(26), settings, NOW)
        assert exc_info.value.code == ErrorCode.MIN_BOOKING_NOTICE_VIOLATED
        assert exc_info.value.details == {"min_booking_notice": 2, "days_diff": 1}

    def test_min_notice_two_days_accepts_three_days_out(self):
        settings = StudioSettings(min_booking_notice=2)
        assert BookingRulesService.validate_booking_window(studio_time(28), settings, NOW) == 3

    def test_default_notice_rejects_same_day(self):
        with pytest.raises(BookingRuleViolation) as exc_info:
            BookingRulesService.validate_booking_window(studio_time(25, hour=18), StudioSettings(), NOW)
        assert exc_info.value.code == ErrorCode.MIN_BOOKING_NOTICE_VIOLATED

    def test_zero_notice_allows_same_day(self):
        settings = StudioSettings(min_booking_notice=0)
        assert BookingRulesService.validate_booking_window(studio_time(25, hour=18), settings, NOW) == 0

    def test_time_of_day_is_ignored(self):
        """23:59 tonight to 00:01 tomorrow counts as one day."""
        now = datetime(2025, 5, 25, 23, 59, tzinfo=STUDIO_TZ)
        assert BookingRulesService.validate_booking_window(studio_time(26, hour=0, minute=1), StudioSettings(), now) == 1

    def test_days_counted_in_studio_timezone(self):
        """A UTC timestamp late in the evening is already the next day in Jakarta."""
        booking_date = datetime(2025, 5, 25, 18, 30, tzinfo=timezone.utc)  # 01:30 on the 26th in Jakarta
        assert BookingRulesService.validate_booking_window(booking_date, StudioSettings(), NOW) == 1

    def test_max_ahead_boundary(self):
        settings = StudioSettings(max_booking_ahead=30)
        assert BookingRulesService.validate_booking_window(studio_time(24, month=6), settings, NOW) == 30

        with pytest.raises(BookingRuleViolation) as exc_info:
            BookingRulesService.validate_booking_window(studio_time(25, month=6), settings, NOW)
        assert exc_info.value.code == ErrorCode.MAX_BOOKING_AHEAD_VIOLATED
        assert exc_info.value.details == {"max_booking_ahead": 30, "days_diff": 31}

    def test_past_date_violates_min_notice(self):
        with pytest.raises(BookingRuleViolation) as exc_info:
            BookingRulesService.validate_booking_window(studio_time(20), StudioSettings(min_booking_notice=0), NOW)
        assert exc_info.value.code == ErrorCode.MIN_BOOKING_NOTICE_VIOLATED


class TestEnsureSlotAvailable:
    """Test the slot pre-check wrapper."""

    def test_taken_slot_raises(self, monkeypatch):
        monkeypatch.setattr(
            "services.booking_rules_service.BookingRepository.check_slot_availability",
            lambda db, booking_date, exclude_booking_id=None: False,
        )
        with pytest.raises(SlotUnavailableError) as exc_info:
            BookingRulesService.ensure_slot_available(None, datetime(2025, 6, 1, 10, 0, tzinfo=timezone.utc))
        assert exc_info.value.code == ErrorCode.SLOT_UNAVAILABLE
        assert exc_info.value.status_code == 409
        assert exc_info.value.details == {"slot": "2025-06-01T10:00:00Z"}

    def test_free_slot_passes(self, monkeypatch):
        calls = []

        def fake_check(db, booking_date, exclude_booking_id=None):
            calls.append(exclude_booking_id)
            return True

        monkeypatch.setattr("services.booking_rules_service.BookingRepository.check_slot_availability", fake_check)
        BookingRulesService.ensure_slot_available(None, datetime(2025, 6, 1, 10, 0, tzinfo=timezone.utc), "bk-1")
        assert calls == ["bk-1"]
