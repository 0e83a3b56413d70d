"""
Booking rule validation.

Checks a requested booking against the studio's business rules before
anything is written: the selected service must exist and be active, the
date must fall inside the configured notice/advance window, and the exact
timestamp must not be held by another non-canceled booking.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from core.exceptions import BookingRuleViolation, ErrorCode, SlotUnavailableError
from models import Service, StudioSettings
from services.booking_repository import BookingRepository
from utils.datetime_utils import calendar_days_between, slot_key, studio_now

logger = logging.getLogger(__name__)


class BookingRulesService:
    """Service class for booking rule checks."""

    @staticmethod
    def validate_service(service: Optional[Service], service_id: Optional[str]) -> Service:
        """
        Ensure the selected service exists and is bookable.

        Raises:
            BookingRuleViolation: INVALID_SERVICE or SERVICE_INACTIVE
        """
        if service is None:
            logger.warning(f"Invalid service selected: {service_id}")
            raise BookingRuleViolation(
                ErrorCode.INVALID_SERVICE,
                "Invalid service selected",
                {"service_id": service_id},
            )
        if not service.is_active:
            logger.warning(f"Attempted to book inactive service: {service_id}")
            raise BookingRuleViolation(
                ErrorCode.SERVICE_INACTIVE,
                "Selected service is not available",
                {"service_id": service_id},
            )
        return service

    @staticmethod
    def validate_booking_window(
        booking_date: datetime,
        settings: StudioSettings,
        now: Optional[datetime] = None
    ) -> int:
        """
        Check the booking date against the minimum notice and maximum advance window.

        Day difference is counted in whole calendar days in the studio timezone
        (time of day is ignored).

        Args:
            booking_date: Aware booking datetime
            settings: Validated studio settings
            now: Current time (defaults to studio now)

        Returns:
            The day difference between today and the booking date

        Raises:
            BookingRuleViolation: MIN_BOOKING_NOTICE_VIOLATED or MAX_BOOKING_AHEAD_VIOLATED
        """
        today = now or studio_now()
        days_diff = calendar_days_between(today, booking_date)

        if days_diff < settings.min_booking_notice:
            logger.warning(
                f"Booking violates minimum notice requirement: date={booking_date.isoformat()}, "
                f"days_diff={days_diff}, min_booking_notice={settings.min_booking_notice}"
            )
            raise BookingRuleViolation(
                ErrorCode.MIN_BOOKING_NOTICE_VIOLATED,
                f"Booking must be made at least {settings.min_booking_notice} day(s) in advance",
                {"min_booking_notice": settings.min_booking_notice, "days_diff": days_diff},
            )

        if days_diff > settings.max_booking_ahead:
            logger.warning(
                f"Booking exceeds maximum advance booking: date={booking_date.isoformat()}, "
                f"days_diff={days_diff}, max_booking_ahead={settings.max_booking_ahead}"
            )
            raise BookingRuleViolation(
                ErrorCode.MAX_BOOKING_AHEAD_VIOLATED,
                f"Cannot book more than {settings.max_booking_ahead} days in advance",
                {"max_booking_ahead": settings.max_booking_ahead, "days_diff": days_diff},
            )

        return days_diff

    @staticmethod
    def ensure_slot_available(
        db: Session,
        booking_date: datetime,
        exclude_booking_id: Optional[str] = None
    ) -> None:
        """
        Reject a timestamp already held by a non-canceled booking.

        Raises:
            SlotUnavailableError: Slot is taken
        """
        if not BookingRepository.check_slot_availability(db, booking_date, exclude_booking_id):
            key = slot_key(booking_date)
            logger.warning(f"Slot not available for booking: {key}")
            raise SlotUnavailableError(key)
