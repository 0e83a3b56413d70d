"""
Admin booking actions: status changes, reschedules, payments, price
adjustments and deletion.

Every mutation reloads the booking, applies the change and commits it
through the booking repository, so the slot index guards reschedules the
same way it guards creation.
"""

import logging
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel
from sqlalchemy.orm import Session

from core.constants import (
    BOOKING_STATUS_ACTIVE,
    BOOKING_STATUS_RESCHEDULED,
    BOOKING_STATUS_CANCELED,
    BOOKING_STATUS_COMPLETED,
    BOOKING_STATUSES,
)
from core.exceptions import (
    BookingNotFoundError,
    BookingRuleViolation,
    ErrorCode,
    InvalidStatusTransitionError,
)
from models import Addon, Booking, BookingAddon, Payment, RescheduleHistory
from services.booking_repository import BookingRepository
from services.booking_rules_service import BookingRulesService
from services.pricing_service import AddonLine, calculate_addons_total, calculate_total
from utils.datetime_utils import as_utc, parse_booking_datetime, slot_key, studio_now

logger = logging.getLogger(__name__)

# Reschedules go through reschedule_booking, never through a plain status change
ALLOWED_STATUS_TRANSITIONS = {
    BOOKING_STATUS_ACTIVE: {BOOKING_STATUS_CANCELED, BOOKING_STATUS_COMPLETED},
    BOOKING_STATUS_RESCHEDULED: {BOOKING_STATUS_CANCELED, BOOKING_STATUS_COMPLETED},
    BOOKING_STATUS_CANCELED: set(),
    BOOKING_STATUS_COMPLETED: set(),
}

RESCHEDULABLE_STATUSES = {BOOKING_STATUS_ACTIVE, BOOKING_STATUS_RESCHEDULED}


class FinanceSummary(BaseModel):
    """Invoice view of a booking's finances."""
    total_price: int
    service_base_price: int
    base_discount: int
    addons_total: int
    coupon_discount: int
    coupon_code: Optional[str] = None
    paid_total: int
    balance: int
    """Raw balance; negative when overpaid."""
    display_balance: int
    is_paid_off: bool


class PriceAdjustmentResult(BaseModel):
    booking_id: str
    old_total: int
    new_total: int
    adjustment: int


def build_finance_summary(booking: Booking) -> FinanceSummary:
    return FinanceSummary(
        total_price=booking.total_price,
        service_base_price=booking.service_base_price,
        base_discount=booking.base_discount,
        addons_total=booking.addons_total,
        coupon_discount=booking.coupon_discount,
        coupon_code=booking.coupon_code,
        paid_total=booking.paid_total,
        balance=booking.balance,
        display_balance=booking.display_balance,
        is_paid_off=booking.balance <= 0,
    )


class BookingAdminService:
    """Service class for admin booking management."""

    @staticmethod
    def list_bookings(db: Session, status: Optional[str] = None) -> List[Booking]:
        if status is not None and status not in BOOKING_STATUSES:
            raise ValueError(f"Unknown booking status: {status}")
        return BookingRepository.list_bookings(db, status)

    @staticmethod
    def get_booking(db: Session, booking_id: str) -> Booking:
        """
        Raises:
            BookingNotFoundError: No booking with this id
        """
        booking = BookingRepository.read_booking(db, booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        return booking

    @staticmethod
    def change_status(db: Session, booking_id: str, new_status: str) -> Booking:
        """
        Move a booking to a new status.

        Canceling releases the slot: the partial unique index only covers
        non-canceled bookings.

        Raises:
            ValueError: Unknown status
            BookingNotFoundError: No booking with this id
            InvalidStatusTransitionError: Transition not allowed
        """
        if new_status not in BOOKING_STATUSES:
            raise ValueError(f"Unknown booking status: {new_status}")

        booking = BookingAdminService.get_booking(db, booking_id)
        current = booking.status
        if current == new_status:
            return booking

        if new_status not in ALLOWED_STATUS_TRANSITIONS.get(current, set()):
            logger.warning(f"Rejected status transition for booking {booking_id}: {current} -> {new_status}")
            raise InvalidStatusTransitionError(current, new_status)

        booking.status = new_status
        booking = BookingRepository.update_booking(db, booking)
        logger.info(f"Booking {booking_id} status changed: {current} -> {new_status}")
        return booking

    @staticmethod
    def reschedule_booking(
        db: Session,
        booking_id: str,
        new_date: str | datetime,
        reason: str = "",
        now: Optional[datetime] = None
    ) -> Booking:
        """
        Move a booking to a new date and record the move.

        Booking window rules are not applied; admins may place a booking on
        any free slot.

        Raises:
            BookingNotFoundError: No booking with this id
            InvalidStatusTransitionError: Booking is canceled or completed
            SlotUnavailableError: New slot is held by another booking
        """
        booking = BookingAdminService.get_booking(db, booking_id)
        if booking.status not in RESCHEDULABLE_STATUSES:
            raise InvalidStatusTransitionError(booking.status, BOOKING_STATUS_RESCHEDULED)

        target = parse_booking_datetime(new_date)
        BookingRulesService.ensure_slot_available(db, target, exclude_booking_id=booking.id)

        old_date = as_utc(booking.booking_date)
        booking.reschedule_history.append(RescheduleHistory(
            old_date=old_date,
            new_date=target,
            reason=reason or "",
            rescheduled_at=now or studio_now(),
        ))
        booking.booking_date = target
        booking.slot_key = slot_key(target)
        booking.status = BOOKING_STATUS_RESCHEDULED

        booking = BookingRepository.update_booking(db, booking)
        logger.info(f"Booking {booking_id} rescheduled: {slot_key(old_date)} -> {booking.slot_key}")
        return booking

    @staticmethod
    def add_payment(
        db: Session,
        booking_id: str,
        payment_date: str,
        amount: int,
        note: str = ""
    ) -> Booking:
        """
        Append a payment. Overpayment is allowed and shows as a negative raw balance.

        Raises:
            BookingNotFoundError: No booking with this id
        """
        booking = BookingAdminService.get_booking(db, booking_id)
        booking.payments.append(Payment(
            position=len(booking.payments),
            payment_date=payment_date,
            amount=amount,
            note=note or "",
        ))
        booking = BookingRepository.update_booking(db, booking)
        logger.info(f"Payment of {amount} recorded for booking {booking_id}, balance={booking.balance}")
        return booking

    @staticmethod
    def adjust_price(
        db: Session,
        booking_id: str,
        addon_id: str,
        quantity: int,
        custom_price: Optional[int] = None,
        reason: Optional[str] = None
    ) -> PriceAdjustmentResult:
        """
        Add an add-on line to an active booking and recompute its totals.

        The custom price, when given, replaces the catalog price and may be
        negative. The base price, base discount and coupon discount recorded
        at creation are kept.

        Raises:
            BookingNotFoundError: No booking with this id
            BookingRuleViolation: Booking is not Active, or the add-on is unknown
        """
        booking = BookingAdminService.get_booking(db, booking_id)
        if booking.status != BOOKING_STATUS_ACTIVE:
            raise BookingRuleViolation(
                ErrorCode.PRICE_ADJUSTMENT_NOT_ALLOWED,
                "Can only adjust price for Active bookings",
                {"status": booking.status},
            )
        if quantity <= 0:
            raise BookingRuleViolation(
                ErrorCode.INVALID_ADDON,
                "Add-on quantity must be positive",
                {"addon_id": addon_id, "quantity": quantity},
            )

        addon = db.get(Addon, addon_id)
        if addon is None:
            raise BookingRuleViolation(
                ErrorCode.INVALID_ADDON,
                "Add-on not found",
                {"addon_id": addon_id},
            )

        old_total = booking.total_price
        booking.addons.append(BookingAddon(
            addon_id=addon.id,
            addon_name=addon.name,
            quantity=quantity,
            price_at_booking=custom_price if custom_price is not None else addon.price,
            adjustment_reason=reason,
        ))

        booking.addons_total = calculate_addons_total(
            AddonLine(price=line.price_at_booking, quantity=line.quantity) for line in booking.addons
        )
        booking.total_price = calculate_total(
            booking.service_base_price,
            booking.addons_total,
            booking.base_discount,
            booking.coupon_discount,
        )
        booking = BookingRepository.update_booking(db, booking)

        logger.info(
            f"Price adjustment applied to booking {booking_id}: addon={addon.id}, "
            f"old_total={old_total}, new_total={booking.total_price}, reason={reason}"
        )
        return PriceAdjustmentResult(
            booking_id=booking.id,
            old_total=old_total,
            new_total=booking.total_price,
            adjustment=booking.total_price - old_total,
        )

    @staticmethod
    def delete_booking(db: Session, booking_id: str) -> None:
        """
        Delete a booking with its payments, add-ons, history and coupon usages.

        Stored proof files are left in place.

        Raises:
            BookingNotFoundError: No booking with this id
        """
        booking = BookingAdminService.get_booking(db, booking_id)
        BookingRepository.delete_booking(db, booking)
        logger.info(f"Booking {booking_id} deleted")
