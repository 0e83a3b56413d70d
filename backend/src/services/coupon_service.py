"""
Coupon ledger: coupon validation, discount computation and usage recording.

Validation is read-only. Usage recording happens after a booking has been
committed and runs in its own transaction, so a ledger failure can never
undo a booking.
"""

import logging
from datetime import datetime
from typing import Optional

from pydantic import BaseModel
from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from core.constants import DISCOUNT_TYPE_PERCENTAGE, DISCOUNT_TYPE_FIXED
from models import Coupon, CouponUsage
from utils.datetime_utils import as_utc, studio_now

logger = logging.getLogger(__name__)


class CouponValidation(BaseModel):
    """Result of validating a coupon against an order subtotal."""
    valid: bool
    discount_amount: int = 0
    error: Optional[str] = None
    code: Optional[str] = None
    coupon_id: Optional[str] = None
    discount_type: Optional[str] = None


def normalize_code(code: str) -> str:
    return code.strip().upper()


class CouponService:
    """Service class for coupon operations."""

    @staticmethod
    def get_coupon_by_code(db: Session, code: str) -> Optional[Coupon]:
        """Look up a coupon by code, case-insensitively."""
        if not code or not code.strip():
            return None
        return db.execute(
            select(Coupon).where(Coupon.code == normalize_code(code))
        ).scalar_one_or_none()

    @staticmethod
    def calculate_discount(coupon: Coupon, subtotal: int) -> int:
        """
        Discount a coupon grants on the given subtotal.

        - Percentage: floor(subtotal * pct / 100), capped at max_discount if set
        - Fixed: discount_value, never more than the subtotal
        """
        if subtotal <= 0:
            return 0

        if coupon.discount_type == DISCOUNT_TYPE_PERCENTAGE:
            discount = subtotal * coupon.discount_value // 100
            if coupon.max_discount is not None:
                discount = min(discount, coupon.max_discount)
        elif coupon.discount_type == DISCOUNT_TYPE_FIXED:
            discount = min(coupon.discount_value, subtotal)
        else:
            raise ValueError(f"Unknown discount type: {coupon.discount_type}")

        return max(0, discount)

    @staticmethod
    def validate_coupon(
        db: Session,
        code: str,
        order_subtotal: int,
        now: Optional[datetime] = None
    ) -> CouponValidation:
        """
        Validate a coupon code against an order subtotal.

        Args:
            db: Database session
            code: Coupon code as entered
            order_subtotal: Order value before the coupon
            now: Current time (defaults to studio now)

        Returns:
            CouponValidation with the discount when valid, or the reason when not
        """
        coupon = CouponService.get_coupon_by_code(db, code)
        if coupon is None:
            return CouponValidation(valid=False, error="Coupon not found")

        result = CouponValidation(
            valid=False,
            code=coupon.code,
            coupon_id=coupon.id,
            discount_type=coupon.discount_type,
        )

        if not coupon.is_active:
            result.error = "Coupon is not active"
            return result

        current = now or studio_now()
        if coupon.valid_until is not None and as_utc(coupon.valid_until) < as_utc(current):
            result.error = "Coupon has expired"
            return result

        if coupon.usage_limit is not None and coupon.used_count >= coupon.usage_limit:
            result.error = "Coupon usage limit reached"
            return result

        if coupon.min_purchase is not None and order_subtotal < coupon.min_purchase:
            result.error = f"Minimum purchase of {coupon.min_purchase} required"
            return result

        result.valid = True
        result.discount_amount = CouponService.calculate_discount(coupon, order_subtotal)
        return result

    @staticmethod
    def increment_coupon_usage(db: Session, code: str) -> bool:
        """
        Atomically bump the coupon's usage counter (no commit).

        The usage limit is enforced in the same statement, so concurrent
        redemptions cannot push used_count past it.

        Returns:
            True if a coupon row was updated
        """
        result = db.execute(
            update(Coupon)
            .where(
                Coupon.code == normalize_code(code),
                or_(Coupon.usage_limit.is_(None), Coupon.used_count < Coupon.usage_limit),
            )
            .values(used_count=Coupon.used_count + 1)
        )
        if result.rowcount == 0:
            logger.warning(f"Coupon {normalize_code(code)} usage not incremented: missing or usage limit reached")
            return False
        return True

    @staticmethod
    def record_coupon_usage(
        db: Session,
        coupon_id: str,
        booking_id: str,
        customer_name: str,
        customer_whatsapp: str,
        discount_amount: int,
        order_total: int
    ) -> CouponUsage:
        """Append a usage audit row (no commit)."""
        usage = CouponUsage(
            coupon_id=coupon_id,
            booking_id=booking_id,
            customer_name=customer_name,
            customer_whatsapp=customer_whatsapp,
            discount_amount=discount_amount,
            order_total=order_total,
        )
        db.add(usage)
        return usage

    @staticmethod
    def redeem_coupon(
        db: Session,
        code: str,
        booking_id: str,
        customer_name: str,
        customer_whatsapp: str,
        discount_amount: int,
        order_total: int
    ) -> Optional[CouponUsage]:
        """
        Increment usage and record the audit row in one transaction.

        Called after the booking commit. On failure the ledger work is rolled
        back and the error re-raised for the caller to log.

        Returns:
            The usage row, or None if the coupon no longer exists
        """
        try:
            coupon = CouponService.get_coupon_by_code(db, code)
            if coupon is None:
                logger.warning(f"Coupon {code} disappeared before usage could be recorded for booking {booking_id}")
                return None
            CouponService.increment_coupon_usage(db, code)
            usage = CouponService.record_coupon_usage(
                db,
                coupon_id=coupon.id,
                booking_id=booking_id,
                customer_name=customer_name,
                customer_whatsapp=customer_whatsapp,
                discount_amount=discount_amount,
                order_total=order_total,
            )
            db.commit()
            logger.info(f"Recorded coupon {coupon.code} usage for booking {booking_id}: discount={discount_amount}")
            return usage
        except Exception:
            db.rollback()
            raise
