"""
Coupon and coupon usage models.

Coupons carry their own usage counter; every successful redemption also
appends a CouponUsage audit row linked to the booking.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Integer, Boolean, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base, UTCTimestamp
from core.constants import MAX_STRING_LENGTH, ID_LENGTH


class Coupon(Base):
    """Discount coupon. Codes are stored upper-case and matched case-insensitively."""

    __tablename__ = "coupons"

    id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True, default=lambda: str(uuid.uuid4()))

    code: Mapped[str] = mapped_column(String(64), unique=True, index=True)

    discount_type: Mapped[str] = mapped_column(String(20))  # 'percentage' | 'fixed'

    discount_value: Mapped[int] = mapped_column(Integer, nullable=False)
    """Percent (0-100) for percentage coupons, currency units for fixed coupons."""

    max_discount: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    """Cap applied to percentage discounts."""

    min_purchase: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    """Minimum order subtotal required to use the coupon."""

    valid_until: Mapped[Optional[datetime]] = mapped_column(UTCTimestamp(), nullable=True)

    description: Mapped[Optional[str]] = mapped_column(String(MAX_STRING_LENGTH), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    usage_limit: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    """Total redemptions allowed. NULL means unlimited."""

    used_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(UTCTimestamp(), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(UTCTimestamp(), nullable=True)

    usages = relationship("CouponUsage", back_populates="coupon")


class CouponUsage(Base):
    """Append-only audit row recording a coupon redemption against a booking."""

    __tablename__ = "coupon_usages"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    coupon_id: Mapped[str] = mapped_column(ForeignKey("coupons.id"))

    booking_id: Mapped[str] = mapped_column(ForeignKey("bookings.id", ondelete="CASCADE"))

    customer_name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))

    customer_whatsapp: Mapped[str] = mapped_column(String(64))

    discount_amount: Mapped[int] = mapped_column(Integer, nullable=False)

    order_total: Mapped[int] = mapped_column(Integer, nullable=False)
    """Order value before the coupon discount."""

    created_at: Mapped[datetime] = mapped_column(UTCTimestamp(), nullable=True)

    coupon = relationship("Coupon", back_populates="usages")

    __table_args__ = (
        Index('idx_coupon_usages_coupon', 'coupon_id'),
        Index('idx_coupon_usages_booking', 'booking_id'),
    )
