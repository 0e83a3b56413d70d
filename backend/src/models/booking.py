"""
Booking aggregate: booking row plus its payments, add-on snapshots and
reschedule history.

The booking row carries the customer, schedule and the finance breakdown
computed at creation time. Child rows are written in the same transaction
as the booking so a partially written aggregate is never observable.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import String, Integer, ForeignKey, Index, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base, UTCTimestamp
from core.constants import MAX_STRING_LENGTH, MAX_NOTES_LENGTH, ID_LENGTH, BOOKING_STATUS_ACTIVE


class Booking(Base):
    """
    A customer's studio session booking.

    Slot exclusivity is enforced by the partial unique index on `slot_key`:
    at most one non-canceled booking may hold a given timestamp.
    """

    __tablename__ = "bookings"

    id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True, default=lambda: str(uuid.uuid4()))

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=BOOKING_STATUS_ACTIVE)
    """'Active', 'Rescheduled', 'Canceled' or 'Completed'."""

    # Customer
    customer_name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))
    customer_whatsapp: Mapped[str] = mapped_column(String(64))
    customer_category: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))
    """Service name as chosen by the customer."""
    service_id: Mapped[Optional[str]] = mapped_column(String(ID_LENGTH), nullable=True)

    # Schedule
    booking_date: Mapped[datetime] = mapped_column(UTCTimestamp(), nullable=False)
    """Session start, stored as UTC."""
    slot_key: Mapped[str] = mapped_column(String(32), nullable=False)
    """Canonical UTC timestamp string of booking_date; the slot conflict key."""
    notes: Mapped[Optional[str]] = mapped_column(String(MAX_NOTES_LENGTH), nullable=True)
    location_link: Mapped[str] = mapped_column(String(1024), nullable=False, default="")

    # Finance breakdown (whole currency units)
    total_price: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    service_base_price: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    base_discount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    addons_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    coupon_discount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    coupon_code: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    photographer_id: Mapped[Optional[str]] = mapped_column(String(ID_LENGTH), nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCTimestamp(), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(UTCTimestamp(), nullable=True)

    payments: Mapped[List["Payment"]] = relationship(
        back_populates="booking", cascade="all, delete-orphan", order_by="Payment.position"
    )
    addons: Mapped[List["BookingAddon"]] = relationship(
        back_populates="booking", cascade="all, delete-orphan", order_by="BookingAddon.id"
    )
    reschedule_history: Mapped[List["RescheduleHistory"]] = relationship(
        back_populates="booking", cascade="all, delete-orphan", order_by="RescheduleHistory.id"
    )
    coupon_usages = relationship("CouponUsage", cascade="all, delete-orphan")

    @property
    def paid_total(self) -> int:
        """Sum of all recorded payment amounts."""
        return sum(payment.amount for payment in self.payments)

    @property
    def balance(self) -> int:
        """Outstanding amount. Negative when the customer overpaid."""
        return self.total_price - self.paid_total

    @property
    def display_balance(self) -> int:
        """Balance for reporting, never below zero."""
        return max(0, self.balance)

    __table_args__ = (
        Index('idx_bookings_status', 'status'),
        Index('idx_bookings_booking_date', 'booking_date'),
        Index(
            'uq_bookings_active_slot',
            'slot_key',
            unique=True,
            postgresql_where=text("status <> 'Canceled'"),
            sqlite_where=text("status <> 'Canceled'"),
        ),
    )


class Payment(Base):
    """A payment recorded against a booking, optionally with a proof image."""

    __tablename__ = "booking_payments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    booking_id: Mapped[str] = mapped_column(ForeignKey("bookings.id", ondelete="CASCADE"))

    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    """Order of the payment within the booking (0 = down payment)."""

    payment_date: Mapped[str] = mapped_column(String(40))
    """Date as entered by the customer or admin."""

    amount: Mapped[int] = mapped_column(Integer, nullable=False)

    note: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH), nullable=False, default="")

    proof_filename: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    """Storage-relative path of the proof file."""

    proof_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

    storage_backend: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    """'local' or 's3'."""

    created_at: Mapped[datetime] = mapped_column(UTCTimestamp(), nullable=True)

    booking: Mapped["Booking"] = relationship(back_populates="payments")

    __table_args__ = (
        Index('idx_booking_payments_booking', 'booking_id'),
    )


class BookingAddon(Base):
    """
    Add-on snapshot frozen at booking (or adjustment) time.

    `price_at_booking` is immune to later catalog price changes.
    """

    __tablename__ = "booking_addons"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    booking_id: Mapped[str] = mapped_column(ForeignKey("bookings.id", ondelete="CASCADE"))

    addon_id: Mapped[str] = mapped_column(String(ID_LENGTH))

    addon_name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))

    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    price_at_booking: Mapped[int] = mapped_column(Integer, nullable=False)

    adjustment_reason: Mapped[Optional[str]] = mapped_column(String(MAX_STRING_LENGTH), nullable=True)
    """Set when the snapshot was added by an admin price adjustment."""

    created_at: Mapped[datetime] = mapped_column(UTCTimestamp(), nullable=True)

    booking: Mapped["Booking"] = relationship(back_populates="addons")

    __table_args__ = (
        Index('idx_booking_addons_booking', 'booking_id'),
    )


class RescheduleHistory(Base):
    """One reschedule of a booking. Rows are only ever appended."""

    __tablename__ = "booking_reschedule_history"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    booking_id: Mapped[str] = mapped_column(ForeignKey("bookings.id", ondelete="CASCADE"))

    old_date: Mapped[datetime] = mapped_column(UTCTimestamp(), nullable=False)

    new_date: Mapped[datetime] = mapped_column(UTCTimestamp(), nullable=False)

    reason: Mapped[str] = mapped_column(String(MAX_NOTES_LENGTH), nullable=False, default="")

    rescheduled_at: Mapped[datetime] = mapped_column(UTCTimestamp(), nullable=False)

    booking: Mapped["Booking"] = relationship(back_populates="reschedule_history")

    __table_args__ = (
        Index('idx_reschedule_history_booking', 'booking_id'),
    )
