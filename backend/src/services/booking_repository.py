"""
Booking repository: the transactional boundary for booking aggregates.

A booking and its payments/add-on snapshots are flushed and committed as
one unit. Slot exclusivity is guaranteed by the partial unique index on
`bookings.slot_key`; the availability pre-check here is only an early,
friendlier rejection and never the sole guard.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from core.constants import BOOKING_STATUS_CANCELED
from core.exceptions import BookingPersistenceError, SlotUnavailableError
from models import Booking
from utils.datetime_utils import parse_booking_datetime, slot_key

logger = logging.getLogger(__name__)


def _to_slot_key(booking_date: str | datetime) -> str:
    return slot_key(parse_booking_datetime(booking_date))


class BookingRepository:
    """Persistence operations for bookings."""

    @staticmethod
    def check_slot_availability(
        db: Session,
        booking_date: str | datetime,
        exclude_booking_id: Optional[str] = None
    ) -> bool:
        """
        Whether no non-canceled booking holds exactly this timestamp.

        Args:
            db: Database session
            booking_date: ISO string or datetime of the requested slot
            exclude_booking_id: Booking to ignore (used when rescheduling)

        Returns:
            True if the slot is free
        """
        key = _to_slot_key(booking_date)
        query = select(Booking.id).where(
            Booking.slot_key == key,
            Booking.status != BOOKING_STATUS_CANCELED,
        )
        if exclude_booking_id:
            query = query.where(Booking.id != exclude_booking_id)
        return db.execute(query.limit(1)).first() is None

    @staticmethod
    def create_booking(db: Session, booking: Booking) -> Booking:
        """
        Insert a booking with its payments and add-ons atomically.

        Raises:
            SlotUnavailableError: Another writer committed the same slot first
            BookingPersistenceError: Any other transaction failure
        """
        booking_id, key = booking.id, booking.slot_key
        try:
            db.add(booking)
            db.commit()
        except IntegrityError as e:
            db.rollback()
            BookingRepository._raise_for_integrity_error(db, booking_id, key, e)
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception(f"Failed to persist booking {booking_id}: {e}")
            raise BookingPersistenceError()
        db.refresh(booking)
        return booking

    @staticmethod
    def update_booking(db: Session, booking: Booking) -> Booking:
        """
        Commit pending changes to a loaded booking.

        Raises:
            SlotUnavailableError: The booking was moved onto a held slot
            BookingPersistenceError: Any other transaction failure
        """
        booking_id, key = booking.id, booking.slot_key
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            BookingRepository._raise_for_integrity_error(db, booking_id, key, e)
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception(f"Failed to update booking {booking_id}: {e}")
            raise BookingPersistenceError("Failed to update booking")
        db.refresh(booking)
        return booking

    @staticmethod
    def read_booking(db: Session, booking_id: str) -> Optional[Booking]:
        """Load one booking with all of its child rows."""
        query = (
            select(Booking)
            .where(Booking.id == booking_id)
            .options(
                selectinload(Booking.payments),
                selectinload(Booking.addons),
                selectinload(Booking.reschedule_history),
            )
        )
        return db.execute(query).scalar_one_or_none()

    @staticmethod
    def list_bookings(db: Session, status: Optional[str] = None) -> List[Booking]:
        """List bookings newest first, optionally filtered by status."""
        query = select(Booking).options(
            selectinload(Booking.payments),
            selectinload(Booking.addons),
            selectinload(Booking.reschedule_history),
        )
        if status:
            query = query.where(Booking.status == status)
        query = query.order_by(Booking.created_at.desc(), Booking.id)
        return list(db.execute(query).scalars().all())

    @staticmethod
    def delete_booking(db: Session, booking: Booking) -> None:
        """Delete a booking and every row it owns."""
        booking_id = booking.id
        try:
            db.delete(booking)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception(f"Failed to delete booking {booking_id}: {e}")
            raise BookingPersistenceError("Failed to delete booking")

    @staticmethod
    def _raise_for_integrity_error(db: Session, booking_id: str, key: str, error: IntegrityError) -> None:
        # The transaction is rolled back; whoever holds the slot now is committed
        if not BookingRepository.check_slot_availability(db, key, exclude_booking_id=booking_id):
            logger.warning(f"Slot conflict on commit for booking {booking_id} ({key})")
            raise SlotUnavailableError(key)
        logger.exception(f"Integrity error persisting booking {booking_id}: {error}")
        raise BookingPersistenceError()
