"""
Domain exceptions for the booking core.

Every fatal booking failure carries a machine-readable code, a human
message and an HTTP status so the API layer can report which
precondition failed without inspecting message text.
"""

import enum
from typing import Any, Dict, Optional


class ErrorCode(str, enum.Enum):
    INVALID_SERVICE = "INVALID_SERVICE"
    SERVICE_INACTIVE = "SERVICE_INACTIVE"
    INVALID_ADDON = "INVALID_ADDON"
    INVALID_COUPON = "INVALID_COUPON"
    MIN_BOOKING_NOTICE_VIOLATED = "MIN_BOOKING_NOTICE_VIOLATED"
    MAX_BOOKING_AHEAD_VIOLATED = "MAX_BOOKING_AHEAD_VIOLATED"
    SLOT_UNAVAILABLE = "SLOT_UNAVAILABLE"
    FILE_UPLOAD_FAILED = "FILE_UPLOAD_FAILED"
    BOOKING_NOT_FOUND = "BOOKING_NOT_FOUND"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    PRICE_ADJUSTMENT_NOT_ALLOWED = "PRICE_ADJUSTMENT_NOT_ALLOWED"
    BOOKING_PERSISTENCE_FAILED = "BOOKING_PERSISTENCE_FAILED"


class BookingError(Exception):
    """Base class for booking failures surfaced to the caller."""

    status_code: int = 400

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        return {
            "detail": self.message,
            "code": self.code.value,
            "details": self.details,
        }


class BookingRuleViolation(BookingError):
    """Business rule violation detected before any write."""
    status_code = 400


class SlotUnavailableError(BookingError):
    """Requested date/time is already held by a non-canceled booking."""
    status_code = 409

    def __init__(self, slot_key: str):
        super().__init__(
            ErrorCode.SLOT_UNAVAILABLE,
            "This time slot is already booked",
            {"slot": slot_key},
        )


class FileUploadError(BookingError):
    """Payment proof could not be validated or stored."""
    status_code = 400

    def __init__(self, message: str = "Failed to save uploaded file", details: Optional[Dict[str, Any]] = None):
        super().__init__(ErrorCode.FILE_UPLOAD_FAILED, message, details)


class BookingNotFoundError(BookingError):
    status_code = 404

    def __init__(self, booking_id: str):
        super().__init__(
            ErrorCode.BOOKING_NOT_FOUND,
            "Booking not found",
            {"booking_id": booking_id},
        )


class InvalidStatusTransitionError(BookingError):
    status_code = 409

    def __init__(self, current: str, requested: str):
        super().__init__(
            ErrorCode.INVALID_STATUS_TRANSITION,
            f"Cannot change booking status from {current} to {requested}",
            {"current_status": current, "requested_status": requested},
        )


class BookingPersistenceError(BookingError):
    """Transaction or constraint failure while writing a booking."""
    status_code = 500

    def __init__(self, message: str = "Failed to create booking"):
        super().__init__(ErrorCode.BOOKING_PERSISTENCE_FAILED, message)
