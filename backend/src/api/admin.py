# pyright: reportMissingTypeStubs=false
"""
Admin back office API endpoints.

Booking management (status, reschedule, payments, price adjustments,
deletion) and studio settings. Every route requires an admin token.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from core.database import get_db
from auth.dependencies import require_admin, UserContext
from models import StudioSettings
from services.booking_admin_service import BookingAdminService, PriceAdjustmentResult
from services.settings_service import SettingsService
from api.responses import AdminBookingListResponse, AdminBookingResponse, booking_to_admin_response

logger = logging.getLogger(__name__)

router = APIRouter()


class StatusUpdateRequest(BaseModel):
    """Request model for a booking status change."""
    status: str


class RescheduleRequest(BaseModel):
    """Request model for rescheduling a booking."""
    new_date: str
    reason: str = Field(default="", max_length=2000)


class PaymentCreateRequest(BaseModel):
    """Request model for recording a payment."""
    date: str = Field(min_length=1, max_length=40)
    amount: int = Field(gt=0)
    note: str = ""


class PriceAdjustmentRequest(BaseModel):
    """Request model for a price adjustment."""
    booking_id: str
    addon_id: str
    quantity: int = Field(default=1, gt=0)
    price: Optional[int] = None  # Overrides the catalog price; may be negative
    reason: Optional[str] = None


@router.get("/bookings", summary="List bookings", response_model=AdminBookingListResponse)
def list_bookings(
    status_filter: Optional[str] = Query(None, alias="status"),
    current_user: UserContext = Depends(require_admin),
    db: Session = Depends(get_db)
) -> AdminBookingListResponse:
    bookings = BookingAdminService.list_bookings(db, status_filter)
    return AdminBookingListResponse(bookings=[booking_to_admin_response(b) for b in bookings])


@router.get("/bookings/{booking_id}", summary="Get booking invoice", response_model=AdminBookingResponse)
def get_booking(
    booking_id: str,
    current_user: UserContext = Depends(require_admin),
    db: Session = Depends(get_db)
) -> AdminBookingResponse:
    return booking_to_admin_response(BookingAdminService.get_booking(db, booking_id))


@router.patch("/bookings/{booking_id}/status", summary="Change booking status", response_model=AdminBookingResponse)
def change_status(
    booking_id: str,
    request: StatusUpdateRequest,
    current_user: UserContext = Depends(require_admin),
    db: Session = Depends(get_db)
) -> AdminBookingResponse:
    booking = BookingAdminService.change_status(db, booking_id, request.status)
    logger.info(f"Booking {booking_id} status set to {booking.status} by {current_user.email}")
    return booking_to_admin_response(booking)


@router.post("/bookings/{booking_id}/reschedule", summary="Reschedule a booking", response_model=AdminBookingResponse)
def reschedule_booking(
    booking_id: str,
    request: RescheduleRequest,
    current_user: UserContext = Depends(require_admin),
    db: Session = Depends(get_db)
) -> AdminBookingResponse:
    booking = BookingAdminService.reschedule_booking(db, booking_id, request.new_date, request.reason)
    return booking_to_admin_response(booking)


@router.post(
    "/bookings/{booking_id}/payments",
    summary="Record a payment",
    status_code=status.HTTP_201_CREATED,
    response_model=AdminBookingResponse,
)
def add_payment(
    booking_id: str,
    request: PaymentCreateRequest,
    current_user: UserContext = Depends(require_admin),
    db: Session = Depends(get_db)
) -> AdminBookingResponse:
    booking = BookingAdminService.add_payment(db, booking_id, request.date, request.amount, request.note)
    return booking_to_admin_response(booking)


@router.post("/bookings/adjust-price", summary="Adjust a booking's price", response_model=PriceAdjustmentResult)
def adjust_price(
    request: PriceAdjustmentRequest,
    current_user: UserContext = Depends(require_admin),
    db: Session = Depends(get_db)
) -> PriceAdjustmentResult:
    result = BookingAdminService.adjust_price(
        db,
        booking_id=request.booking_id,
        addon_id=request.addon_id,
        quantity=request.quantity,
        custom_price=request.price,
        reason=request.reason,
    )
    logger.info(f"Price adjustment on booking {request.booking_id} by {current_user.email}: {result.adjustment:+d}")
    return result


@router.delete("/bookings/{booking_id}", summary="Delete a booking", status_code=status.HTTP_204_NO_CONTENT)
def delete_booking(
    booking_id: str,
    current_user: UserContext = Depends(require_admin),
    db: Session = Depends(get_db)
) -> Response:
    BookingAdminService.delete_booking(db, booking_id)
    logger.info(f"Booking {booking_id} deleted by {current_user.email}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/settings", summary="Get studio settings", response_model=StudioSettings)
def get_settings(
    current_user: UserContext = Depends(require_admin),
    db: Session = Depends(get_db)
) -> StudioSettings:
    return SettingsService.get_studio_settings(db)


@router.put("/settings", summary="Update studio settings", response_model=StudioSettings)
def update_settings(
    updates: Dict[str, Any],
    current_user: UserContext = Depends(require_admin),
    db: Session = Depends(get_db)
) -> StudioSettings:
    return SettingsService.update_studio_settings(db, updates, updated_by=current_user.email)
