"""
Shared response models for API endpoints.

This module contains Pydantic response models that are shared across
the public and admin routers, plus the helpers that build them from ORM
rows.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from models import Addon, Booking, Service
from services.booking_admin_service import FinanceSummary, build_finance_summary
from utils.datetime_utils import as_utc


class ServiceResponse(BaseModel):
    """Response model for a catalog service."""
    id: str
    name: str
    base_price: int
    discount_value: int
    is_active: bool
    badge_text: Optional[str] = None


class AddonResponse(BaseModel):
    """Response model for a catalog add-on."""
    id: str
    name: str
    price: int
    applicable_categories: Optional[List[str]] = None  # None = every service
    is_active: bool


class CustomerResponse(BaseModel):
    name: str
    whatsapp: str
    category: str
    serviceId: Optional[str] = None


class BookingDetailsResponse(BaseModel):
    date: datetime  # UTC
    notes: Optional[str] = None
    location_link: str = ""


class PaymentResponse(BaseModel):
    date: str
    amount: int
    note: str = ""
    proof_filename: Optional[str] = None
    proof_url: Optional[str] = None
    storage_backend: Optional[str] = None


class FinanceResponse(BaseModel):
    total_price: int
    payments: List[PaymentResponse]
    service_base_price: int
    base_discount: int
    addons_total: int
    coupon_discount: int
    coupon_code: Optional[str] = None


class BookingAddonResponse(BaseModel):
    addon_id: str
    addon_name: str
    quantity: int
    price_at_booking: int
    adjustment_reason: Optional[str] = None


class RescheduleHistoryResponse(BaseModel):
    old_date: datetime
    new_date: datetime
    reason: str
    rescheduled_at: datetime


class BookingResponse(BaseModel):
    """Persisted booking in its nested customer/booking/finance shape."""
    id: str
    created_at: Optional[datetime] = None
    status: str
    customer: CustomerResponse
    booking: BookingDetailsResponse
    finance: FinanceResponse
    addons: List[BookingAddonResponse]
    photographer_id: Optional[str] = None
    reschedule_history: List[RescheduleHistoryResponse] = []


class BookingCreateResponse(BookingResponse):
    """Response model for public booking creation."""
    whatsapp_link: Optional[str] = None
    whatsapp_message: Optional[str] = None


class AdminBookingResponse(BookingResponse):
    """Booking with its invoice summary."""
    summary: FinanceSummary


class AdminBookingListResponse(BaseModel):
    bookings: List[AdminBookingResponse]


def service_to_response(service: Service) -> ServiceResponse:
    return ServiceResponse(
        id=service.id,
        name=service.name,
        base_price=service.base_price,
        discount_value=service.discount_value,
        is_active=service.is_active,
        badge_text=service.badge_text,
    )


def addon_to_response(addon: Addon) -> AddonResponse:
    return AddonResponse(
        id=addon.id,
        name=addon.name,
        price=addon.price,
        applicable_categories=addon.applicable_categories,
        is_active=addon.is_active,
    )


def booking_to_response(booking: Booking) -> BookingResponse:
    """Build the nested booking shape from the ORM aggregate."""
    return BookingResponse(**_booking_fields(booking))


def booking_to_admin_response(booking: Booking) -> AdminBookingResponse:
    return AdminBookingResponse(**_booking_fields(booking), summary=build_finance_summary(booking))


def _booking_fields(booking: Booking) -> dict:
    return {
        "id": booking.id,
        "created_at": booking.created_at,
        "status": booking.status,
        "customer": CustomerResponse(
            name=booking.customer_name,
            whatsapp=booking.customer_whatsapp,
            category=booking.customer_category,
            serviceId=booking.service_id,
        ),
        "booking": BookingDetailsResponse(
            date=as_utc(booking.booking_date),
            notes=booking.notes,
            location_link=booking.location_link,
        ),
        "finance": FinanceResponse(
            total_price=booking.total_price,
            payments=[
                PaymentResponse(
                    date=payment.payment_date,
                    amount=payment.amount,
                    note=payment.note,
                    proof_filename=payment.proof_filename,
                    proof_url=payment.proof_url,
                    storage_backend=payment.storage_backend,
                )
                for payment in booking.payments
            ],
            service_base_price=booking.service_base_price,
            base_discount=booking.base_discount,
            addons_total=booking.addons_total,
            coupon_discount=booking.coupon_discount,
            coupon_code=booking.coupon_code,
        ),
        "addons": [
            BookingAddonResponse(
                addon_id=addon.addon_id,
                addon_name=addon.addon_name,
                quantity=addon.quantity,
                price_at_booking=addon.price_at_booking,
                adjustment_reason=addon.adjustment_reason,
            )
            for addon in booking.addons
        ],
        "photographer_id": booking.photographer_id,
        "reschedule_history": [
            RescheduleHistoryResponse(
                old_date=as_utc(entry.old_date),
                new_date=as_utc(entry.new_date),
                reason=entry.reason,
                rescheduled_at=entry.rescheduled_at,
            )
            for entry in booking.reschedule_history
        ],
    }
