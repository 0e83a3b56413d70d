# pyright: reportMissingTypeStubs=false
"""
Public booking funnel API endpoints.

Unauthenticated routes used by the customer-facing booking form: catalog
listing, price estimates, coupon checks and booking creation.
"""

import json
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from sqlalchemy.orm import Session

from core.database import get_db
from models import StudioSettings
from services.booking_service import BookingService, CreateBookingRequest, UploadedProof
from services.catalog_service import AddonSelection, CatalogService
from services.coupon_service import CouponService, CouponValidation
from services.pricing_service import PricingBreakdown
from services.settings_service import SettingsService
from utils.file_storage import MAX_UPLOAD_SIZE_BYTES, validate_file
from api.responses import (
    AddonResponse,
    BookingCreateResponse,
    ServiceResponse,
    addon_to_response,
    booking_to_response,
    service_to_response,
)

logger = logging.getLogger(__name__)

router = APIRouter()


class PricingEstimateRequest(BaseModel):
    """Request model for a price estimate."""
    model_config = ConfigDict(populate_by_name=True)

    service_id: str = Field(alias="serviceId")
    addons: List[AddonSelection] = Field(default_factory=list)
    coupon_code: Optional[str] = None


class PricingEstimateResponse(BaseModel):
    breakdown: PricingBreakdown
    coupon: Optional[CouponValidation] = None


class CouponValidateRequest(BaseModel):
    code: str
    order_subtotal: int = Field(ge=0)


class ServiceListResponse(BaseModel):
    services: List[ServiceResponse]


class AddonListResponse(BaseModel):
    addons: List[AddonResponse]


class PublicSettingsResponse(BaseModel):
    """Studio settings the booking form needs."""
    site_name: str
    business_phone: Optional[str] = None
    business_address: Optional[str] = None
    min_booking_notice: int
    max_booking_ahead: int


@router.get("/services", summary="List bookable services", response_model=ServiceListResponse)
def list_services(db: Session = Depends(get_db)) -> ServiceListResponse:
    services = CatalogService.list_services(db)
    return ServiceListResponse(services=[service_to_response(s) for s in services])


@router.get("/addons", summary="List available add-ons", response_model=AddonListResponse)
def list_addons(category: Optional[str] = None, db: Session = Depends(get_db)) -> AddonListResponse:
    addons = CatalogService.list_addons(db, category=category)
    return AddonListResponse(addons=[addon_to_response(a) for a in addons])


@router.get("/settings", summary="Booking rules for the booking form", response_model=PublicSettingsResponse)
def get_public_settings(db: Session = Depends(get_db)) -> PublicSettingsResponse:
    settings: StudioSettings = SettingsService.get_studio_settings(db)
    return PublicSettingsResponse(**settings.model_dump(include=set(PublicSettingsResponse.model_fields)))


@router.post("/pricing/estimate", summary="Estimate the price of a booking", response_model=PricingEstimateResponse)
def estimate_price(request: PricingEstimateRequest, db: Session = Depends(get_db)) -> PricingEstimateResponse:
    breakdown, coupon = BookingService.estimate_price(
        db,
        request.service_id,
        request.addons,
        coupon_code=request.coupon_code,
    )
    return PricingEstimateResponse(breakdown=breakdown, coupon=coupon)


@router.post("/coupons/validate", summary="Validate a coupon code", response_model=CouponValidation)
def validate_coupon(request: CouponValidateRequest, db: Session = Depends(get_db)) -> CouponValidation:
    return CouponService.validate_coupon(db, request.code, request.order_subtotal)


@router.post(
    "/bookings",
    summary="Create a booking",
    status_code=status.HTTP_201_CREATED,
    response_model=BookingCreateResponse,
)
async def create_booking(
    payload: str = Form(..., description="Booking request as JSON"),
    payment_proof: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db)
) -> BookingCreateResponse:
    """
    Create a booking from the multipart booking form.

    The payment proof, when present, belongs to the first payment.
    """
    try:
        request = CreateBookingRequest.model_validate(json.loads(payload))
    except json.JSONDecodeError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Payload is not valid JSON")
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=jsonable_encoder(e.errors(include_url=False, include_context=False)),
        )

    proof: Optional[UploadedProof] = None
    if payment_proof is not None and payment_proof.filename:
        # One byte past the limit is enough to know the file is too large
        content = await payment_proof.read(MAX_UPLOAD_SIZE_BYTES + 1)
        content_type = payment_proof.content_type or ""
        validate_file(len(content), content_type, payment_proof.filename)
        proof = UploadedProof(content=content, filename=payment_proof.filename, content_type=content_type)

    result = await BookingService.create_booking(db, request, proof)

    response = booking_to_response(result.booking)
    return BookingCreateResponse(
        **response.model_dump(),
        whatsapp_link=result.whatsapp_link,
        whatsapp_message=result.whatsapp_message,
    )
