"""
Booking orchestrator: creates a booking from a public booking request.

Steps run in a fixed order. Everything up to the repository commit can
reject the request without leaving a booking behind; everything after the
commit is advisory and only logged on failure:

1. resolve the service and add-ons from the catalog
2. price the booking, re-validating any coupon against the live record
3. check the booking window and slot
4. generate the booking id
5. store the payment proof, if one was uploaded
6. assemble the booking aggregate
7. commit it (point of no return)
8. run post-commit tasks: coupon redemption, WhatsApp confirmation
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from core.config import UPLOAD_TIMEOUT_SECONDS
from core.constants import BOOKING_STATUS_ACTIVE, MAX_STRING_LENGTH, MAX_NOTES_LENGTH
from core.exceptions import BookingRuleViolation, ErrorCode, FileUploadError
from models import Booking, BookingAddon, Payment, Service, StudioSettings
from services.booking_repository import BookingRepository
from services.booking_rules_service import BookingRulesService
from services.catalog_service import AddonSelection, CatalogService
from services.coupon_service import CouponService, CouponValidation
from services.notification_service import NotificationService
from services.pricing_service import AddonLine, PricingBreakdown, calculate_detailed_pricing
from services.settings_service import SettingsService
from utils.datetime_utils import parse_booking_datetime, slot_key
from utils.file_storage import StoredFile, save_uploaded_file

logger = logging.getLogger(__name__)


class CustomerInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=MAX_STRING_LENGTH)
    whatsapp: str = Field(min_length=1, max_length=64)
    category: Optional[str] = Field(default=None, max_length=MAX_STRING_LENGTH)
    service_id: str = Field(alias="serviceId", min_length=1)


class BookingDetailsInput(BaseModel):
    date: str
    notes: Optional[str] = Field(default=None, max_length=MAX_NOTES_LENGTH)
    location_link: str = ""

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: str) -> str:
        parse_booking_datetime(v)
        return v


class PaymentInput(BaseModel):
    date: str = Field(min_length=1, max_length=40)
    amount: int = Field(ge=0)
    note: str = Field(default="", max_length=MAX_STRING_LENGTH)


class FinanceInput(BaseModel):
    payments: List[PaymentInput] = Field(default_factory=list)
    coupon_code: Optional[str] = None
    coupon_discount: Optional[int] = None
    """Client-side estimate; only compared against the server value."""


class CreateBookingRequest(BaseModel):
    """Public booking request."""
    customer: CustomerInput
    booking: BookingDetailsInput
    finance: FinanceInput = Field(default_factory=FinanceInput)
    addons: List[AddonSelection] = Field(default_factory=list)
    photographer_id: Optional[str] = None


@dataclass
class UploadedProof:
    """Payment proof received with the request, already read into memory."""
    content: bytes
    filename: str
    content_type: str


@dataclass
class PreparedBooking:
    """Everything validated before any write."""
    service: Service
    category: str
    booking_date: datetime
    addons: List[BookingAddon]
    pricing: PricingBreakdown
    settings: StudioSettings
    coupon: Optional[CouponValidation] = None


@dataclass
class BookingResult:
    booking: Booking
    whatsapp_link: Optional[str] = None
    whatsapp_message: Optional[str] = None
    failed_tasks: List[str] = field(default_factory=list)


class BookingService:
    """Service class for public booking creation."""

    @staticmethod
    def price_booking(
        db: Session,
        service: Service,
        addons: List[BookingAddon],
        coupon_code: Optional[str],
        client_coupon_discount: Optional[int] = None,
        now: Optional[datetime] = None,
        request_id: str = "-"
    ) -> Tuple[PricingBreakdown, Optional[CouponValidation]]:
        """
        Compute the authoritative price breakdown.

        The coupon discount is always recomputed from the live coupon record.

        Raises:
            BookingRuleViolation: INVALID_COUPON when a code is given but does not validate
        """
        lines = [AddonLine(price=addon.price_at_booking, quantity=addon.quantity) for addon in addons]
        pricing = calculate_detailed_pricing(service, lines)

        coupon: Optional[CouponValidation] = None
        if coupon_code and coupon_code.strip():
            coupon = CouponService.validate_coupon(db, coupon_code, pricing.subtotal_before_coupon, now)
            if not coupon.valid:
                logger.warning(f"[{request_id}] Rejected coupon {coupon_code}: {coupon.error}")
                raise BookingRuleViolation(
                    ErrorCode.INVALID_COUPON,
                    coupon.error or "Invalid coupon",
                    {"coupon_code": coupon_code},
                )
            pricing = calculate_detailed_pricing(service, lines, coupon.discount_amount)

        if client_coupon_discount is not None and client_coupon_discount != pricing.coupon_discount:
            logger.warning(
                f"[{request_id}] Client coupon discount mismatch: "
                f"client={client_coupon_discount}, server={pricing.coupon_discount}"
            )

        return pricing, coupon

    @staticmethod
    def estimate_price(
        db: Session,
        service_id: str,
        selections: List[AddonSelection],
        coupon_code: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Tuple[PricingBreakdown, Optional[CouponValidation]]:
        """
        Price preview for the booking funnel.

        Uses the same calculation as booking creation. An invalid coupon is
        reported in the returned validation instead of raising.

        Raises:
            BookingRuleViolation: Unknown/inactive service or invalid add-on
        """
        service = BookingRulesService.validate_service(CatalogService.get_service(db, service_id), service_id)
        addons = CatalogService.resolve_addon_selections(db, selections, service.name)
        lines = [AddonLine(price=addon.price_at_booking, quantity=addon.quantity) for addon in addons]
        pricing = calculate_detailed_pricing(service, lines)

        coupon: Optional[CouponValidation] = None
        if coupon_code and coupon_code.strip():
            coupon = CouponService.validate_coupon(db, coupon_code, pricing.subtotal_before_coupon, now)
            if coupon.valid:
                pricing = calculate_detailed_pricing(service, lines, coupon.discount_amount)
        return pricing, coupon

    @staticmethod
    def _prepare(
        db: Session,
        request: CreateBookingRequest,
        now: Optional[datetime],
        request_id: str
    ) -> PreparedBooking:
        service = BookingRulesService.validate_service(
            CatalogService.get_service(db, request.customer.service_id),
            request.customer.service_id,
        )
        # Add-on applicability and the stored category come from the booked service
        category = service.name
        if request.customer.category and request.customer.category != category:
            logger.warning(
                f"[{request_id}] Client category {request.customer.category!r} ignored for service {category!r}"
            )
        addons = CatalogService.resolve_addon_selections(db, request.addons, category)

        pricing, coupon = BookingService.price_booking(
            db,
            service,
            addons,
            request.finance.coupon_code,
            request.finance.coupon_discount,
            now=now,
            request_id=request_id,
        )

        settings = SettingsService.get_studio_settings(db)
        booking_date = parse_booking_datetime(request.booking.date)
        BookingRulesService.validate_booking_window(booking_date, settings, now)
        BookingRulesService.ensure_slot_available(db, booking_date)

        return PreparedBooking(
            service=service,
            category=category,
            booking_date=booking_date,
            addons=addons,
            pricing=pricing,
            settings=settings,
            coupon=coupon,
        )

    @staticmethod
    async def _store_proof(proof: UploadedProof, booking_id: str, request_id: str) -> StoredFile:
        try:
            return await asyncio.wait_for(
                save_uploaded_file(
                    proof.content,
                    booking_id,
                    0,
                    proof.filename or "proof.jpg",
                    proof.content_type,
                ),
                timeout=UPLOAD_TIMEOUT_SECONDS,
            )
        except FileUploadError as e:
            logger.warning(f"[{request_id}] Payment proof rejected for booking {booking_id}: {e.message}")
            raise
        except asyncio.TimeoutError:
            logger.error(f"[{request_id}] Payment proof upload timed out after {UPLOAD_TIMEOUT_SECONDS}s")
            raise FileUploadError("File upload timed out", {"timeout_seconds": UPLOAD_TIMEOUT_SECONDS})
        except Exception as e:
            logger.exception(f"[{request_id}] Failed to store payment proof for booking {booking_id}: {e}")
            raise FileUploadError()

    @staticmethod
    def _assemble(
        booking_id: str,
        request: CreateBookingRequest,
        prepared: PreparedBooking,
        stored: Optional[StoredFile]
    ) -> Booking:
        payments: List[Payment] = []
        for index, payment in enumerate(request.finance.payments):
            row = Payment(
                position=index,
                payment_date=payment.date,
                amount=payment.amount,
                note=payment.note,
            )
            if index == 0 and stored is not None:
                row.proof_filename = stored.relative_path
                row.proof_url = stored.url
                row.storage_backend = stored.storage
            payments.append(row)

        pricing = prepared.pricing
        return Booking(
            id=booking_id,
            status=BOOKING_STATUS_ACTIVE,
            customer_name=request.customer.name,
            customer_whatsapp=request.customer.whatsapp,
            customer_category=prepared.category,
            service_id=prepared.service.id,
            booking_date=prepared.booking_date,
            slot_key=slot_key(prepared.booking_date),
            notes=request.booking.notes,
            location_link=request.booking.location_link or "",
            total_price=pricing.total,
            service_base_price=pricing.service_base_price,
            base_discount=pricing.base_discount,
            addons_total=pricing.addons_total,
            coupon_discount=pricing.coupon_discount,
            coupon_code=prepared.coupon.code if prepared.coupon else None,
            photographer_id=request.photographer_id,
            payments=payments,
            addons=prepared.addons,
        )

    @staticmethod
    async def create_booking(
        db: Session,
        request: CreateBookingRequest,
        uploaded_proof: Optional[UploadedProof] = None,
        now: Optional[datetime] = None
    ) -> BookingResult:
        """
        Create a booking.

        Args:
            db: Database session (used from worker threads, one call at a time)
            request: Validated booking request
            uploaded_proof: Payment proof for the first payment, if any
            now: Current time for rule checks (defaults to studio now)

        Returns:
            BookingResult with the committed booking and the WhatsApp
            confirmation when it could be rendered

        Raises:
            BookingRuleViolation: Service, add-on, coupon or window rule failed
            SlotUnavailableError: Slot is held by another booking
            FileUploadError: Payment proof was rejected or could not be stored
            BookingPersistenceError: Commit failed
            ValueError: A proof was sent without any payment to attach it to
        """
        request_id = uuid.uuid4().hex[:8]
        logger.info(
            f"[{request_id}] Creating booking: service={request.customer.service_id}, "
            f"date={request.booking.date}, addons={len(request.addons)}"
        )

        if uploaded_proof is not None and not request.finance.payments:
            raise ValueError("A payment proof requires at least one payment")

        prepared = await run_in_threadpool(BookingService._prepare, db, request, now, request_id)

        booking_id = str(uuid.uuid4())

        stored: Optional[StoredFile] = None
        if uploaded_proof is not None:
            stored = await BookingService._store_proof(uploaded_proof, booking_id, request_id)

        booking = BookingService._assemble(booking_id, request, prepared, stored)
        booking = await run_in_threadpool(BookingRepository.create_booking, db, booking)
        logger.info(
            f"[{request_id}] Booking created successfully: id={booking.id}, "
            f"customer={booking.customer_name}, total={booking.total_price}"
        )

        result = BookingResult(booking=booking)
        await BookingService._run_post_commit_tasks(db, result, prepared, request_id)
        return result

    @staticmethod
    async def _run_post_commit_tasks(
        db: Session,
        result: BookingResult,
        prepared: PreparedBooking,
        request_id: str
    ) -> None:
        booking = result.booking

        def redeem_coupon() -> None:
            coupon = prepared.coupon
            if coupon is None or not coupon.code or booking.coupon_discount <= 0:
                return
            CouponService.redeem_coupon(
                db,
                code=coupon.code,
                booking_id=booking.id,
                customer_name=booking.customer_name,
                customer_whatsapp=booking.customer_whatsapp,
                discount_amount=booking.coupon_discount,
                order_total=prepared.pricing.subtotal_before_coupon,
            )

        def render_confirmation() -> None:
            confirmation = NotificationService.build_booking_confirmation(booking, prepared.settings)
            if confirmation is not None:
                result.whatsapp_message = confirmation["whatsapp_message"]
                result.whatsapp_link = confirmation["whatsapp_link"]

        tasks: List[Tuple[str, Callable[[], None]]] = [
            ("coupon_usage", redeem_coupon),
            ("whatsapp_confirmation", render_confirmation),
        ]

        # Each task is isolated; the booking is already committed
        for name, task in tasks:
            try:
                await run_in_threadpool(task)
            except Exception as e:
                result.failed_tasks.append(name)
                logger.exception(f"[{request_id}] Post-commit task {name} failed for booking {booking.id}: {e}")
