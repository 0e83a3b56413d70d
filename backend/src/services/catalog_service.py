"""
Catalog service: read access to services and add-ons.

The booking flow never trusts prices sent by the client. Add-on
selections are resolved against the catalog here and turned into
snapshots carrying the catalog price at the time of booking.
"""

import logging
from typing import List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from core.exceptions import BookingRuleViolation, ErrorCode
from models import Addon, BookingAddon, Service

logger = logging.getLogger(__name__)


class AddonSelection(BaseModel):
    """An add-on picked by the customer."""
    model_config = ConfigDict(populate_by_name=True)

    addon_id: str = Field(alias="addonId")
    quantity: int = 1
    price_at_booking: Optional[int] = None
    """Accepted for compatibility with older clients; always ignored."""


class CatalogService:
    """Service class for catalog lookups."""

    @staticmethod
    def list_services(db: Session, active_only: bool = True) -> List[Service]:
        query = select(Service)
        if active_only:
            query = query.where(Service.is_active == True)  # noqa: E712
        return list(db.execute(query.order_by(Service.name)).scalars().all())

    @staticmethod
    def get_service(db: Session, service_id: Optional[str]) -> Optional[Service]:
        if not service_id:
            return None
        return db.get(Service, service_id)

    @staticmethod
    def list_addons(db: Session, category: Optional[str] = None, active_only: bool = True) -> List[Addon]:
        """
        List add-ons, optionally only those applicable to a service category.

        Filtering on `applicable_categories` happens in Python since the
        column is a JSON array.
        """
        query = select(Addon)
        if active_only:
            query = query.where(Addon.is_active == True)  # noqa: E712
        addons = db.execute(query.order_by(Addon.name)).scalars().all()
        if category is None:
            return list(addons)
        return [addon for addon in addons if addon.applies_to(category)]

    @staticmethod
    def resolve_addon_selections(
        db: Session,
        selections: Sequence[AddonSelection],
        category: Optional[str]
    ) -> List[BookingAddon]:
        """
        Turn customer selections into add-on snapshots priced from the catalog.

        Args:
            db: Database session
            selections: Selected add-ons with quantities
            category: Booked service name, used for applicability

        Returns:
            Unsaved BookingAddon rows in selection order

        Raises:
            BookingRuleViolation: INVALID_ADDON for unknown, inactive or
                inapplicable add-ons and non-positive quantities
        """
        snapshots: List[BookingAddon] = []
        for selection in selections:
            if selection.quantity <= 0:
                raise BookingRuleViolation(
                    ErrorCode.INVALID_ADDON,
                    "Add-on quantity must be positive",
                    {"addon_id": selection.addon_id, "quantity": selection.quantity},
                )

            addon = db.get(Addon, selection.addon_id)
            if addon is None or not addon.is_active:
                logger.warning(f"Invalid add-on selected: {selection.addon_id}")
                raise BookingRuleViolation(
                    ErrorCode.INVALID_ADDON,
                    "Selected add-on is not available",
                    {"addon_id": selection.addon_id},
                )
            if not addon.applies_to(category):
                logger.warning(f"Add-on {addon.id} does not apply to category {category}")
                raise BookingRuleViolation(
                    ErrorCode.INVALID_ADDON,
                    f"Add-on {addon.name} is not available for {category}",
                    {"addon_id": addon.id, "category": category},
                )

            if selection.price_at_booking is not None and selection.price_at_booking != addon.price:
                logger.info(
                    f"Ignoring client add-on price for {addon.id}: "
                    f"client={selection.price_at_booking}, catalog={addon.price}"
                )

            snapshots.append(BookingAddon(
                addon_id=addon.id,
                addon_name=addon.name,
                quantity=selection.quantity,
                price_at_booking=addon.price,
            ))
        return snapshots
