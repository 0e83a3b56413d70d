"""
Centralized pricing logic.

Shared by the estimate endpoint (client-facing preview) and the booking
orchestrator (authoritative validation) so both always agree on a price.
Functions here are pure: no database access, no I/O.
"""

import logging
from typing import Iterable, Optional, Protocol

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class PricedService(Protocol):
    base_price: int
    discount_value: int


class PricedLine(Protocol):
    price: int
    quantity: int


class AddonLine(BaseModel):
    """A priced add-on line: unit price times quantity."""
    price: int
    quantity: int


class PricingBreakdown(BaseModel):
    """Complete price breakdown for a booking."""
    service_base_price: int = 0
    base_discount: int = 0
    addons_total: int = 0
    coupon_discount: int = 0
    total: int = 0

    @property
    def subtotal_before_coupon(self) -> int:
        """Order value the coupon is applied to."""
        return max(0, self.service_base_price + self.addons_total - self.base_discount)


def calculate_addons_total(addons: Optional[Iterable[PricedLine]]) -> int:
    """
    Sum of price * quantity over the add-on lines.

    Negative prices are deductions and are summed as-is.
    """
    if not addons:
        return 0
    return sum(addon.price * addon.quantity for addon in addons)


def calculate_total(
    service_base_price: int,
    addons_total: int,
    base_discount: int,
    coupon_discount: int
) -> int:
    """
    Grand total = (service base + add-ons) - base discount - coupon discount,
    clamped at zero.
    """
    gross = service_base_price + addons_total - base_discount - coupon_discount
    if gross < 0:
        logger.warning(
            f"Discounts exceed gross price, clamping total to 0 "
            f"(base={service_base_price}, addons={addons_total}, "
            f"base_discount={base_discount}, coupon_discount={coupon_discount})"
        )
        return 0
    return gross


def calculate_detailed_pricing(
    service: Optional[PricedService],
    addons: Optional[Iterable[PricedLine]] = None,
    coupon_discount: int = 0
) -> PricingBreakdown:
    """
    Calculate the complete pricing breakdown.

    Args:
        service: Selected service, or None when nothing is selected yet
        addons: Add-on lines (anything with `price` and `quantity`)
        coupon_discount: Already validated coupon discount amount

    Returns:
        PricingBreakdown; all zeros when no service is given
    """
    if service is None:
        return PricingBreakdown()

    service_base_price = service.base_price
    base_discount = service.discount_value
    addons_total = calculate_addons_total(addons)

    return PricingBreakdown(
        service_base_price=service_base_price,
        base_discount=base_discount,
        addons_total=addons_total,
        coupon_discount=coupon_discount,
        total=calculate_total(service_base_price, addons_total, base_discount, coupon_discount),
    )
