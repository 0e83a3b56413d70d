"""
Services package for booking business logic.

This package contains service classes that encapsulate the booking core
shared by the public and admin API endpoints.
"""

from .booking_repository import BookingRepository
from .booking_rules_service import BookingRulesService
from .catalog_service import CatalogService
from .coupon_service import CouponService
from .notification_service import NotificationService
from .settings_service import SettingsService
from .booking_service import BookingService
from .booking_admin_service import BookingAdminService

__all__ = [
    "BookingRepository",
    "BookingRulesService",
    "CatalogService",
    "CouponService",
    "NotificationService",
    "SettingsService",
    "BookingService",
    "BookingAdminService",
]
