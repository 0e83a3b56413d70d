# Package initialization
# Import all models to ensure relationships are properly established
from .service import Service
from .addon import Addon
from .coupon import Coupon, CouponUsage
from .booking import Booking, Payment, BookingAddon, RescheduleHistory
from .system_setting import SystemSetting, SettingsAuditLog, StudioSettings

__all__ = [
    "Service",
    "Addon",
    "Coupon",
    "CouponUsage",
    "Booking",
    "Payment",
    "BookingAddon",
    "RescheduleHistory",
    "SystemSetting",
    "SettingsAuditLog",
    "StudioSettings",
]
