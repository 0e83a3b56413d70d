"""Application constants and configuration values."""

from core.config import FRONTEND_URL

# Database field lengths
MAX_STRING_LENGTH = 255
MAX_NOTES_LENGTH = 2000
ID_LENGTH = 36  # UUID string

# Database connection settings
DB_POOL_RECYCLE_SECONDS = 300  # 5 minutes

# CORS origins for development and production
_CORS_ORIGINS_RAW = [
    "http://localhost:3000",      # Booking funnel / admin dev server
    FRONTEND_URL,
]

# Filter out None values and empty strings to avoid CORS errors
CORS_ORIGINS = [origin for origin in _CORS_ORIGINS_RAW if origin and origin.strip()]

# Booking statuses
BOOKING_STATUS_ACTIVE = "Active"
BOOKING_STATUS_RESCHEDULED = "Rescheduled"
BOOKING_STATUS_CANCELED = "Canceled"
BOOKING_STATUS_COMPLETED = "Completed"
BOOKING_STATUSES = [
    BOOKING_STATUS_ACTIVE,
    BOOKING_STATUS_RESCHEDULED,
    BOOKING_STATUS_CANCELED,
    BOOKING_STATUS_COMPLETED,
]

# Booking window defaults (days)
DEFAULT_MIN_BOOKING_NOTICE_DAYS = 1  # No same-day booking unless configured to 0
DEFAULT_MAX_BOOKING_AHEAD_DAYS = 90
MAX_BOOKING_AHEAD_LIMIT_DAYS = 365

# Payment proof uploads
PAYMENT_PROOF_FOLDER = "payment_proofs"
ALLOWED_PROOF_MIME_TYPES = ["image/jpeg", "image/png", "image/gif", "image/webp"]
ALLOWED_PROOF_EXTENSIONS = [".jpg", ".jpeg", ".png", ".gif", ".webp"]
STORAGE_BACKEND_LOCAL = "local"
STORAGE_BACKEND_S3 = "s3"

# Coupons
DISCOUNT_TYPE_PERCENTAGE = "percentage"
DISCOUNT_TYPE_FIXED = "fixed"

# WhatsApp
WHATSAPP_LINK_BASE = "https://wa.me"
WHATSAPP_COUNTRY_CODE = "62"  # Indonesia
DEFAULT_WHATSAPP_TEMPLATE = (
    "Halo {{customer_name}}!\n\n"
    "Booking Anda untuk {{service}} pada {{date}} pukul {{time}} telah kami terima.\n\n"
    "Total: Rp {{total_price}}\n"
    "ID Booking: {{booking_id}}"
)
