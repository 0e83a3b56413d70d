"""
WhatsApp confirmation rendering.

Fills the studio's message template with booking fields and builds a
wa.me deep link the customer can open to send the confirmation.
"""

import logging
import re
from typing import Any, Dict, Optional
from urllib.parse import quote

from core.constants import WHATSAPP_LINK_BASE, WHATSAPP_COUNTRY_CODE
from models import Booking, StudioSettings
from utils.datetime_utils import STUDIO_TZ, as_utc

logger = logging.getLogger(__name__)

_PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([A-Za-z0-9_]+)\s*\}\}")


class NotificationService:
    """Service for rendering booking confirmation messages."""

    @staticmethod
    def render_message(template: str, variables: Dict[str, Any]) -> str:
        """
        Replace {{variable}} placeholders with values.

        Placeholders are matched by exact key. Unknown placeholders are left
        verbatim so a malformed template degrades instead of failing.

        Args:
            template: Message template
            variables: Placeholder values; None renders as an empty string

        Returns:
            Rendered message
        """
        def replace(match: re.Match[str]) -> str:
            key = match.group(1)
            if key not in variables:
                return match.group(0)
            value = variables[key]
            return "" if value is None else str(value)

        return _PLACEHOLDER_PATTERN.sub(replace, template)

    @staticmethod
    def normalize_phone_number(phone_number: str) -> str:
        """
        Normalize to international digits only (e.g. "0812-3456 789" -> "628123456789").

        Raises:
            ValueError: No digits in the input
        """
        digits = re.sub(r"\D", "", phone_number or "")
        if not digits:
            raise ValueError(f"Invalid phone number: {phone_number!r}")
        if digits.startswith("0"):
            digits = WHATSAPP_COUNTRY_CODE + digits[1:]
        return digits

    @staticmethod
    def generate_whatsapp_link(phone_number: str, message: str) -> str:
        """Build a wa.me link with the percent-encoded message."""
        number = NotificationService.normalize_phone_number(phone_number)
        return f"{WHATSAPP_LINK_BASE}/{number}?text={quote(message, safe='')}"

    @staticmethod
    def build_booking_context(booking: Booking) -> Dict[str, Any]:
        """
        Template variables for a booking confirmation.

        - {{customer_name}}: Customer name
        - {{service}}: Booked service / category
        - {{date}}: Session date (YYYY-MM-DD, studio time)
        - {{time}}: Session time (HH:MM, studio time)
        - {{total_price}}: Total, thousands separated with dots
        - {{booking_id}}: Booking id
        """
        local_start = as_utc(booking.booking_date).astimezone(STUDIO_TZ)
        return {
            "customer_name": booking.customer_name,
            "service": booking.customer_category,
            "date": local_start.strftime("%Y-%m-%d"),
            "time": local_start.strftime("%H:%M"),
            "total_price": f"{booking.total_price:,}".replace(",", "."),
            "booking_id": booking.id,
        }

    @staticmethod
    def build_booking_confirmation(booking: Booking, settings: StudioSettings) -> Optional[Dict[str, str]]:
        """
        Render the confirmation message and link for a booking.

        Returns:
            {"whatsapp_message", "whatsapp_link"}, or None when the studio has
            no WhatsApp number or template configured
        """
        if not settings.whatsapp_admin_number or not settings.whatsapp_message_template:
            logger.info(f"WhatsApp confirmation skipped for booking {booking.id}: not configured")
            return None

        message = NotificationService.render_message(
            settings.whatsapp_message_template,
            NotificationService.build_booking_context(booking),
        )
        link = NotificationService.generate_whatsapp_link(settings.whatsapp_admin_number, message)
        return {"whatsapp_message": message, "whatsapp_link": link}
