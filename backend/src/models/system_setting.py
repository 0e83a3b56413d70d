"""
Studio-wide settings stored as key/value rows, plus the validated schema
they are materialized into.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, model_validator
from sqlalchemy import String, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column

from core.database import Base, UTCTimestamp
from core.constants import (
    MAX_STRING_LENGTH,
    DEFAULT_MIN_BOOKING_NOTICE_DAYS,
    DEFAULT_MAX_BOOKING_AHEAD_DAYS,
    MAX_BOOKING_AHEAD_LIMIT_DAYS,
    DEFAULT_WHATSAPP_TEMPLATE,
)


class StudioSettings(BaseModel):
    """Schema for all studio settings. Every field has a declared default."""
    site_name: str = Field(default="Studio", max_length=MAX_STRING_LENGTH)
    business_phone: Optional[str] = Field(default=None)
    business_address: Optional[str] = Field(default=None)
    min_booking_notice: int = Field(default=DEFAULT_MIN_BOOKING_NOTICE_DAYS, ge=0, description="Minimum whole days between today and the booking date. 0 allows same-day bookings.")
    max_booking_ahead: int = Field(default=DEFAULT_MAX_BOOKING_AHEAD_DAYS, ge=0, le=MAX_BOOKING_AHEAD_LIMIT_DAYS, description="Maximum whole days in advance a booking may be made.")
    whatsapp_admin_number: Optional[str] = Field(default=None, description="Studio WhatsApp number receiving booking confirmations.")
    whatsapp_message_template: str = Field(default=DEFAULT_WHATSAPP_TEMPLATE, description="Confirmation message with {{variable}} placeholders.")

    @model_validator(mode='after')
    def check_booking_window(self) -> "StudioSettings":
        if self.max_booking_ahead < self.min_booking_notice:
            raise ValueError("max_booking_ahead must be greater than or equal to min_booking_notice")
        return self


class SystemSetting(Base):
    """One studio setting. `value` holds the JSON-encoded field value."""

    __tablename__ = "system_settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)

    value: Mapped[Any] = mapped_column(JSON, nullable=True)

    updated_by: Mapped[Optional[str]] = mapped_column(String(MAX_STRING_LENGTH), nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCTimestamp(), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(UTCTimestamp(), nullable=True)


class SettingsAuditLog(Base):
    """Append-only record of a settings change."""

    __tablename__ = "settings_audit_log"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    key: Mapped[str] = mapped_column(String(100))

    old_value: Mapped[Any] = mapped_column(JSON, nullable=True)

    new_value: Mapped[Any] = mapped_column(JSON, nullable=True)

    updated_by: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))

    updated_at: Mapped[datetime] = mapped_column(UTCTimestamp(), nullable=False)

    __table_args__ = (
        Index('idx_settings_audit_log_key', 'key'),
    )
