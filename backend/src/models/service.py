"""
Service model representing a bookable photography package.

Services are maintained by the admin catalog and are read-only to the
booking flow. Prices are whole currency units (Rupiah).
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Integer, Boolean
from sqlalchemy.orm import Mapped, mapped_column

from core.database import Base, UTCTimestamp
from core.constants import MAX_STRING_LENGTH, ID_LENGTH


class Service(Base):
    """
    Photography package offered by the studio.

    `discount_value` is a flat discount subtracted from `base_price`. It is
    expected to be at most `base_price` but this is not enforced; the pricing
    calculator clamps the final total at zero.
    """

    __tablename__ = "services"

    id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True, default=lambda: str(uuid.uuid4()))

    name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))
    """Display name, also used as the customer's booking category."""

    base_price: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    discount_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    badge_text: Mapped[Optional[str]] = mapped_column(String(MAX_STRING_LENGTH), nullable=True)
    """Optional marketing badge ("Best Seller")."""

    created_at: Mapped[datetime] = mapped_column(UTCTimestamp(), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(UTCTimestamp(), nullable=True)
