"""
Add-on model for optional extras selectable during booking.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import String, Integer, Boolean, JSON
from sqlalchemy.orm import Mapped, mapped_column

from core.database import Base, UTCTimestamp
from core.constants import MAX_STRING_LENGTH, ID_LENGTH


class Addon(Base):
    """
    Catalog add-on (extra prints, extra hour, downgrade, ...).

    A negative price is a deduction ("downgrade" add-on) and is legitimate.
    """

    __tablename__ = "addons"

    id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True, default=lambda: str(uuid.uuid4()))

    name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))

    price: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    applicable_categories: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    """
    Service names this add-on is restricted to.

    NULL or an empty list means the add-on applies to every service.
    """

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(UTCTimestamp(), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(UTCTimestamp(), nullable=True)

    def applies_to(self, category: Optional[str]) -> bool:
        """Whether this add-on may be attached to a booking of the given category."""
        if not self.applicable_categories:
            return True
        return category is not None and category in self.applicable_categories
