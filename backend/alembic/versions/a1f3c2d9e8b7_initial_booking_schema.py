"""initial_booking_schema

Revision ID: a1f3c2d9e8b7
Revises:
Create Date: 2026-10-19 09:00:00.000000

Baseline schema: catalog (services, addons), coupons and their usage
ledger, the booking aggregate (bookings, booking_payments, booking_addons,
booking_reschedule_history) and studio settings with their audit log.

Tables are created from the model definitions so the baseline matches the
ORM exactly, including the partial unique index that keeps one
non-canceled booking per slot.
"""
from typing import Sequence, Union

from alembic import op

# Import all models to ensure they're registered with Base.metadata
from core.database import Base
import models  # noqa: F401


# revision identifiers, used by Alembic.
revision: str = 'a1f3c2d9e8b7'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all tables, indexes and constraints from the models."""
    Base.metadata.create_all(bind=op.get_bind())


def downgrade() -> None:
    """Drop every table created by the baseline."""
    Base.metadata.drop_all(bind=op.get_bind())
