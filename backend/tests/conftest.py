"""
Test configuration and shared fixtures for the Studio Booking test suite.

Uses a file-backed SQLite database created once per session from the
Alembic migrations. Every test starts from empty tables; tables are
emptied after each test instead of rolling back, since the booking flow
commits from worker threads and concurrency tests need several sessions.
"""

import os
import shutil
import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from typing import Generator, List, Optional

# Environment must be in place before core.config is imported.
# This module is imported both as pytest's conftest and as tests.conftest; both share one directory.
_TEST_DIR = os.environ.get("STUDIO_BOOKING_TEST_DIR") or tempfile.mkdtemp(prefix="studio_booking_tests_")
os.environ["STUDIO_BOOKING_TEST_DIR"] = _TEST_DIR
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", f"sqlite:///{_TEST_DIR}/test.db")
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["ADMIN_EMAILS"] = "admin@studio.test"
os.environ["UPLOAD_DIR"] = os.path.join(_TEST_DIR, "uploads")
os.environ["API_BASE_URL"] = "http://testserver"
for _name in ("S3_BUCKET", "S3_ACCESS_KEY", "S3_SECRET_KEY", "S3_ENDPOINT_URL", "S3_CUSTOM_DOMAIN"):
    os.environ[_name] = ""

import pytest
from alembic import command
from alembic.config import Config
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from core.constants import BOOKING_STATUS_ACTIVE, DISCOUNT_TYPE_FIXED
from core.database import Base, SessionLocal, engine
from models import Addon, Booking, Coupon, Payment, Service, SystemSetting
from utils.datetime_utils import STUDIO_TZ, parse_booking_datetime, slot_key, studio_now

ALEMBIC_INI = Path(__file__).resolve().parent.parent / "alembic.ini"
ADMIN_EMAIL = "admin@studio.test"


def make_alembic_config(url: str) -> Config:
    """Alembic config pointed at the given database."""
    alembic_cfg = Config(str(ALEMBIC_INI))
    alembic_cfg.attributes["sqlalchemy.url"] = url
    alembic_cfg.attributes["configure_logger"] = False
    return alembic_cfg


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """
    Setup test database schema using Alembic migrations.

    Runs once at the start of the test session, so every test run also
    exercises the baseline migration.
    """
    Base.metadata.drop_all(bind=engine)
    command.upgrade(make_alembic_config(TEST_DATABASE_URL), "head")

    yield

    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    shutil.rmtree(_TEST_DIR, ignore_errors=True)


@pytest.fixture(autouse=True)
def clean_tables():
    """Empty every table after each test."""
    yield
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    """Provide a database session bound to the test database."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """HTTP client for the FastAPI app."""
    from main import app
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def fixed_now() -> datetime:
    """A fixed studio-local 'now' for rule checks."""
    return datetime(2025, 5, 25, 9, 0, tzinfo=STUDIO_TZ)


# Helper functions for creating catalog and booking rows
def create_service(
    db_session: Session,
    name: str = "Wedding Package",
    base_price: int = 1_000_000,
    discount_value: int = 0,
    is_active: bool = True
) -> Service:
    service = Service(
        name=name,
        base_price=base_price,
        discount_value=discount_value,
        is_active=is_active,
    )
    db_session.add(service)
    db_session.commit()
    return service


def create_addon(
    db_session: Session,
    name: str = "Extra Prints",
    price: int = 50_000,
    applicable_categories: Optional[List[str]] = None,
    is_active: bool = True
) -> Addon:
    addon = Addon(
        name=name,
        price=price,
        applicable_categories=applicable_categories,
        is_active=is_active,
    )
    db_session.add(addon)
    db_session.commit()
    return addon


def create_coupon(
    db_session: Session,
    code: str = "HEMAT100",
    discount_type: str = DISCOUNT_TYPE_FIXED,
    discount_value: int = 100_000,
    **kwargs
) -> Coupon:
    """Create a coupon; extra keyword arguments are set on the model."""
    coupon = Coupon(
        code=code.upper(),
        discount_type=discount_type,
        discount_value=discount_value,
        **kwargs
    )
    db_session.add(coupon)
    db_session.commit()
    return coupon


def create_booking(
    db_session: Session,
    service: Service,
    booking_date: str | datetime,
    status: str = BOOKING_STATUS_ACTIVE,
    total_price: Optional[int] = None,
    payments: Optional[List[int]] = None,
    customer_name: str = "Budi Santoso"
) -> Booking:
    """
    Insert a booking directly, bypassing the orchestrator.

    Args:
        payments: Payment amounts to attach, in order
    """
    when = parse_booking_datetime(booking_date)
    total = service.base_price - service.discount_value if total_price is None else total_price
    booking = Booking(
        status=status,
        customer_name=customer_name,
        customer_whatsapp="081234567890",
        customer_category=service.name,
        service_id=service.id,
        booking_date=when,
        slot_key=slot_key(when),
        total_price=total,
        service_base_price=service.base_price,
        base_discount=service.discount_value,
        addons_total=0,
        coupon_discount=0,
        payments=[
            Payment(position=i, payment_date="2025-05-20", amount=amount)
            for i, amount in enumerate(payments or [])
        ],
    )
    db_session.add(booking)
    db_session.commit()
    return booking


def set_setting(db_session: Session, key: str, value) -> None:
    """Store a raw settings value, bypassing validation."""
    row = db_session.get(SystemSetting, key)
    if row is None:
        db_session.add(SystemSetting(key=key, value=value))
    else:
        row.value = value
    db_session.commit()


def days_from_today(days: int, hour: int = 10, minute: int = 0) -> str:
    """ISO timestamp (studio offset) `days` calendar days from today in the studio timezone."""
    target = (studio_now() + timedelta(days=days)).replace(hour=hour, minute=minute, second=0, microsecond=0)
    return target.isoformat()


def booking_payload(
    service_id: str,
    date: str,
    payments: Optional[List[dict]] = None,
    addons: Optional[List[dict]] = None,
    coupon_code: Optional[str] = None,
    coupon_discount: Optional[int] = None,
    name: str = "Budi Santoso",
    category: Optional[str] = None
) -> dict:
    """Public booking request body."""
    finance: dict = {"payments": payments or []}
    if coupon_code is not None:
        finance["coupon_code"] = coupon_code
    if coupon_discount is not None:
        finance["coupon_discount"] = coupon_discount
    customer = {"name": name, "whatsapp": "081234567890", "serviceId": service_id}
    if category is not None:
        customer["category"] = category
    return {
        "customer": customer,
        "booking": {"date": date, "notes": "Outdoor session", "location_link": ""},
        "finance": finance,
        "addons": addons or [],
    }
