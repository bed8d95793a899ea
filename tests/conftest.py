"""Pytest configuration and fixtures."""

import datetime as dt
from decimal import Decimal
from typing import Any, Dict, List, Optional

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from booking_core.config import BookingDefaultsSettings
from booking_core.database.models import Appointment, Base, Salon, Service
from booking_core.scheduling import PolicyResolver, SlotLockRegistry

# Test database URL (in-memory SQLite for unit tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Monday 2026-03-02, 08:00 UTC
NOW = dt.datetime(2026, 3, 2, 8, 0, tzinfo=dt.timezone.utc)
TODAY = NOW.date()
TOMORROW = TODAY + dt.timedelta(days=1)

OWNER_ID = "owner-1"
CUSTOMER_ID = "customer-1"


class RecordingSink:
    """Notification sink that keeps every delivery in memory."""

    def __init__(self, fail: bool = False) -> None:
        self.sent: List[Dict[str, Any]] = []
        self.fail = fail

    async def notify(self, user_id, type, message, appointment_id=None, salon_id=None):
        if self.fail:
            raise RuntimeError("notification backend unavailable")
        self.sent.append(
            {
                "user_id": user_id,
                "type": type,
                "message": message,
                "appointment_id": appointment_id,
                "salon_id": salon_id,
            }
        )


@pytest.fixture
def defaults():
    """System booking defaults, independent of the environment."""
    return BookingDefaultsSettings(
        min_advance_booking_hours=2,
        max_advance_booking_days=30,
        slot_interval=30,
        allow_same_day_booking=True,
        cancellation_hours=24,
        default_opening="09:00",
        default_closing="18:00",
        timezone="UTC",
    )


@pytest.fixture
def resolver(defaults):
    return PolicyResolver(defaults)


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def locks():
    return SlotLockRegistry()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
async def engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def session(session_factory):
    """Create test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def make_salon(session):
    async def _make(
        owner_id: str = OWNER_ID,
        booking_settings: Optional[Dict[str, Any]] = None,
        operating_hours: Optional[Dict[str, Any]] = None,
        timezone: Optional[str] = None,
        staff_ids: Optional[List[str]] = None,
    ) -> Salon:
        salon = Salon(
            name="Studio Nine",
            location="12 High Street",
            owner_id=owner_id,
            booking_settings=booking_settings,
            operating_hours=operating_hours,
            timezone=timezone,
            staff_ids=staff_ids,
        )
        session.add(salon)
        await session.commit()
        return salon

    return _make


@pytest.fixture
def make_service(session):
    async def _make(salon: Salon, duration_minutes: int = 30, price: str = "40.00", discount: str = "0") -> Service:
        service = Service(
            salon_id=salon.id,
            name=f"Cut {duration_minutes}",
            price=Decimal(price),
            discount=Decimal(discount),
            duration_minutes=duration_minutes,
        )
        session.add(service)
        await session.commit()
        return service

    return _make


@pytest.fixture
def make_appointment(session):
    """Insert an appointment row directly, bypassing validation."""

    async def _make(
        salon: Salon,
        service: Service,
        day: dt.date = TOMORROW,
        time: str = "10:00",
        covers: Optional[List[str]] = None,
        status: str = "pending",
        customer_id: str = CUSTOMER_ID,
        staff_id: Optional[str] = None,
    ) -> Appointment:
        appointment = Appointment(
            salon_id=salon.id,
            service_id=service.id,
            customer_id=customer_id,
            staff_id=staff_id,
            date=day,
            time=time,
            covers=covers if covers is not None else [time],
            duration_minutes=service.duration_minutes,
            status=status,
            amount=service.price,
            discount=service.discount,
        )
        session.add(appointment)
        await session.commit()
        return appointment

    return _make
