"""Shared test fixtures and helpers."""

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from booking_engine.config import BookingConfig
from booking_engine.engine.conflicts import ConflictDetector
from booking_engine.engine.service import BookingEngine, build_engine
from booking_engine.schemas.booking_schema import Booking, BookingStatus, Service
from booking_engine.store.bookings import InMemoryBookingStore
from booking_engine.store.catalog import InMemoryCatalogStore

STORE_ID = "store-luna-living"
DISABLED_STORE_ID = "store-urban-threads"
CONSULTATION = "service-luna-consultation"
WORKSHOP = "service-luna-workshop"
CUSTOM_ORDER = "service-luna-custom-order"

NOW = datetime(2025, 11, 1, 9, 0, tzinfo=timezone.utc)


def at(hour: int, minute: int = 0, day: int = 10) -> datetime:
    """A UTC instant in November 2025 (default: the 10th)."""
    return datetime(2025, 11, day, hour, minute, tzinfo=timezone.utc)


def make_booking(
    booking_id: str = "booking-seed",
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    user_id: str = "user-123",
    service_id: str = CONSULTATION,
    store_id: str = STORE_ID,
    status: BookingStatus = BookingStatus.CONFIRMED,
    service_name: str = "Interior Design Consultation",
) -> Booking:
    """Helper to create a stored-shape Booking with sensible defaults."""
    start = start or at(14)
    end = end or start + timedelta(hours=1)
    return Booking(
        id=booking_id,
        store_id=store_id,
        service_id=service_id,
        user_id=user_id,
        user_name="John Doe",
        user_contact="+15550101",
        service_name=service_name,
        service_description="One-on-one consultation with our interior design expert",
        start_at=start,
        end_at=end,
        status=status,
        created_at=NOW - timedelta(days=1),
        updated_at=NOW - timedelta(days=1),
    )


def make_request(
    start: datetime,
    end: datetime,
    service_id: str = CONSULTATION,
    store_id: str = STORE_ID,
    **overrides,
) -> dict:
    """Helper to build a create-booking payload."""
    payload = {
        "store_id": store_id,
        "service_id": service_id,
        "start_at": start,
        "end_at": end,
        "user_name": "John Doe",
        "user_contact": "+1 (555) 0101",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def config():
    return BookingConfig(
        max_advance_days=90,
        min_booking_minutes=15,
        slot_interval_minutes=30,
        default_buffer_minutes=15,
    )


@pytest.fixture
def catalog():
    return InMemoryCatalogStore()


@pytest.fixture
def booking_store():
    return InMemoryBookingStore()


@pytest.fixture
def consultation(catalog) -> Service:
    return catalog.get_service(CONSULTATION)


@pytest.fixture
def detector(booking_store, config):
    return ConflictDetector(booking_store, config.default_buffer_minutes)


@pytest.fixture
def engine(config, catalog, booking_store) -> BookingEngine:
    return build_engine(config, catalog=catalog, booking_store=booking_store, clock=lambda: NOW)
