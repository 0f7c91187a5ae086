"""Booking, service and calendar data models."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from booking_engine.utils import ensure_utc


class BookingStatus(str, Enum):
    REQUESTED = "requested"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class CancelledBy(str, Enum):
    USER = "user"
    STORE = "store"


# Bookings in these statuses no longer hold their time window.
RELEASED_STATUSES = frozenset({BookingStatus.REJECTED, BookingStatus.CANCELLED})


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    return ensure_utc(value) if value is not None else None


class Service(BaseModel):
    """A store's bookable offering with its scheduling rules."""

    id: str
    store_id: str
    name: str
    description: str = ""
    duration_minutes: Optional[int] = Field(default=None, gt=0)
    buffer_before_minutes: Optional[int] = Field(default=None, ge=0)
    buffer_after_minutes: Optional[int] = Field(default=None, ge=0)
    capacity: int = Field(default=1, ge=1)
    price: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Booking(BaseModel):
    """
    A single reservation of a service's time window ``[start_at, end_at)``.

    ``user_name``, ``user_contact``, ``service_name`` and
    ``service_description`` are snapshots taken at creation. They are
    never refreshed from the live user or service records, so historical
    bookings keep showing what the customer actually booked.
    """

    id: str
    store_id: str
    service_id: str
    user_id: str

    user_name: str
    user_contact: str
    service_name: str
    service_description: str = ""

    start_at: datetime
    end_at: datetime
    note: Optional[str] = None

    status: BookingStatus = BookingStatus.REQUESTED
    status_reason: Optional[str] = None
    cancelled_by: Optional[CancelledBy] = None

    created_at: datetime
    updated_at: datetime
    confirmed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @field_validator(
        "start_at", "end_at", "created_at", "updated_at", "confirmed_at", "completed_at"
    )
    @classmethod
    def _normalize_timestamps(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)

    @model_validator(mode="after")
    def _check_interval(self) -> "Booking":
        if self.end_at <= self.start_at:
            raise ValueError("end_at must be after start_at")
        return self

    @property
    def holds_slot(self) -> bool:
        """True while the booking still occupies its time window."""
        return self.status not in RELEASED_STATUSES


class CreateBookingRequest(BaseModel):
    """Validated booking request from a customer."""

    model_config = ConfigDict(str_strip_whitespace=True)

    store_id: str
    service_id: str
    start_at: datetime
    end_at: datetime
    user_name: str = Field(min_length=1)
    user_contact: str = Field(min_length=1)
    service_description: Optional[str] = None
    note: Optional[str] = None

    @field_validator("start_at", "end_at")
    @classmethod
    def _normalize_window(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class UpdateBookingRequest(BaseModel):
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    note: Optional[str] = None

    @field_validator("start_at", "end_at")
    @classmethod
    def _normalize_window(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)


class CancelBookingRequest(BaseModel):
    reason: Optional[str] = None


class ConfirmBookingRequest(BaseModel):
    note: Optional[str] = None


class RejectBookingRequest(BaseModel):
    """Store rejection. A non-blank reason is mandatory."""

    model_config = ConfigDict(str_strip_whitespace=True)

    reason: str = Field(min_length=1)


class BookingFilter(BaseModel):
    """Optional narrowing for a user's booking list. Dates match ``start_at``."""

    model_config = ConfigDict(populate_by_name=True)

    status: Optional[list[BookingStatus]] = None
    store_id: Optional[str] = None
    from_: Optional[datetime] = Field(default=None, alias="from")
    to: Optional[datetime] = None

    @field_validator("from_", "to")
    @classmethod
    def _normalize_bounds(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)

    def matches(self, booking: Booking) -> bool:
        if self.status and booking.status not in self.status:
            return False
        if self.store_id and booking.store_id != self.store_id:
            return False
        if self.from_ is not None and booking.start_at < self.from_:
            return False
        if self.to is not None and booking.start_at > self.to:
            return False
        return True


class SlotBooking(BaseModel):
    """Booking summary attached to a busy slot.

    For bookings the viewer does not own, ``id`` is blank.
    """
    id: str
    user_id: str
    service_name: str


class CalendarSlot(BaseModel):
    """Fixed-width display bucket ``[start, end)``."""
    start: datetime
    end: datetime
    busy: bool
    booking: Optional[SlotBooking] = None


class CalendarRange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: datetime = Field(alias="from")
    to: datetime


class CalendarAvailability(BaseModel):
    """Calendar view of one service over a clamped date range."""
    store_id: str
    service_id: str
    range: CalendarRange
    slots: list[CalendarSlot] = Field(default_factory=list)
