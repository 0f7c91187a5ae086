"""
Booking repository.

The engine reads and mutates bookings only through this interface. Every
write operation takes ``lock(service_id)`` for the service it touches and
performs its conflict and status checks plus the write while holding it,
so two requests racing for the same window cannot both be admitted.

In production this would be a database table with a per-service advisory
lock or a serializable transaction.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import ContextManager, Iterator, Optional, Protocol

from booking_engine.schemas.booking_schema import Booking
from booking_engine.utils import intervals_overlap

logger = logging.getLogger(__name__)


class BookingStore(Protocol):
    """Repository interface consumed by the engine."""

    def lock(self, service_id: str) -> ContextManager[None]: ...

    def get(self, booking_id: str) -> Optional[Booking]: ...

    def list_for_service(
        self,
        service_id: str,
        *,
        exclude_booking_id: Optional[str] = None,
        active_only: bool = True,
        window: Optional[tuple[datetime, datetime]] = None,
    ) -> list[Booking]: ...

    def list_for_user(self, user_id: str) -> list[Booking]: ...

    def add(self, booking: Booking) -> Booking: ...

    def save(self, booking: Booking) -> Booking: ...


class InMemoryBookingStore:
    """
    Thread-safe in-memory booking store.

    ``_lock`` guards the dict itself; ``lock(service_id)`` hands out one
    re-entrant lock per service for check-then-write sequences. Records
    are re-validated on the way in and copied on the way out, so callers
    never hold live references and a reversed interval is never stored.
    """

    def __init__(self, bookings: Optional[list[Booking]] = None) -> None:
        self._lock = threading.Lock()
        self._service_locks: dict[str, threading.RLock] = {}
        self._bookings: dict[str, Booking] = {}
        for booking in bookings or []:
            self._bookings[booking.id] = Booking.model_validate(booking.model_dump())

    @contextmanager
    def lock(self, service_id: str) -> Iterator[None]:
        """Hold exclusive write access to one service's bookings."""
        with self._lock:
            service_lock = self._service_locks.setdefault(service_id, threading.RLock())
        with service_lock:
            yield

    def get(self, booking_id: str) -> Optional[Booking]:
        with self._lock:
            booking = self._bookings.get(booking_id)
            return booking.model_copy(deep=True) if booking else None

    def list_for_service(
        self,
        service_id: str,
        *,
        exclude_booking_id: Optional[str] = None,
        active_only: bool = True,
        window: Optional[tuple[datetime, datetime]] = None,
    ) -> list[Booking]:
        """Bookings of a service, by default only those still holding their slot.

        ``window`` keeps bookings whose interval overlaps ``[start, end)``.
        """
        with self._lock:
            snapshot = list(self._bookings.values())

        results = []
        for booking in snapshot:
            if booking.service_id != service_id or booking.id == exclude_booking_id:
                continue
            if active_only and not booking.holds_slot:
                continue
            if window is not None:
                start, end = window
                if not intervals_overlap(booking.start_at, booking.end_at, start, end):
                    continue
            results.append(booking.model_copy(deep=True))
        results.sort(key=lambda b: (b.start_at, b.created_at))
        return results

    def list_for_user(self, user_id: str) -> list[Booking]:
        with self._lock:
            return [
                b.model_copy(deep=True) for b in self._bookings.values() if b.user_id == user_id
            ]

    def add(self, booking: Booking) -> Booking:
        with self._lock:
            if booking.id in self._bookings:
                raise ValueError(f"Booking {booking.id} already exists")
            self._bookings[booking.id] = Booking.model_validate(booking.model_dump())
        logger.debug("Stored booking %s", booking.id)
        return booking

    def save(self, booking: Booking) -> Booking:
        with self._lock:
            if booking.id not in self._bookings:
                raise KeyError(booking.id)
            self._bookings[booking.id] = Booking.model_validate(booking.model_dump())
        return booking

    def count(self) -> int:
        with self._lock:
            return len(self._bookings)

    def reset(self) -> None:
        """Clear all bookings. Used by test fixtures for isolation."""
        with self._lock:
            self._bookings.clear()
