"""
Conflict detection for booking windows.

A candidate window and every live booking on the same service are both
widened by the service's buffers (setup before, cleanup after) and then
compared with the half-open overlap test. The candidate is refused once
the number of overlapping bookings reaches the service's capacity, so a
capacity of N admits up to N bookings sharing a buffered window.

Buffers never shrink with capacity: a group workshop with capacity 6
still needs its setup and cleanup time around every session.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from booking_engine.schemas.booking_schema import Booking, Service
from booking_engine.store.bookings import BookingStore
from booking_engine.utils import intervals_overlap, minutes

logger = logging.getLogger(__name__)


class ConflictDetector:
    """Decides whether a window can be placed on a service's calendar."""

    def __init__(self, booking_store: BookingStore, default_buffer_minutes: int) -> None:
        self._bookings = booking_store
        self._default_buffer_minutes = default_buffer_minutes

    def buffers(self, service: Service) -> tuple[timedelta, timedelta]:
        """Effective (before, after) buffers. Unset values fall back to the default.

        An explicit ``0`` is honoured and means no buffer.
        """
        before = service.buffer_before_minutes
        after = service.buffer_after_minutes
        return (
            minutes(self._default_buffer_minutes if before is None else before),
            minutes(self._default_buffer_minutes if after is None else after),
        )

    def expand(
        self, start_at: datetime, end_at: datetime, service: Service
    ) -> tuple[datetime, datetime]:
        before, after = self.buffers(service)
        return start_at - before, end_at + after

    def find_conflicts(
        self,
        service_id: str,
        start_at: datetime,
        end_at: datetime,
        service: Service,
        exclude_booking_id: Optional[str] = None,
    ) -> list[Booking]:
        """
        Return the bookings that block ``[start_at, end_at)``.

        The list is empty when the window fits, either because nothing
        overlaps or because fewer than ``capacity`` bookings do. When the
        window is refused, every overlapping booking is returned.
        """
        effective_start, effective_end = self.expand(start_at, end_at, service)
        existing = self._bookings.list_for_service(
            service_id, exclude_booking_id=exclude_booking_id
        )

        overlapping = []
        for booking in existing:
            booking_start, booking_end = self.expand(booking.start_at, booking.end_at, service)
            if intervals_overlap(effective_start, effective_end, booking_start, booking_end):
                overlapping.append(booking)

        if len(overlapping) >= service.capacity:
            logger.debug(
                "Window %s - %s on %s blocked by %d booking(s) (capacity %d)",
                start_at.isoformat(), end_at.isoformat(), service_id,
                len(overlapping), service.capacity,
            )
            return overlapping
        return []

    def has_conflict(
        self,
        service_id: str,
        start_at: datetime,
        end_at: datetime,
        service: Service,
        exclude_booking_id: Optional[str] = None,
    ) -> bool:
        return bool(
            self.find_conflicts(service_id, start_at, end_at, service, exclude_booking_id)
        )
