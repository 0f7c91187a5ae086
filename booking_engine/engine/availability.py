"""
Calendar availability generation.

Walks ``[from, to)`` in fixed ``slot_interval_minutes`` steps and marks
each slot busy when a live booking's raw interval overlaps it. Buffers
are not applied here; admission control in ``ConflictDetector`` owns
them.

Details of a busy slot are revealed only to the booking's owner. Other
viewers see that the slot is taken and the service name, with the
booking id blanked.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from booking_engine.config import BookingConfig
from booking_engine.schemas.booking_schema import (
    Booking,
    CalendarAvailability,
    CalendarRange,
    CalendarSlot,
    Service,
    SlotBooking,
)
from booking_engine.store.bookings import BookingStore
from booking_engine.store.catalog import CatalogStore
from booking_engine.engine.validation import resolve_bookable_service
from booking_engine.utils import ensure_utc, intervals_overlap, minutes

logger = logging.getLogger(__name__)


class AvailabilityGenerator:
    """Builds the slot calendar for one service."""

    def __init__(
        self, catalog: CatalogStore, booking_store: BookingStore, config: BookingConfig
    ) -> None:
        self._catalog = catalog
        self._bookings = booking_store
        self._config = config

    def clamp_range(self, from_: datetime, to: datetime) -> tuple[datetime, datetime]:
        """Cap ``to`` at ``from_ + max_advance_days``."""
        ceiling = from_ + timedelta(days=self._config.max_advance_days)
        return from_, min(to, ceiling)

    def compute_availability(
        self,
        store_id: str,
        service_id: str,
        from_: datetime,
        to: datetime,
        viewer_user_id: Optional[str] = None,
    ) -> CalendarAvailability:
        """
        Produce the calendar for ``service_id`` over the clamped range.

        Args:
            store_id: Store the service must belong to.
            service_id: Service whose calendar is requested.
            from_: Start of the range (inclusive).
            to: End of the range (exclusive). Clamped to the advance ceiling.
            viewer_user_id: Caller identity, used to decide what a busy
                slot reveals.

        Returns:
            The clamped range and its ordered slots. An empty range yields
            no slots.

        Raises:
            BookingDisabledError: If the store does not take bookings.
            NotFoundError: If the service is unknown, inactive or another
                store's.
        """
        service = resolve_bookable_service(self._catalog, store_id, service_id)
        from_, to = self.clamp_range(ensure_utc(from_), ensure_utc(to))

        slots: list[CalendarSlot] = []
        if from_ < to:
            bookings = self._bookings.list_for_service(service_id, window=(from_, to))
            slots = self._build_slots(service, bookings, from_, to, viewer_user_id)

        logger.debug(
            "Availability for %s: %d slot(s), %d busy",
            service_id, len(slots), sum(1 for s in slots if s.busy),
        )
        return CalendarAvailability(
            store_id=store_id,
            service_id=service_id,
            range=CalendarRange(from_=from_, to=to),
            slots=slots,
        )

    def _build_slots(
        self,
        service: Service,
        bookings: list[Booking],
        from_: datetime,
        to: datetime,
        viewer_user_id: Optional[str],
    ) -> list[CalendarSlot]:
        step = minutes(self._config.slot_interval_minutes)
        slots = []
        slot_start = from_
        while slot_start < to:
            slot_end = min(slot_start + step, to)
            overlapping = [
                b for b in bookings
                if intervals_overlap(slot_start, slot_end, b.start_at, b.end_at)
            ]
            slots.append(CalendarSlot(
                start=slot_start,
                end=slot_end,
                busy=bool(overlapping),
                booking=self._summarize(service, overlapping, viewer_user_id),
            ))
            slot_start = slot_end
        return slots

    @staticmethod
    def _summarize(
        service: Service, overlapping: list[Booking], viewer_user_id: Optional[str]
    ) -> Optional[SlotBooking]:
        if not overlapping:
            return None

        for booking in overlapping:
            if viewer_user_id is not None and booking.user_id == viewer_user_id:
                return SlotBooking(
                    id=booking.id,
                    user_id=booking.user_id,
                    service_name=booking.service_name,
                )

        other = overlapping[0]
        return SlotBooking(id="", user_id=other.user_id, service_name=service.name)
