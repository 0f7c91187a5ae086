"""
Booking lifecycle manager.

Validates and executes create, update, cancel, confirm, reject, start and
complete. Each write re-reads the booking and runs its guards (ownership,
status transition, conflict detection) while holding the booking store's
per-service lock, then saves. A guard failure raises before anything is
written, so no operation leaves partial state behind.
"""

import uuid
from datetime import datetime
from typing import Callable, Optional

from booking_engine.config import BookingConfig
from booking_engine.engine.conflicts import ConflictDetector
from booking_engine.engine.state_machine import BookingAction, BookingStateMachine
from booking_engine.engine.validation import (
    resolve_bookable_service,
    resolve_service,
    validate_window,
)
from booking_engine.errors import (
    InvalidTimeRangeError,
    NotFoundError,
    SlotUnavailableError,
    UnauthorizedError,
)
from booking_engine.logging_context import get_request_logger
from booking_engine.schemas.booking_schema import (
    Booking,
    BookingFilter,
    BookingStatus,
    CancelBookingRequest,
    CancelledBy,
    ConfirmBookingRequest,
    CreateBookingRequest,
    RejectBookingRequest,
    UpdateBookingRequest,
)
from booking_engine.store.bookings import BookingStore
from booking_engine.store.catalog import CatalogStore
from booking_engine.utils import duration_minutes, normalize_contact, utc_now

logger = get_request_logger(__name__)


def _new_booking_id() -> str:
    return f"booking-{uuid.uuid4().hex[:12]}"


class BookingLifecycleManager:
    """Executes booking operations against the injected stores."""

    def __init__(
        self,
        catalog: CatalogStore,
        booking_store: BookingStore,
        detector: ConflictDetector,
        config: BookingConfig,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = _new_booking_id,
    ) -> None:
        self._catalog = catalog
        self._bookings = booking_store
        self._detector = detector
        self._config = config
        self._clock = clock
        self._id_factory = id_factory

    # ------------------------------------------------------------------
    # Customer actions
    # ------------------------------------------------------------------

    def create_booking(self, request: CreateBookingRequest, user_id: str) -> Booking:
        """
        Create a booking in ``requested`` status.

        The user and service fields are copied onto the booking here and
        never refreshed afterwards.

        Raises:
            BookingDisabledError: If the store does not take bookings.
            NotFoundError: If the service is unknown, inactive or another store's.
            InvalidTimeRangeError: If the window breaks a time rule.
            SlotUnavailableError: If buffers or capacity leave no room.
        """
        service = resolve_bookable_service(self._catalog, request.store_id, request.service_id)
        now = self._clock()
        validate_window(request.start_at, request.end_at, now, self._config)

        with self._bookings.lock(service.id):
            if self._detector.has_conflict(
                service.id, request.start_at, request.end_at, service
            ):
                raise SlotUnavailableError("Time slot is not available")

            booking = Booking(
                id=self._id_factory(),
                store_id=request.store_id,
                service_id=service.id,
                user_id=user_id,
                user_name=request.user_name,
                user_contact=normalize_contact(request.user_contact),
                service_name=service.name,
                service_description=request.service_description or service.description,
                start_at=request.start_at,
                end_at=request.end_at,
                note=request.note,
                status=BookingStatus.REQUESTED,
                created_at=now,
                updated_at=now,
            )
            self._bookings.add(booking)

        logger.info(
            "Booking created: %s for %s on %s at %s",
            booking.id, user_id, service.id, booking.start_at.isoformat(),
        )
        return booking

    def update_booking(
        self, booking_id: str, request: UpdateBookingRequest, user_id: str
    ) -> Booking:
        """
        Change a booking's note and/or time window.

        A window that differs from the current one is re-checked for
        conflicts against everything except the booking's own reservation,
        and puts the booking back to ``requested`` for the store to
        re-approve. Re-sending the current window is a plain edit.
        """
        service_id = self._load(booking_id).service_id
        with self._bookings.lock(service_id):
            booking = self._load(booking_id)
            self._require_owner(booking, user_id, "update")
            now = self._clock()

            new_start = request.start_at or booking.start_at
            new_end = request.end_at or booking.end_at
            moves = (new_start, new_end) != (booking.start_at, booking.end_at)

            action = BookingAction.RESCHEDULE if moves else BookingAction.EDIT
            new_status = BookingStateMachine(booking.status).transition(action)

            if moves:
                self._validate_new_window(booking, new_start, new_end, now)

                service = resolve_service(self._catalog, booking.store_id, booking.service_id)
                if self._detector.has_conflict(
                    service.id, new_start, new_end, service, exclude_booking_id=booking.id
                ):
                    raise SlotUnavailableError("Time slot is not available")

                booking.start_at = new_start
                booking.end_at = new_end
                booking.confirmed_at = None

            if request.note is not None:
                booking.note = request.note
            booking.status = new_status
            booking.updated_at = now
            self._bookings.save(booking)

        logger.info(
            "Booking %s: %s (status %s)",
            "rescheduled" if moves else "updated",
            booking.id, booking.status.value,
        )
        return booking

    def cancel_booking(
        self, booking_id: str, request: CancelBookingRequest, user_id: str
    ) -> Booking:
        """Cancel one of the caller's own bookings."""
        service_id = self._load(booking_id).service_id
        with self._bookings.lock(service_id):
            booking = self._load(booking_id)
            self._require_owner(booking, user_id, "cancel")
            return self._cancel(booking, request, CancelledBy.USER)

    # ------------------------------------------------------------------
    # Store actions
    # ------------------------------------------------------------------

    def store_cancel_booking(self, booking_id: str, request: CancelBookingRequest) -> Booking:
        """Cancel a booking on the store's behalf."""
        service_id = self._load(booking_id).service_id
        with self._bookings.lock(service_id):
            booking = self._load(booking_id)
            return self._cancel(booking, request, CancelledBy.STORE)

    def confirm_booking(self, booking_id: str, request: ConfirmBookingRequest) -> Booking:
        """
        Confirm a ``requested`` booking.

        The window is checked for conflicts one final time: if another
        booking took the slot since this one was requested, confirmation
        fails and the booking stays ``requested``.
        """
        service_id = self._load(booking_id).service_id
        with self._bookings.lock(service_id):
            booking = self._load(booking_id)
            new_status = BookingStateMachine(booking.status).transition(BookingAction.CONFIRM)

            service = resolve_service(self._catalog, booking.store_id, booking.service_id)
            if self._detector.has_conflict(
                service.id, booking.start_at, booking.end_at, service,
                exclude_booking_id=booking.id,
            ):
                raise SlotUnavailableError("Time slot is no longer available")

            now = self._clock()
            booking.status = new_status
            booking.confirmed_at = now
            booking.updated_at = now
            if request.note:
                booking.status_reason = request.note
            self._bookings.save(booking)

        logger.info("Booking confirmed: %s", booking.id)
        return booking

    def reject_booking(self, booking_id: str, request: RejectBookingRequest) -> Booking:
        """Reject a ``requested`` booking with a reason."""
        service_id = self._load(booking_id).service_id
        with self._bookings.lock(service_id):
            booking = self._load(booking_id)
            booking.status = BookingStateMachine(booking.status).transition(BookingAction.REJECT)
            booking.status_reason = request.reason
            booking.updated_at = self._clock()
            self._bookings.save(booking)

        logger.info("Booking rejected: %s (%s)", booking.id, request.reason)
        return booking

    def start_booking(self, booking_id: str) -> Booking:
        """Mark a confirmed booking as in progress."""
        service_id = self._load(booking_id).service_id
        with self._bookings.lock(service_id):
            booking = self._load(booking_id)
            booking.status = BookingStateMachine(booking.status).transition(BookingAction.START)
            booking.updated_at = self._clock()
            self._bookings.save(booking)

        logger.info("Booking started: %s", booking.id)
        return booking

    def complete_booking(self, booking_id: str) -> Booking:
        """Mark a confirmed or in-progress booking as completed."""
        service_id = self._load(booking_id).service_id
        with self._bookings.lock(service_id):
            booking = self._load(booking_id)
            booking.status = BookingStateMachine(booking.status).transition(
                BookingAction.COMPLETE
            )
            now = self._clock()
            booking.completed_at = now
            booking.updated_at = now
            self._bookings.save(booking)

        logger.info("Booking completed: %s", booking.id)
        return booking

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_user_bookings(
        self, user_id: str, booking_filter: Optional[BookingFilter] = None
    ) -> list[Booking]:
        """Return the user's bookings, most recent ``start_at`` first.

        Raises:
            NotFoundError: If no booking of the user passes the filter.
        """
        bookings = self._bookings.list_for_user(user_id)
        if booking_filter is not None:
            bookings = [b for b in bookings if booking_filter.matches(b)]
        if not bookings:
            raise NotFoundError("No bookings found")
        return sorted(bookings, key=lambda b: b.start_at, reverse=True)

    def get_booking_detail(self, booking_id: str, user_id: str) -> Booking:
        """Return a booking to its owner.

        Raises:
            NotFoundError: If the booking does not exist.
            UnauthorizedError: If the caller does not own it.
        """
        booking = self._load(booking_id)
        self._require_owner(booking, user_id, "view")
        return booking

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load(self, booking_id: str) -> Booking:
        booking = self._bookings.get(booking_id)
        if booking is None:
            raise NotFoundError("Booking not found")
        return booking

    @staticmethod
    def _require_owner(booking: Booking, user_id: str, verb: str) -> None:
        if booking.user_id != user_id:
            raise UnauthorizedError(f"You can only {verb} your own bookings")

    def _validate_new_window(
        self, booking: Booking, new_start: datetime, new_end: datetime, now: datetime
    ) -> None:
        """Time rules for a reschedule.

        Lead time and the advance ceiling apply only when the start moves,
        so an in-progress booking can still have its end adjusted.
        """
        if new_start != booking.start_at:
            validate_window(new_start, new_end, now, self._config)
            return
        if new_end <= new_start:
            raise InvalidTimeRangeError("End time must be after start time")
        if duration_minutes(new_start, new_end) < self._config.min_booking_minutes:
            raise InvalidTimeRangeError(
                f"Booking must be at least {self._config.min_booking_minutes} minutes"
            )

    def _cancel(
        self, booking: Booking, request: CancelBookingRequest, cancelled_by: CancelledBy
    ) -> Booking:
        booking.status = BookingStateMachine(booking.status).transition(BookingAction.CANCEL)
        booking.status_reason = request.reason
        booking.cancelled_by = cancelled_by
        booking.updated_at = self._clock()
        self._bookings.save(booking)
        logger.info("Booking cancelled: %s by %s", booking.id, cancelled_by.value)
        return booking
