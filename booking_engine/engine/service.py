"""
Booking engine facade.

Wires the conflict detector, availability generator and lifecycle manager
around injected catalog and booking stores and exposes the operation
surface callers use. Each call runs in its own request scope so log lines
from one operation share a correlation ID, and every refused operation is
logged once before the error propagates.
"""

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Iterator, Optional, TypeVar, Union

from pydantic import BaseModel

from booking_engine.config import BookingConfig
from booking_engine.engine.availability import AvailabilityGenerator
from booking_engine.engine.conflicts import ConflictDetector
from booking_engine.engine.lifecycle import BookingLifecycleManager
from booking_engine.engine.validation import require_booking_enabled
from booking_engine.errors import BookingError
from booking_engine.logging_context import get_request_logger, request_scope
from booking_engine.schemas.booking_schema import (
    Booking,
    BookingFilter,
    CalendarAvailability,
    CancelBookingRequest,
    ConfirmBookingRequest,
    CreateBookingRequest,
    RejectBookingRequest,
    Service,
    UpdateBookingRequest,
)
from booking_engine.store.bookings import BookingStore, InMemoryBookingStore
from booking_engine.store.catalog import CatalogStore, InMemoryCatalogStore
from booking_engine.utils import utc_now

logger = get_request_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)
Payload = Union[ModelT, dict[str, Any]]


def _coerce(model: type[ModelT], value: Union[ModelT, dict[str, Any], None]) -> ModelT:
    """Accept either a request model or a plain mapping from the caller."""
    if isinstance(value, model):
        return value
    return model.model_validate(value or {})


class BookingEngine:
    """Entry point for every booking and availability operation."""

    def __init__(
        self,
        catalog: CatalogStore,
        booking_store: BookingStore,
        config: BookingConfig,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.catalog = catalog
        self.bookings = booking_store
        self.config = config
        self.detector = ConflictDetector(booking_store, config.default_buffer_minutes)
        self.availability = AvailabilityGenerator(catalog, booking_store, config)
        self.lifecycle = BookingLifecycleManager(
            catalog, booking_store, self.detector, config, clock=clock
        )

    @contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        with request_scope():
            try:
                yield
            except BookingError as exc:
                logger.warning("%s refused [%s]: %s", name, exc.kind.value, exc.message)
                raise

    # --- Customer actions ---

    def create_booking(self, request: Payload[CreateBookingRequest], user_id: str) -> Booking:
        with self._operation("create_booking"):
            return self.lifecycle.create_booking(_coerce(CreateBookingRequest, request), user_id)

    def update_booking(
        self, booking_id: str, request: Payload[UpdateBookingRequest], user_id: str
    ) -> Booking:
        with self._operation("update_booking"):
            return self.lifecycle.update_booking(
                booking_id, _coerce(UpdateBookingRequest, request), user_id
            )

    def cancel_booking(
        self,
        booking_id: str,
        request: Optional[Payload[CancelBookingRequest]],
        user_id: str,
    ) -> Booking:
        with self._operation("cancel_booking"):
            return self.lifecycle.cancel_booking(
                booking_id, _coerce(CancelBookingRequest, request), user_id
            )

    # --- Store actions ---

    def confirm_booking(
        self, booking_id: str, request: Optional[Payload[ConfirmBookingRequest]] = None
    ) -> Booking:
        with self._operation("confirm_booking"):
            return self.lifecycle.confirm_booking(
                booking_id, _coerce(ConfirmBookingRequest, request)
            )

    def reject_booking(self, booking_id: str, request: Payload[RejectBookingRequest]) -> Booking:
        with self._operation("reject_booking"):
            return self.lifecycle.reject_booking(booking_id, _coerce(RejectBookingRequest, request))

    def store_cancel_booking(
        self, booking_id: str, request: Optional[Payload[CancelBookingRequest]] = None
    ) -> Booking:
        with self._operation("store_cancel_booking"):
            return self.lifecycle.store_cancel_booking(
                booking_id, _coerce(CancelBookingRequest, request)
            )

    def start_booking(self, booking_id: str) -> Booking:
        with self._operation("start_booking"):
            return self.lifecycle.start_booking(booking_id)

    def complete_booking(self, booking_id: str) -> Booking:
        with self._operation("complete_booking"):
            return self.lifecycle.complete_booking(booking_id)

    # --- Reads ---

    def get_calendar_availability(
        self,
        store_id: str,
        service_id: str,
        from_: datetime,
        to: datetime,
        viewer_user_id: Optional[str] = None,
    ) -> CalendarAvailability:
        with self._operation("get_calendar_availability"):
            return self.availability.compute_availability(
                store_id, service_id, from_, to, viewer_user_id
            )

    def get_user_bookings(
        self, user_id: str, booking_filter: Optional[Payload[BookingFilter]] = None
    ) -> list[Booking]:
        with self._operation("get_user_bookings"):
            parsed = _coerce(BookingFilter, booking_filter) if booking_filter else None
            return self.lifecycle.get_user_bookings(user_id, parsed)

    def get_booking_detail(self, booking_id: str, user_id: str) -> Booking:
        with self._operation("get_booking_detail"):
            return self.lifecycle.get_booking_detail(booking_id, user_id)

    def get_store_services(self, store_id: str) -> list[Service]:
        """Active services of a store that takes bookings."""
        with self._operation("get_store_services"):
            require_booking_enabled(self.catalog, store_id)
            return [s for s in self.catalog.list_services(store_id) if s.is_active]


def build_engine(
    config: Optional[BookingConfig] = None,
    catalog: Optional[CatalogStore] = None,
    booking_store: Optional[BookingStore] = None,
    clock: Callable[[], datetime] = utc_now,
) -> BookingEngine:
    """Create an engine, defaulting to the in-memory demo stores."""
    return BookingEngine(
        catalog=catalog if catalog is not None else InMemoryCatalogStore(),
        booking_store=booking_store if booking_store is not None else InMemoryBookingStore(),
        config=config or BookingConfig(),
        clock=clock,
    )
