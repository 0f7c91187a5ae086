"""Guards shared by the availability generator and the lifecycle manager."""

from datetime import datetime, timedelta

from booking_engine.config import BookingConfig
from booking_engine.errors import BookingDisabledError, InvalidTimeRangeError, NotFoundError
from booking_engine.schemas.booking_schema import Service
from booking_engine.store.catalog import CatalogStore
from booking_engine.utils import duration_minutes


def require_booking_enabled(catalog: CatalogStore, store_id: str) -> None:
    if not catalog.is_booking_enabled(store_id):
        raise BookingDisabledError("Booking is not enabled for this store")


def resolve_service(catalog: CatalogStore, store_id: str, service_id: str) -> Service:
    """Look up a service and check it belongs to ``store_id``.

    Raises:
        NotFoundError: If the id is unknown or the service is another store's.
    """
    service = catalog.get_service(service_id)
    if service is None or service.store_id != store_id:
        raise NotFoundError("Invalid service for this store")
    return service


def resolve_bookable_service(catalog: CatalogStore, store_id: str, service_id: str) -> Service:
    """Like ``resolve_service`` but also requires booking enabled and an active service."""
    require_booking_enabled(catalog, store_id)
    service = resolve_service(catalog, store_id, service_id)
    if not service.is_active:
        raise NotFoundError("This service is not currently available for booking")
    return service


def validate_window(
    start_at: datetime, end_at: datetime, now: datetime, config: BookingConfig
) -> None:
    """Apply the lead-time, advance-ceiling and duration rules to a window.

    Raises:
        InvalidTimeRangeError: On the first rule the window breaks.
    """
    if start_at < now:
        raise InvalidTimeRangeError("Cannot book in the past")

    if start_at > now + timedelta(days=config.max_advance_days):
        raise InvalidTimeRangeError(
            f"Cannot book more than {config.max_advance_days} days in advance"
        )

    if end_at <= start_at:
        raise InvalidTimeRangeError("End time must be after start time")

    if duration_minutes(start_at, end_at) < config.min_booking_minutes:
        raise InvalidTimeRangeError(
            f"Booking must be at least {config.min_booking_minutes} minutes"
        )
