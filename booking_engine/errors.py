"""
Domain errors raised by the booking engine.

Every failure carries a stable ``kind`` so callers can branch on it
(e.g. re-poll availability after ``slot_unavailable``) and a
human-readable message for display. The engine never retries or
swallows these; guards raise before any state is mutated.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Stable error categories surfaced to callers."""
    NOT_FOUND = "not_found"
    BOOKING_DISABLED = "booking_disabled"
    INVALID_TIME_RANGE = "invalid_time_range"
    SLOT_UNAVAILABLE = "slot_unavailable"
    INVALID_STATE_TRANSITION = "invalid_state_transition"
    UNAUTHORIZED = "unauthorized"


class BookingError(Exception):
    """Base class for all booking engine errors."""

    kind: ErrorKind

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind.value, "message": self.message}


class NotFoundError(BookingError):
    """A service or booking id does not resolve, or belongs to another store."""
    kind = ErrorKind.NOT_FOUND


class BookingDisabledError(BookingError):
    """The store has not enabled the booking feature."""
    kind = ErrorKind.BOOKING_DISABLED


class InvalidTimeRangeError(BookingError):
    """The requested window is reversed, too short, in the past or too far out."""
    kind = ErrorKind.INVALID_TIME_RANGE


class SlotUnavailableError(BookingError):
    """Buffers or capacity leave no room for the requested window."""
    kind = ErrorKind.SLOT_UNAVAILABLE


class InvalidStateTransitionError(BookingError):
    """The booking's current status forbids the attempted operation."""
    kind = ErrorKind.INVALID_STATE_TRANSITION


class UnauthorizedError(BookingError):
    """The caller does not own the booking."""
    kind = ErrorKind.UNAUTHORIZED
