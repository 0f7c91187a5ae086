"""
Finite state machine over ``Booking.status``.

Every status change a booking can undergo is listed in ``TRANSITIONS``.
Operations ask the machine for the next status before touching the
store; an action with no matching transition is rejected with the list
of actions that would have been valid. ``cancelled``, ``rejected`` and
``completed`` have no outgoing transitions.

Usage:
    sm = BookingStateMachine(BookingStatus.REQUESTED)
    sm.transition(BookingAction.CONFIRM)
    assert sm.current_status == BookingStatus.CONFIRMED
"""

import logging
from dataclasses import dataclass
from enum import Enum

from booking_engine.errors import InvalidStateTransitionError
from booking_engine.schemas.booking_schema import BookingStatus

logger = logging.getLogger(__name__)


class BookingAction(str, Enum):
    """Operations that can move a booking between statuses."""
    CONFIRM = "confirm"
    REJECT = "reject"
    CANCEL = "cancel"
    RESCHEDULE = "reschedule"
    EDIT = "edit"
    START = "start"
    COMPLETE = "complete"


@dataclass(frozen=True)
class Transition:
    """A single valid status transition."""
    from_status: BookingStatus
    to_status: BookingStatus
    action: BookingAction


TERMINAL_STATUSES = frozenset(
    {BookingStatus.CANCELLED, BookingStatus.REJECTED, BookingStatus.COMPLETED}
)


class BookingStateMachine:
    """Deterministic status machine for one booking."""

    TRANSITIONS: list[Transition] = [
        # --- Awaiting store decision ---
        Transition(BookingStatus.REQUESTED, BookingStatus.CONFIRMED, BookingAction.CONFIRM),
        Transition(BookingStatus.REQUESTED, BookingStatus.REJECTED, BookingAction.REJECT),
        Transition(BookingStatus.REQUESTED, BookingStatus.CANCELLED, BookingAction.CANCEL),
        Transition(BookingStatus.REQUESTED, BookingStatus.REQUESTED, BookingAction.RESCHEDULE),
        Transition(BookingStatus.REQUESTED, BookingStatus.REQUESTED, BookingAction.EDIT),

        # --- Confirmed; a new time needs re-approval ---
        Transition(BookingStatus.CONFIRMED, BookingStatus.CANCELLED, BookingAction.CANCEL),
        Transition(BookingStatus.CONFIRMED, BookingStatus.REQUESTED, BookingAction.RESCHEDULE),
        Transition(BookingStatus.CONFIRMED, BookingStatus.CONFIRMED, BookingAction.EDIT),
        Transition(BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS, BookingAction.START),
        Transition(BookingStatus.CONFIRMED, BookingStatus.COMPLETED, BookingAction.COMPLETE),

        # --- In progress ---
        Transition(BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED, BookingAction.CANCEL),
        Transition(BookingStatus.IN_PROGRESS, BookingStatus.REQUESTED, BookingAction.RESCHEDULE),
        Transition(BookingStatus.IN_PROGRESS, BookingStatus.IN_PROGRESS, BookingAction.EDIT),
        Transition(BookingStatus.IN_PROGRESS, BookingStatus.COMPLETED, BookingAction.COMPLETE),
    ]

    def __init__(self, status: BookingStatus = BookingStatus.REQUESTED) -> None:
        self._current_status = BookingStatus(status)

    @property
    def current_status(self) -> BookingStatus:
        return self._current_status

    def transition(self, action: BookingAction) -> BookingStatus:
        """
        Apply an action to the current status.

        Args:
            action: The operation being performed on the booking.

        Returns:
            The new booking status.

        Raises:
            InvalidStateTransitionError: If the action is not allowed from
                the current status.
        """
        for t in self.TRANSITIONS:
            if t.from_status == self._current_status and t.action == action:
                old_status = self._current_status
                self._current_status = t.to_status
                logger.debug(
                    "Status transition: %s -> %s (action: %s)",
                    old_status.value, self._current_status.value, action.value,
                )
                return self._current_status

        valid = [a.value for a in self.get_valid_actions()]
        raise InvalidStateTransitionError(
            f"Cannot {action.value} a booking that is {self._current_status.value}. "
            f"Allowed actions: {valid}"
        )

    def get_valid_actions(self) -> list[BookingAction]:
        """Return all actions valid from the current status."""
        return [t.action for t in self.TRANSITIONS if t.from_status == self._current_status]

    def is_terminal(self) -> bool:
        return self._current_status in TERMINAL_STATUSES
