"""Tests for the booking status state machine."""

import pytest

from booking_engine.engine.state_machine import (
    TERMINAL_STATUSES,
    BookingAction,
    BookingStateMachine,
)
from booking_engine.errors import InvalidStateTransitionError
from booking_engine.schemas.booking_schema import BookingStatus


class TestInitialState:
    def test_defaults_to_requested(self):
        assert BookingStateMachine().current_status == BookingStatus.REQUESTED

    def test_accepts_raw_status_value(self):
        assert BookingStateMachine("confirmed").current_status == BookingStatus.CONFIRMED

    def test_requested_is_not_terminal(self):
        assert not BookingStateMachine().is_terminal()


class TestRequestedTransitions:
    @pytest.mark.parametrize(
        "action, expected",
        [
            (BookingAction.CONFIRM, BookingStatus.CONFIRMED),
            (BookingAction.REJECT, BookingStatus.REJECTED),
            (BookingAction.CANCEL, BookingStatus.CANCELLED),
            (BookingAction.RESCHEDULE, BookingStatus.REQUESTED),
            (BookingAction.EDIT, BookingStatus.REQUESTED),
        ],
    )
    def test_valid_actions(self, action, expected):
        assert BookingStateMachine(BookingStatus.REQUESTED).transition(action) == expected

    def test_cannot_start_or_complete(self):
        sm = BookingStateMachine(BookingStatus.REQUESTED)
        assert BookingAction.START not in sm.get_valid_actions()
        with pytest.raises(InvalidStateTransitionError):
            sm.transition(BookingAction.COMPLETE)


class TestConfirmedTransitions:
    def test_reschedule_goes_back_to_requested(self):
        sm = BookingStateMachine(BookingStatus.CONFIRMED)
        assert sm.transition(BookingAction.RESCHEDULE) == BookingStatus.REQUESTED

    def test_edit_keeps_confirmed(self):
        sm = BookingStateMachine(BookingStatus.CONFIRMED)
        assert sm.transition(BookingAction.EDIT) == BookingStatus.CONFIRMED

    def test_start_then_complete(self):
        sm = BookingStateMachine(BookingStatus.CONFIRMED)
        sm.transition(BookingAction.START)
        assert sm.current_status == BookingStatus.IN_PROGRESS
        sm.transition(BookingAction.COMPLETE)
        assert sm.is_terminal()

    def test_cannot_confirm_or_reject_again(self):
        sm = BookingStateMachine(BookingStatus.CONFIRMED)
        for action in (BookingAction.CONFIRM, BookingAction.REJECT):
            with pytest.raises(InvalidStateTransitionError):
                sm.transition(action)


class TestTerminalClosure:
    @pytest.mark.parametrize("status", sorted(TERMINAL_STATUSES, key=lambda s: s.value))
    @pytest.mark.parametrize("action", list(BookingAction))
    def test_no_action_leaves_terminal_status(self, status, action):
        sm = BookingStateMachine(status)
        with pytest.raises(InvalidStateTransitionError):
            sm.transition(action)
        assert sm.current_status == status

    @pytest.mark.parametrize("status", sorted(TERMINAL_STATUSES, key=lambda s: s.value))
    def test_terminal_has_no_valid_actions(self, status):
        sm = BookingStateMachine(status)
        assert sm.is_terminal()
        assert sm.get_valid_actions() == []


class TestErrorMessages:
    def test_error_lists_allowed_actions(self):
        sm = BookingStateMachine(BookingStatus.IN_PROGRESS)
        with pytest.raises(InvalidStateTransitionError, match="Allowed actions") as exc_info:
            sm.transition(BookingAction.CONFIRM)
        assert "complete" in exc_info.value.message
        assert "in_progress" in exc_info.value.message
