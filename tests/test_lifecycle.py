"""Tests for booking lifecycle operations."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from booking_engine.errors import (
    BookingDisabledError,
    ErrorKind,
    InvalidStateTransitionError,
    InvalidTimeRangeError,
    NotFoundError,
    SlotUnavailableError,
    UnauthorizedError,
)
from booking_engine.schemas.booking_schema import (
    BookingStatus,
    CancelledBy,
    CreateBookingRequest,
    Service,
)
from tests.conftest import (
    CONSULTATION,
    DISABLED_STORE_ID,
    NOW,
    STORE_ID,
    WORKSHOP,
    at,
    make_booking,
    make_request,
)


@pytest.fixture
def booking(engine):
    """A fresh ``requested`` consultation owned by user-123, 14:00-15:00 on Nov 10."""
    return engine.create_booking(make_request(at(14), at(15)), "user-123")


class TestCreateBooking:
    def test_creates_requested_booking_with_snapshots(self, engine):
        created = engine.create_booking(
            make_request(at(14), at(15), note="Living room makeover"), "user-123"
        )
        assert created.status == BookingStatus.REQUESTED
        assert created.user_id == "user-123"
        assert created.user_name == "John Doe"
        assert created.user_contact == "+15550101"
        assert created.service_name == "Interior Design Consultation"
        assert created.service_description.startswith("One-on-one")
        assert created.note == "Living room makeover"
        assert created.created_at == NOW
        assert created.updated_at == NOW
        assert created.confirmed_at is None

    def test_accepts_request_model(self, engine):
        request = CreateBookingRequest(**make_request(at(14), at(15)))
        created = engine.create_booking(request, "user-123")
        assert engine.get_booking_detail(created.id, "user-123") == created

    def test_service_description_override(self, engine):
        created = engine.create_booking(
            make_request(at(14), at(15), service_description="Kitchen only"), "user-123"
        )
        assert created.service_description == "Kitchen only"

    def test_snapshot_does_not_follow_service_edits(self, engine, catalog, consultation):
        created = engine.create_booking(make_request(at(14), at(15)), "user-123")
        catalog.upsert_service(consultation.model_copy(update={"name": "Renamed"}))
        stored = engine.get_booking_detail(created.id, "user-123")
        assert stored.service_name == "Interior Design Consultation"

    def test_start_in_past_is_refused(self, engine):
        start = NOW - timedelta(minutes=1)
        with pytest.raises(InvalidTimeRangeError, match="past"):
            engine.create_booking(make_request(start, start + timedelta(hours=1)), "user-123")

    def test_start_exactly_now_is_allowed(self, engine):
        created = engine.create_booking(
            make_request(NOW, NOW + timedelta(hours=1)), "user-123"
        )
        assert created.start_at == NOW

    def test_start_beyond_advance_ceiling_is_refused(self, engine):
        start = NOW + timedelta(days=90, minutes=1)
        with pytest.raises(InvalidTimeRangeError, match="90 days"):
            engine.create_booking(make_request(start, start + timedelta(hours=1)), "user-123")

    def test_end_before_start_is_refused(self, engine):
        with pytest.raises(InvalidTimeRangeError, match="after start"):
            engine.create_booking(make_request(at(15), at(14)), "user-123")

    def test_zero_length_window_is_refused(self, engine):
        with pytest.raises(InvalidTimeRangeError):
            engine.create_booking(make_request(at(14), at(14)), "user-123")

    def test_short_booking_is_refused(self, engine):
        with pytest.raises(InvalidTimeRangeError, match="at least 15 minutes"):
            engine.create_booking(make_request(at(14), at(14, 10)), "user-123")

    def test_disabled_store_is_refused(self, engine):
        with pytest.raises(BookingDisabledError):
            engine.create_booking(
                make_request(at(14), at(15), store_id=DISABLED_STORE_ID), "user-123"
            )

    def test_store_disabling_bookings_blocks_new_requests(self, engine, catalog, booking):
        store = catalog.get_store(STORE_ID)
        catalog.upsert_store(store.model_copy(update={"booking_enabled": False}))
        with pytest.raises(BookingDisabledError):
            engine.create_booking(make_request(at(17), at(18)), "user-456")
        assert engine.get_booking_detail(booking.id, "user-123").id == booking.id

    def test_unknown_service_is_not_found(self, engine):
        with pytest.raises(NotFoundError):
            engine.create_booking(
                make_request(at(14), at(15), service_id="service-missing"), "user-123"
            )

    def test_service_of_other_store_is_not_found(self, engine, catalog):
        catalog.upsert_service(
            Service(id="service-elsewhere", store_id="store-other", name="Elsewhere")
        )
        with pytest.raises(NotFoundError):
            engine.create_booking(
                make_request(at(14), at(15), service_id="service-elsewhere"), "user-123"
            )

    def test_inactive_service_is_not_found(self, engine, catalog, consultation):
        catalog.upsert_service(consultation.model_copy(update={"is_active": False}))
        with pytest.raises(NotFoundError):
            engine.create_booking(make_request(at(14), at(15)), "user-123")

    def test_conflict_is_refused_without_writing(self, engine, booking_store, booking):
        with pytest.raises(SlotUnavailableError):
            engine.create_booking(make_request(at(15, 10), at(16)), "user-456")
        assert booking_store.count() == 1

    def test_window_after_buffers_is_accepted(self, engine, booking):
        created = engine.create_booking(make_request(at(15, 30), at(16, 30)), "user-456")
        assert created.status == BookingStatus.REQUESTED

    def test_blank_user_name_is_rejected_by_schema(self, engine):
        with pytest.raises(ValidationError):
            engine.create_booking(make_request(at(14), at(15), user_name="   "), "user-123")

    def test_workshop_admits_up_to_capacity(self, engine):
        for seat in range(6):
            engine.create_booking(
                make_request(at(10), at(12), service_id=WORKSHOP), f"user-{seat}"
            )
        with pytest.raises(SlotUnavailableError):
            engine.create_booking(make_request(at(10), at(12), service_id=WORKSHOP), "user-7")


class TestUpdateBooking:
    def test_note_only_keeps_status(self, engine, booking):
        engine.confirm_booking(booking.id)
        updated = engine.update_booking(booking.id, {"note": "Bring samples"}, "user-123")
        assert updated.note == "Bring samples"
        assert updated.status == BookingStatus.CONFIRMED
        assert updated.confirmed_at is not None

    def test_time_change_resets_to_requested(self, engine, booking):
        engine.confirm_booking(booking.id)
        updated = engine.update_booking(
            booking.id, {"start_at": at(16), "end_at": at(17)}, "user-123"
        )
        assert updated.status == BookingStatus.REQUESTED
        assert updated.start_at == at(16)
        assert updated.end_at == at(17)
        assert updated.confirmed_at is None

    def test_resending_current_window_keeps_confirmation(self, engine, booking):
        confirmed = engine.confirm_booking(booking.id)
        updated = engine.update_booking(
            booking.id, {"start_at": at(14), "end_at": at(15), "note": "Same time"}, "user-123"
        )
        assert updated.status == BookingStatus.CONFIRMED
        assert updated.confirmed_at == confirmed.confirmed_at
        assert updated.note == "Same time"

    def test_shift_over_own_window_is_allowed(self, engine, booking):
        updated = engine.update_booking(
            booking.id, {"start_at": at(14, 30), "end_at": at(15, 30)}, "user-123"
        )
        assert updated.start_at == at(14, 30)

    def test_end_only_change_keeps_start(self, engine, booking):
        updated = engine.update_booking(booking.id, {"end_at": at(15, 30)}, "user-123")
        assert updated.start_at == at(14)
        assert updated.end_at == at(15, 30)

    def test_conflicting_window_is_refused(self, engine, booking_store, booking):
        booking_store.add(make_booking("booking-other", at(17), at(18), user_id="user-456"))
        with pytest.raises(SlotUnavailableError):
            engine.update_booking(
                booking.id, {"start_at": at(16, 30), "end_at": at(17, 30)}, "user-123"
            )
        unchanged = engine.get_booking_detail(booking.id, "user-123")
        assert unchanged.start_at == at(14)
        assert unchanged.status == BookingStatus.REQUESTED

    def test_reversed_window_is_refused(self, engine, booking):
        with pytest.raises(InvalidTimeRangeError):
            engine.update_booking(booking.id, {"end_at": at(13)}, "user-123")

    def test_moving_start_into_past_is_refused(self, engine, booking):
        past = NOW - timedelta(hours=1)
        with pytest.raises(InvalidTimeRangeError):
            engine.update_booking(
                booking.id, {"start_at": past, "end_at": past + timedelta(hours=1)}, "user-123"
            )

    def test_non_owner_is_unauthorized(self, engine, booking):
        with pytest.raises(UnauthorizedError):
            engine.update_booking(booking.id, {"note": "hi"}, "user-456")

    @pytest.mark.parametrize(
        "status",
        [BookingStatus.CANCELLED, BookingStatus.REJECTED, BookingStatus.COMPLETED],
    )
    def test_terminal_booking_cannot_be_updated(self, engine, booking_store, status):
        booking_store.add(make_booking("booking-done", at(14), at(15), status=status))
        with pytest.raises(InvalidStateTransitionError):
            engine.update_booking("booking-done", {"note": "again"}, "user-123")

    def test_unknown_booking_is_not_found(self, engine):
        with pytest.raises(NotFoundError):
            engine.update_booking("booking-missing", {"note": "x"}, "user-123")


class TestCancelBooking:
    def test_cancel_records_reason_and_actor(self, engine, booking):
        cancelled = engine.cancel_booking(booking.id, {"reason": "Travelling"}, "user-123")
        assert cancelled.status == BookingStatus.CANCELLED
        assert cancelled.cancelled_by == CancelledBy.USER
        assert cancelled.status_reason == "Travelling"

    def test_cancel_without_request_body(self, engine, booking):
        cancelled = engine.cancel_booking(booking.id, None, "user-123")
        assert cancelled.status_reason is None

    def test_cancel_frees_the_window(self, engine, booking):
        engine.cancel_booking(booking.id, {}, "user-123")
        created = engine.create_booking(make_request(at(14), at(15)), "user-456")
        assert created.status == BookingStatus.REQUESTED

    def test_non_owner_is_unauthorized(self, engine, booking):
        with pytest.raises(UnauthorizedError):
            engine.cancel_booking(booking.id, {}, "user-456")

    def test_double_cancel_is_refused(self, engine, booking):
        engine.cancel_booking(booking.id, {}, "user-123")
        with pytest.raises(InvalidStateTransitionError):
            engine.cancel_booking(booking.id, {}, "user-123")

    def test_completed_booking_cannot_be_cancelled(self, engine, booking):
        engine.confirm_booking(booking.id)
        engine.complete_booking(booking.id)
        with pytest.raises(InvalidStateTransitionError):
            engine.cancel_booking(booking.id, {}, "user-123")

    def test_store_cancel_marks_store(self, engine, booking):
        cancelled = engine.store_cancel_booking(booking.id, {"reason": "Closed for repairs"})
        assert cancelled.cancelled_by == CancelledBy.STORE
        assert cancelled.status == BookingStatus.CANCELLED


class TestConfirmBooking:
    def test_confirm_sets_timestamp(self, engine, booking):
        confirmed = engine.confirm_booking(booking.id)
        assert confirmed.status == BookingStatus.CONFIRMED
        assert confirmed.confirmed_at == NOW

    def test_confirm_note_is_kept(self, engine, booking):
        confirmed = engine.confirm_booking(booking.id, {"note": "See you at the studio"})
        assert confirmed.status_reason == "See you at the studio"

    def test_confirm_twice_is_refused(self, engine, booking):
        engine.confirm_booking(booking.id)
        with pytest.raises(InvalidStateTransitionError):
            engine.confirm_booking(booking.id)

    def test_slot_taken_since_request_is_refused(self, engine, booking_store, booking):
        booking_store.add(
            make_booking("booking-rival", at(14, 30), at(15, 30), user_id="user-456",
                         status=BookingStatus.CONFIRMED)
        )
        with pytest.raises(SlotUnavailableError, match="no longer available"):
            engine.confirm_booking(booking.id)
        assert engine.get_booking_detail(booking.id, "user-123").status == BookingStatus.REQUESTED

    def test_unknown_booking_is_not_found(self, engine):
        with pytest.raises(NotFoundError):
            engine.confirm_booking("booking-missing")

    def test_service_moved_out_of_store_blocks_confirm(
        self, engine, catalog, consultation, booking
    ):
        catalog.upsert_service(consultation.model_copy(update={"store_id": "store-other"}))
        with pytest.raises(NotFoundError, match="Invalid service"):
            engine.confirm_booking(booking.id)
        assert engine.get_booking_detail(booking.id, "user-123").status == BookingStatus.REQUESTED
        assert engine.reject_booking(booking.id, {"reason": "Service retired"}).status == (
            BookingStatus.REJECTED
        )


class TestRejectBooking:
    def test_reject_records_reason(self, engine, booking):
        rejected = engine.reject_booking(booking.id, {"reason": "Fully booked"})
        assert rejected.status == BookingStatus.REJECTED
        assert rejected.status_reason == "Fully booked"

    def test_reason_is_required(self, engine, booking):
        with pytest.raises(ValidationError):
            engine.reject_booking(booking.id, {"reason": "  "})
        with pytest.raises(ValidationError):
            engine.reject_booking(booking.id, {})

    def test_only_requested_can_be_rejected(self, engine, booking):
        engine.confirm_booking(booking.id)
        with pytest.raises(InvalidStateTransitionError):
            engine.reject_booking(booking.id, {"reason": "Changed my mind"})


class TestStartAndComplete:
    def test_confirmed_booking_runs_to_completion(self, engine, booking):
        engine.confirm_booking(booking.id)
        started = engine.start_booking(booking.id)
        assert started.status == BookingStatus.IN_PROGRESS
        completed = engine.complete_booking(booking.id)
        assert completed.status == BookingStatus.COMPLETED
        assert completed.completed_at == NOW

    def test_requested_booking_cannot_complete(self, engine, booking):
        with pytest.raises(InvalidStateTransitionError):
            engine.complete_booking(booking.id)

    def test_requested_booking_cannot_start(self, engine, booking):
        with pytest.raises(InvalidStateTransitionError):
            engine.start_booking(booking.id)


class TestReads:
    def test_user_bookings_most_recent_first(self, engine):
        engine.create_booking(make_request(at(10, day=5), at(11, day=5)), "user-123")
        engine.create_booking(make_request(at(10, day=20), at(11, day=20)), "user-123")
        engine.create_booking(make_request(at(10, day=12), at(11, day=12)), "user-123")
        engine.create_booking(make_request(at(10, day=15), at(11, day=15)), "user-456")
        bookings = engine.get_user_bookings("user-123")
        assert [b.start_at.day for b in bookings] == [20, 12, 5]

    def test_filter_by_status(self, engine):
        first = engine.create_booking(make_request(at(10, day=5), at(11, day=5)), "user-123")
        engine.create_booking(make_request(at(10, day=6), at(11, day=6)), "user-123")
        engine.confirm_booking(first.id)
        bookings = engine.get_user_bookings("user-123", {"status": ["confirmed"]})
        assert [b.id for b in bookings] == [first.id]

    def test_filter_by_date_range(self, engine):
        engine.create_booking(make_request(at(10, day=5), at(11, day=5)), "user-123")
        engine.create_booking(make_request(at(10, day=12), at(11, day=12)), "user-123")
        bookings = engine.get_user_bookings(
            "user-123", {"from": at(0, day=10), "to": at(0, day=20)}
        )
        assert [b.start_at.day for b in bookings] == [12]

    def test_filter_by_store(self, engine, booking_store):
        engine.create_booking(make_request(at(10, day=5), at(11, day=5)), "user-123")
        booking_store.add(make_booking("booking-x", store_id="store-other", service_id="svc-x"))
        bookings = engine.get_user_bookings("user-123", {"store_id": STORE_ID})
        assert all(b.store_id == STORE_ID for b in bookings)
        assert len(bookings) == 1

    def test_user_without_bookings_is_not_found(self, engine):
        with pytest.raises(NotFoundError, match="No bookings found"):
            engine.get_user_bookings("user-nobody")

    def test_filter_matching_nothing_is_not_found(self, engine, booking):
        with pytest.raises(NotFoundError):
            engine.get_user_bookings("user-123", {"status": ["completed"]})

    def test_detail_for_owner(self, engine, booking):
        assert engine.get_booking_detail(booking.id, "user-123").id == booking.id

    def test_detail_for_other_user_is_unauthorized(self, engine, booking):
        with pytest.raises(UnauthorizedError) as exc_info:
            engine.get_booking_detail(booking.id, "user-456")
        assert exc_info.value.kind == ErrorKind.UNAUTHORIZED

    def test_detail_for_unknown_booking_is_not_found(self, engine):
        with pytest.raises(NotFoundError):
            engine.get_booking_detail("booking-missing", "user-123")

    def test_returned_booking_is_a_copy(self, engine, booking):
        detail = engine.get_booking_detail(booking.id, "user-123")
        detail.status = BookingStatus.CONFIRMED
        assert engine.get_booking_detail(booking.id, "user-123").status == BookingStatus.REQUESTED


class TestStoreServices:
    def test_lists_active_services(self, engine, catalog, consultation):
        catalog.upsert_service(consultation.model_copy(update={"is_active": False}))
        ids = {s.id for s in engine.get_store_services(STORE_ID)}
        assert CONSULTATION not in ids
        assert WORKSHOP in ids

    def test_disabled_store_is_refused(self, engine):
        with pytest.raises(BookingDisabledError):
            engine.get_store_services(DISABLED_STORE_ID)
