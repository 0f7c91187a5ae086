"""
Offline console demo: walks the booking engine through scripted scenarios.

Uses the real conflict detector, availability generator and lifecycle
manager against the in-memory demo catalog. No network, no database.
Designed for live demo walkthroughs.

Usage:
    python console_demo.py
    python console_demo.py --scenario race
    python console_demo.py --scenario workshop
"""

import argparse
from datetime import datetime, timedelta
from typing import Callable, Optional

from booking_engine.config import load_config
from booking_engine.engine.service import BookingEngine, build_engine
from booking_engine.errors import BookingError
from booking_engine.schemas.booking_schema import Booking, BookingStatus, CalendarAvailability
from booking_engine.store.bookings import InMemoryBookingStore
from booking_engine.utils import utc_now

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

STORE_ID = "store-luna-living"
CONSULTATION = "service-luna-consultation"
WORKSHOP = "service-luna-workshop"


def _tomorrow_at(hour: int, minute: int = 0) -> datetime:
    base = utc_now().replace(hour=0, minute=0, second=0, microsecond=0)
    return base + timedelta(days=1, hours=hour, minutes=minute)


class DemoSession:
    """Runs one scripted scenario against a fresh engine."""

    def __init__(self, engine: BookingEngine) -> None:
        self.engine = engine

    def actor_say(self, actor: str, text: str) -> None:
        print(f"\n{BLUE}[{actor}]{RESET} {text}")

    def ok(self, text: str) -> None:
        print(f"{GREEN}  OK  {text}{RESET}")

    def refused(self, exc: BookingError) -> None:
        print(f"{RED}  ERR {exc.kind.value}: {exc.message}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def attempt(
        self, actor: str, description: str, action: Callable[[], Booking]
    ) -> Optional[Booking]:
        self.actor_say(actor, description)
        try:
            booking = action()
        except BookingError as exc:
            self.refused(exc)
            return None
        self.ok(
            f"{booking.id} {booking.start_at:%H:%M}-{booking.end_at:%H:%M} "
            f"status={booking.status.value}"
        )
        return booking

    def book(self, user_id: str, name: str, service_id: str, start: datetime, end: datetime):
        return self.attempt(
            user_id,
            f"requests {service_id} {start:%H:%M}-{end:%H:%M}",
            lambda: self.engine.create_booking(
                {
                    "store_id": STORE_ID,
                    "service_id": service_id,
                    "start_at": start,
                    "end_at": end,
                    "user_name": name,
                    "user_contact": "+1 555 0101",
                },
                user_id,
            ),
        )

    def print_calendar(self, calendar: CalendarAvailability) -> None:
        print(f"\n{BOLD}  Calendar {calendar.service_id}{RESET}")
        for slot in calendar.slots:
            if not slot.busy:
                marker = f"{GREEN}free{RESET}"
            elif slot.booking and slot.booking.id:
                marker = f"{YELLOW}yours ({slot.booking.id}){RESET}"
            else:
                marker = f"{RED}busy{RESET}"
            print(f"    {slot.start:%H:%M}-{slot.end:%H:%M}  {marker}")

    # ------------------------------------------------------------------ #
    # Scenarios
    # ------------------------------------------------------------------ #

    def scenario_lifecycle(self) -> None:
        first = self.book("user-123", "John Doe", CONSULTATION, _tomorrow_at(14), _tomorrow_at(15))
        self.book("user-456", "Jane Smith", CONSULTATION, _tomorrow_at(15, 10), _tomorrow_at(16))
        second = self.book(
            "user-456", "Jane Smith", CONSULTATION, _tomorrow_at(15, 30), _tomorrow_at(16, 30)
        )
        if first is None or second is None:
            return

        self.attempt("store", f"confirms {first.id}",
                     lambda: self.engine.confirm_booking(first.id, {"note": "See you then"}))
        self.attempt("store", f"rejects {second.id}",
                     lambda: self.engine.reject_booking(second.id, {"reason": "Designer away"}))
        self.attempt("user-456", f"tries to cancel {second.id}",
                     lambda: self.engine.cancel_booking(second.id, {}, "user-456"))
        self.attempt("user-456", f"peeks at {first.id}",
                     lambda: self.engine.get_booking_detail(first.id, "user-456"))

        calendar = self.engine.get_calendar_availability(
            STORE_ID, CONSULTATION, _tomorrow_at(13), _tomorrow_at(17), viewer_user_id="user-123"
        )
        self.print_calendar(calendar)

    def scenario_race(self) -> None:
        self.system_log("Two requests land on the same window; both are stored as requested.")
        first = self.book("user-123", "John Doe", CONSULTATION, _tomorrow_at(10), _tomorrow_at(11))
        if first is None:
            return
        # Simulate a second node admitting an overlapping request.
        clash = first.model_copy(update={"id": "booking-clash", "user_id": "user-789"})
        self.engine.bookings.add(clash)
        self.system_log(f"Injected {clash.id} over the same window")

        self.attempt("store", f"confirms {clash.id}", lambda: self.engine.confirm_booking(clash.id))
        self.attempt("store", f"rejects {first.id}",
                     lambda: self.engine.reject_booking(first.id, {"reason": "Double booked"}))
        self.attempt("store", f"confirms {clash.id} again",
                     lambda: self.engine.confirm_booking(clash.id))

    def scenario_workshop(self) -> None:
        self.system_log("Workshop capacity is 6; the seventh seat is refused.")
        for seat in range(1, 8):
            self.book(f"user-{seat:03d}", f"Guest {seat}", WORKSHOP,
                      _tomorrow_at(10), _tomorrow_at(12))
        active = [
            b for b in self.engine.bookings.list_for_service(WORKSHOP)
            if b.status == BookingStatus.REQUESTED
        ]
        self.system_log(f"{len(active)} workshop seat(s) held")

    SCENARIOS: dict[str, str] = {
        "lifecycle": "scenario_lifecycle",
        "race": "scenario_race",
        "workshop": "scenario_workshop",
    }

    def run_scenario(self, scenario: str) -> None:
        """Play a pre-scripted scenario."""
        method = self.SCENARIOS.get(scenario)
        if method is None:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  BOOKING ENGINE - Scenario: {scenario}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

        getattr(self, method)()

        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  Scenario '{scenario}' complete.{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline booking engine demo")
    parser.add_argument(
        "--scenario",
        choices=sorted(DemoSession.SCENARIOS),
        default="lifecycle",
        help="Scripted scenario to play",
    )
    args = parser.parse_args()

    config = load_config()
    engine = build_engine(config.booking, booking_store=InMemoryBookingStore())
    DemoSession(engine).run_scenario(args.scenario)


if __name__ == "__main__":
    main()
