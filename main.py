"""
Booking engine command-line entry point.

Prints a service's slot calendar from the demo catalog, or runs the
scripted console demo.

Usage:
    Calendar:     python main.py availability --service service-luna-consultation \
                      --from 2025-11-10T09:00 --to 2025-11-10T18:00
    Console demo: python main.py demo --scenario race
"""

import argparse
import logging
import sys
from datetime import datetime
from typing import Optional

from booking_engine.config import load_config
from booking_engine.engine.service import build_engine
from booking_engine.errors import BookingError
from booking_engine.utils import ensure_utc

logger = logging.getLogger(__name__)


def _parse_datetime(value: str) -> datetime:
    try:
        return ensure_utc(datetime.fromisoformat(value))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Not an ISO-8601 datetime: {value!r}") from None


def _run_availability(args: argparse.Namespace) -> int:
    config = load_config()
    engine = build_engine(config.booking)
    try:
        calendar = engine.get_calendar_availability(
            args.store, args.service, args.from_, args.to, viewer_user_id=args.viewer
        )
    except BookingError as exc:
        logger.error("%s: %s", exc.kind.value, exc.message)
        return 1

    if args.json:
        sys.stdout.write(calendar.model_dump_json(by_alias=True, indent=2) + "\n")
        return 0

    for slot in calendar.slots:
        state = "busy" if slot.busy else "free"
        sys.stdout.write(f"{slot.start:%Y-%m-%d %H:%M} - {slot.end:%H:%M}  {state}\n")
    return 0


def _run_demo(args: argparse.Namespace) -> int:
    from console_demo import DemoSession

    config = load_config()
    DemoSession(build_engine(config.booking)).run_scenario(args.scenario)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Store booking engine")
    sub = parser.add_subparsers(dest="command", required=True)

    availability = sub.add_parser("availability", help="Print a service's slot calendar.")
    availability.add_argument("--store", default="store-luna-living")
    availability.add_argument("--service", required=True)
    availability.add_argument("--from", dest="from_", type=_parse_datetime, required=True)
    availability.add_argument("--to", type=_parse_datetime, required=True)
    availability.add_argument("--viewer", default=None, help="Viewer user id.")
    availability.add_argument("--json", action="store_true", help="Emit JSON instead of text.")
    availability.set_defaults(handler=_run_availability)

    demo = sub.add_parser("demo", help="Run a scripted console demo.")
    demo.add_argument("--scenario", default="lifecycle",
                      choices=["lifecycle", "race", "workshop"])
    demo.set_defaults(handler=_run_demo)

    args = parser.parse_args(argv)
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
