from booking_engine.engine.availability import AvailabilityGenerator
from booking_engine.engine.conflicts import ConflictDetector
from booking_engine.engine.lifecycle import BookingLifecycleManager
from booking_engine.engine.service import BookingEngine, build_engine
from booking_engine.engine.state_machine import BookingAction, BookingStateMachine

__all__ = [
    "BookingEngine",
    "build_engine",
    "ConflictDetector",
    "AvailabilityGenerator",
    "BookingLifecycleManager",
    "BookingStateMachine",
    "BookingAction",
]
