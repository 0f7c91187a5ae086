"""Store records as seen by the booking engine."""

from typing import Optional

from pydantic import BaseModel


class Store(BaseModel):
    """A marketplace store. Only stores with ``booking_enabled`` take bookings."""
    id: str
    name: str
    booking_enabled: bool = False
    timezone: Optional[str] = None
