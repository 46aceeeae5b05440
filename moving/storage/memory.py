"""In-process booking store. Contents are lost on restart."""

from __future__ import annotations

import itertools
import logging
from datetime import datetime, timezone
from typing import Optional

from moving.models.booking import Booking, BookingCreate

from .base import BookingStore, build_booking

log = logging.getLogger("moving.storage.memory")


class MemoryBookingStore(BookingStore):
    """BookingStore backed by a dict keyed by integer id."""

    def __init__(self) -> None:
        self._bookings: dict[int, Booking] = {}
        self._ids = itertools.count(1)

    async def create(
        self,
        data: BookingCreate,
        house_photos: Optional[list[str]] = None,
        items_photos: Optional[list[str]] = None,
    ) -> Booking:
        booking = build_booking(
            next(self._ids), data, house_photos or [], items_photos or []
        )
        self._bookings[booking.id] = booking
        log.info("Booking %d created", booking.id)
        return booking.model_copy(deep=True)

    async def get(self, booking_id: int) -> Optional[Booking]:
        booking = self._bookings.get(booking_id)
        return booking.model_copy(deep=True) if booking else None

    async def list_all(self) -> list[Booking]:
        ordered = sorted(
            self._bookings.values(),
            key=lambda b: (b.created_at, b.id),
            reverse=True,
        )
        return [b.model_copy(deep=True) for b in ordered]

    async def update_status(
        self, booking_id: int, status: str
    ) -> Optional[Booking]:
        booking = self._bookings.get(booking_id)
        if booking is None:
            return None
        booking.status = status
        booking.updated_at = datetime.now(timezone.utc)
        log.info("Booking %d status -> %s", booking_id, status)
        return booking.model_copy(deep=True)
