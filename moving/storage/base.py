"""Abstract base class for booking stores.

Defines the persistence contract used by the HTTP layer.  Any backend
(in-memory, MongoDB, ...) implements this ABC.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional

from moving.models.booking import Booking, BookingCreate, BookingStatus


class StoreError(Exception):
    """The backing store is unavailable or rejected the operation."""


def build_booking(
    booking_id: int,
    data: BookingCreate,
    house_photos: list[str],
    items_photos: list[str],
) -> Booking:
    """Turn a validated submission into a fresh pending record."""
    return Booking(
        **data.model_dump(),
        id=booking_id,
        house_photos=list(house_photos),
        items_photos=list(items_photos),
        status=BookingStatus.PENDING.value,
        created_at=datetime.now(timezone.utc),
    )


class BookingStore(ABC):
    """Abstract booking backend.

    No transactional guarantees beyond what the backend gives; concurrent
    status updates are last-write-wins.
    """

    @abstractmethod
    async def create(
        self,
        data: BookingCreate,
        house_photos: Optional[list[str]] = None,
        items_photos: Optional[list[str]] = None,
    ) -> Booking:
        """Persist a new booking.

        Assigns a fresh unique id, stamps ``created_at`` and sets status to
        ``pending``.

        Returns:
            The stored Booking.
        """

    @abstractmethod
    async def get(self, booking_id: int) -> Optional[Booking]:
        """Return the booking with ``booking_id`` or None."""

    @abstractmethod
    async def list_all(self) -> list[Booking]:
        """Return every booking, newest first."""

    @abstractmethod
    async def update_status(
        self, booking_id: int, status: str
    ) -> Optional[Booking]:
        """Set a booking's status.

        Any status may follow any other.

        Returns:
            The updated Booking, or None if ``booking_id`` is unknown.
        """

    async def start(self) -> None:
        """Prepare the backend (indexes, connections). Called once at app startup."""

    async def close(self) -> None:
        """Release backend resources."""
