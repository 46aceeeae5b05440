"""MongoDB booking store (motor).

Bookings keep the integer ids the API exposes.  Ids come from an atomic
``$inc`` on a counters document, so two concurrent submissions never get
the same id.  Everything else is last-write-wins.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import PyMongoError

from moving.models.booking import Booking, BookingCreate

from .base import BookingStore, StoreError, build_booking

log = logging.getLogger("moving.storage.mongo")


class MongoBookingStore(BookingStore):
    """BookingStore backed by a MongoDB collection."""

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        collection: str = "bookings",
        counters: str = "counters",
        client: Optional[AsyncIOMotorClient] = None,
    ) -> None:
        self._db = db
        self._collection = collection
        self._counters = counters
        self._client = client

    @classmethod
    def from_uri(cls, uri: str, database: str) -> "MongoBookingStore":
        client = AsyncIOMotorClient(uri, tz_aware=True)
        return cls(client[database], client=client)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @property
    def _bookings(self):
        return self._db[self._collection]

    async def _next_id(self) -> int:
        counter = await self._db[self._counters].find_one_and_update(
            {"_id": self._collection},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return int(counter["seq"])

    @staticmethod
    def _to_document(booking: Booking) -> dict[str, Any]:
        doc = booking.model_dump(by_alias=True)
        # BSON has no date-only type
        doc["selectedDate"] = booking.selected_date.isoformat()
        return doc

    @staticmethod
    def _from_document(doc: dict[str, Any]) -> Booking:
        doc = {k: v for k, v in doc.items() if k != "_id"}
        return Booking.model_validate(doc)

    async def start(self) -> None:
        await self.ensure_indexes()

    async def ensure_indexes(self) -> None:
        """Create the id and ordering indexes (idempotent)."""
        try:
            await self._bookings.create_index("id", unique=True)
            await self._bookings.create_index([("createdAt", DESCENDING)])
        except PyMongoError as exc:
            raise StoreError(f"Could not create indexes: {exc}") from exc

    # ------------------------------------------------------------------
    # BookingStore interface
    # ------------------------------------------------------------------

    async def create(
        self,
        data: BookingCreate,
        house_photos: Optional[list[str]] = None,
        items_photos: Optional[list[str]] = None,
    ) -> Booking:
        try:
            booking_id = await self._next_id()
            booking = build_booking(
                booking_id, data, house_photos or [], items_photos or []
            )
            await self._bookings.insert_one(self._to_document(booking))
        except PyMongoError as exc:
            log.error("Error creating booking: %s", exc)
            raise StoreError("Failed to create booking") from exc

        log.info("Booking %d created", booking.id)
        return booking

    async def get(self, booking_id: int) -> Optional[Booking]:
        try:
            doc = await self._bookings.find_one({"id": booking_id})
        except PyMongoError as exc:
            log.error("Error getting booking %d: %s", booking_id, exc)
            raise StoreError("Failed to fetch booking") from exc
        return self._from_document(doc) if doc else None

    async def list_all(self) -> list[Booking]:
        try:
            cursor = self._bookings.find({}).sort(
                [("createdAt", DESCENDING), ("id", DESCENDING)]
            )
            docs = [doc async for doc in cursor]
        except PyMongoError as exc:
            log.error("Error listing bookings: %s", exc)
            raise StoreError("Failed to fetch bookings") from exc
        return [self._from_document(doc) for doc in docs]

    async def update_status(
        self, booking_id: int, status: str
    ) -> Optional[Booking]:
        try:
            doc = await self._bookings.find_one_and_update(
                {"id": booking_id},
                {"$set": {"status": status, "updatedAt": datetime.now(timezone.utc)}},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as exc:
            log.error("Error updating booking %d: %s", booking_id, exc)
            raise StoreError("Failed to update booking status") from exc

        if doc is None:
            return None
        log.info("Booking %d status -> %s", booking_id, status)
        return self._from_document(doc)

    async def close(self) -> None:
        if self._client is not None:
            self._client.close()
