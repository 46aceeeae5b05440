"""Booking store abstractions and implementations."""

from __future__ import annotations

import logging

from moving.config import Settings

from .base import BookingStore, StoreError
from .memory import MemoryBookingStore

log = logging.getLogger("moving.storage")

__all__ = ["BookingStore", "MemoryBookingStore", "StoreError", "create_store"]


def create_store(settings: Settings) -> BookingStore:
    """Build the backend named by ``settings.storage_backend``.

    Called once at process start; the result is passed to ``create_app``.
    """
    if settings.storage_backend == "mongo":
        from .mongo import MongoBookingStore

        log.info("Using MongoDB booking store (%s)", settings.mongo_db_name)
        return MongoBookingStore.from_uri(settings.mongo_uri, settings.mongo_db_name)

    if settings.storage_backend == "memory":
        log.info("Using in-memory booking store")
        return MemoryBookingStore()

    raise ValueError(f"Unknown storage backend: {settings.storage_backend!r}")
