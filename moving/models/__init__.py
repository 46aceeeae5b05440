"""Data models for the booking intake layer."""

from .booking import (
    Booking,
    BookingCreate,
    BookingStatus,
    Coordinates,
    Floor,
    HomeSize,
    MoveType,
    StatusUpdate,
    TimePreference,
)

__all__ = [
    "Booking",
    "BookingCreate",
    "BookingStatus",
    "Coordinates",
    "Floor",
    "HomeSize",
    "MoveType",
    "StatusUpdate",
    "TimePreference",
]
