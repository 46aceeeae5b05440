"""Pydantic models for booking submissions and persisted bookings.

Field names are snake_case in Python and camelCase on the wire
(``fullName``, ``selectedRooms``...).  Multipart submissions carry every
scalar as text, so the submission model also accepts JSON text for the
nested fields and ``"true"``/``"false"`` for the booleans.
"""

from __future__ import annotations

import json
import re
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

PHONE_PATTERN = re.compile(r"^\d{8,12}$")
COUNTRY_CODE_PATTERN = re.compile(r"^\+\d{1,4}$")

DEFAULT_COUNTRY_CODE = "+30"


class MoveType(str, Enum):
    RESIDENTIAL = "residential"
    OFFICE = "office"
    STORAGE = "storage"
    LOCAL = "local"
    LONG_DISTANCE = "long-distance"
    OTHER = "other"


class TimePreference(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    FLEXIBLE = "flexible"


class HomeSize(str, Enum):
    STUDIO = "studio"
    ONE_BEDROOM = "1-bedroom"
    TWO_BEDROOM = "2-bedroom"
    THREE_BEDROOM = "3-bedroom"
    FOUR_BEDROOM = "4-bedroom"
    OFFICE = "office"


class Floor(str, Enum):
    GROUND = "ground"
    FIRST = "1"
    SECOND = "2"
    THIRD = "3"
    FOURTH = "4"
    FIFTH_OR_HIGHER = "5+"


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Coordinates(BaseModel):
    """A WGS84 point."""

    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


SelectedRooms = dict[str, dict[str, int]]

PHOTO_FIELDS = ("housePhotos", "itemsPhotos")


class BookingFields(BaseModel):
    """Fields shared by the submission and the persisted booking."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )

    full_name: str
    country_code: str = DEFAULT_COUNTRY_CODE
    phone_number: str
    email: Optional[str] = None

    start_location: str
    start_location_coords: Optional[Coordinates] = None
    end_location: str
    end_location_coords: Optional[Coordinates] = None

    pickup_floor: Optional[Floor] = None
    dropoff_floor: Optional[Floor] = None
    pickup_parking: bool = False
    dropoff_parking: bool = False
    pickup_elevator: bool = False
    dropoff_elevator: bool = False

    move_type: MoveType
    custom_move_type: Optional[str] = Field(default=None, validate_default=True)
    selected_rooms: SelectedRooms = {}
    items_description: Optional[str] = None
    home_size: Optional[HomeSize] = None
    special_requirements: Optional[str] = None

    selected_date: date
    time_preference: TimePreference
    additional_notes: Optional[str] = None


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _require_text(value: Any, message: str) -> Any:
    if _is_blank(value):
        raise ValueError(message)
    return value.strip() if isinstance(value, str) else value


class BookingCreate(BookingFields):
    """Incoming booking submission and its validation rules.

    Per-field messages are what the form shows next to each input, so
    they are phrased for the customer.
    """

    email: Optional[EmailStr] = None

    # ── Required text fields ──────────────────────────────────────

    @field_validator("full_name", mode="before")
    @classmethod
    def _full_name_required(cls, v: Any) -> Any:
        return _require_text(v, "Full name is required")

    @field_validator("start_location", mode="before")
    @classmethod
    def _start_location_required(cls, v: Any) -> Any:
        return _require_text(v, "Pick-up location is required")

    @field_validator("end_location", mode="before")
    @classmethod
    def _end_location_required(cls, v: Any) -> Any:
        return _require_text(v, "Drop-off location is required")

    @field_validator("move_type", mode="before")
    @classmethod
    def _move_type_required(cls, v: Any) -> Any:
        return _require_text(v, "Move type is required")

    @field_validator("selected_date", mode="before")
    @classmethod
    def _selected_date_required(cls, v: Any) -> Any:
        return _require_text(v, "Move date is required")

    @field_validator("time_preference", mode="before")
    @classmethod
    def _time_preference_required(cls, v: Any) -> Any:
        return _require_text(v, "Time preference is required")

    @field_validator("phone_number", mode="before")
    @classmethod
    def _phone_digits(cls, v: Any) -> Any:
        v = _require_text(v, "Valid phone number is required")
        if not isinstance(v, str) or not PHONE_PATTERN.match(v):
            raise ValueError("Phone number must contain only digits (8-12 digits)")
        return v

    @field_validator("country_code", mode="before")
    @classmethod
    def _country_code_format(cls, v: Any) -> Any:
        if _is_blank(v):
            return DEFAULT_COUNTRY_CODE
        v = str(v).strip()
        if not COUNTRY_CODE_PATTERN.match(v):
            raise ValueError("Country code must look like +30")
        return v

    # ── Optional fields: blank text means absent ──────────────────

    @field_validator(
        "email",
        "pickup_floor",
        "dropoff_floor",
        "items_description",
        "home_size",
        "special_requirements",
        "additional_notes",
        "custom_move_type",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, v: Any) -> Any:
        if _is_blank(v):
            return None
        return v.strip() if isinstance(v, str) else v

    @field_validator(
        "pickup_parking",
        "dropoff_parking",
        "pickup_elevator",
        "dropoff_elevator",
        mode="before",
    )
    @classmethod
    def _blank_to_false(cls, v: Any) -> Any:
        return False if _is_blank(v) else v

    @field_validator("start_location_coords", "end_location_coords", mode="before")
    @classmethod
    def _parse_coords(cls, v: Any) -> Any:
        if _is_blank(v):
            return None
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                raise ValueError("Coordinates must be a JSON object with lat and lng")
        return v

    # ── Nested / conditional ──────────────────────────────────────

    @field_validator("selected_rooms", mode="before")
    @classmethod
    def _parse_rooms(cls, v: Any) -> Any:
        if _is_blank(v):
            return {}
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                raise ValueError("Selected rooms must be a JSON object")
        return v

    @field_validator("selected_rooms")
    @classmethod
    def _drop_empty_rooms(cls, v: SelectedRooms) -> SelectedRooms:
        rooms: SelectedRooms = {}
        for room, items in v.items():
            kept = {}
            for item, quantity in items.items():
                if quantity < 0:
                    raise ValueError(f"Quantity for {item} in {room} cannot be negative")
                if quantity > 0:
                    kept[item] = quantity
            if kept:
                rooms[room] = kept
        return rooms

    @field_validator("selected_date")
    @classmethod
    def _not_in_past(cls, v: date) -> date:
        if v < date.today():
            raise ValueError("Move date cannot be in the past")
        return v

    @field_validator("custom_move_type")
    @classmethod
    def _custom_move_type_when_other(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        # move_type is declared first, so it is already in info.data when valid
        if info.data.get("move_type") != MoveType.OTHER.value:
            return None
        if not v:
            raise ValueError("Please describe the type of move")
        return v


class Booking(BookingFields):
    """A persisted booking as returned by the store and the API."""

    id: int
    house_photos: list[str] = []
    items_photos: list[str] = []
    status: BookingStatus = BookingStatus.PENDING
    created_at: datetime
    updated_at: Optional[datetime] = None

    def to_api(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class StatusUpdate(BaseModel):
    """Body of ``PATCH /api/bookings/{id}/status``."""

    status: BookingStatus
