"""Booking form wizard — drives one customer through the four steps.

Each form instance gets a BookingWizard that:
  1. Holds the field values, the room selection and the attached photos
  2. Tracks the current step of a linear WizardDef
  3. Gates "next" on the current step's validation; "previous" never validates
  4. Feeds the two location inputs through debounced LocationSearch helpers
  5. Packages everything into one multipart submission on the last step

Typical lifecycle::

    wizard = BookingWizard(client=BookingClient())
    wizard.update(fullName="Maria Papadopoulou", phoneNumber="6912345678")
    wizard.next()                       # -> details
    ...
    booking = await wizard.submit()     # None on failure, see wizard.error
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

from pydantic import BaseModel

from moving.client import ApiError, BookingClient
from moving.config import settings
from moving.location.geocoding import NominatimGeocoder
from moving.location.search import Lookup, LocationSearch
from moving.logs import redact_pii
from moving.models.booking import PHOTO_FIELDS, Coordinates
from moving.rooms import RoomSelection
from moving.validation import CONDITIONAL_REQUIRED, field_errors, is_visible
from moving.wizard.booking_form import DEFAULT_WIZARD
from moving.wizard.schema import WizardDef, WizardStepDef

log = logging.getLogger("moving.wizard")

DEFAULT_VALUES: dict[str, Any] = {
    "fullName": "",
    "countryCode": "+30",
    "phoneNumber": "",
    "email": "",
    "startLocation": "",
    "startLocationCoords": None,
    "endLocation": "",
    "endLocationCoords": None,
    "pickupFloor": "",
    "dropoffFloor": "",
    "pickupParking": False,
    "dropoffParking": False,
    "pickupElevator": False,
    "dropoffElevator": False,
    "moveType": "",
    "customMoveType": "",
    "itemsDescription": "",
    "homeSize": "",
    "specialRequirements": "",
    "selectedDate": "",
    "timePreference": "flexible",
    "additionalNotes": "",
}


class WizardError(Exception):
    """An action that is not allowed in the wizard's current state."""


@dataclass
class SubmissionError:
    """Why the last submit failed. The form is left exactly as it was."""

    message: str
    status_code: int = 0
    field_errors: dict[str, str] | None = None


@dataclass
class PhotoAttachment:
    filename: str
    content: bytes
    content_type: str


def _to_text(value: Any) -> Optional[str]:
    """Multipart carries text only."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, BaseModel):
        return value.model_dump_json()
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


class BookingWizard:
    """State machine for the multi-step booking form."""

    def __init__(
        self,
        definition: WizardDef | None = None,
        client: Optional[BookingClient] = None,
        lookup: Optional[Lookup] = None,
        debounce: Optional[float] = None,
    ) -> None:
        self._definition = definition or DEFAULT_WIZARD
        if not self._definition.steps:
            raise ValueError(f"Wizard {self._definition.id!r} has no steps")
        self._client = client

        self._step_index = 0
        self._values: dict[str, Any] = dict(DEFAULT_VALUES)
        self.rooms = RoomSelection()
        self._photos: dict[str, list[PhotoAttachment]] = {f: [] for f in PHOTO_FIELDS}

        self._errors: dict[str, str] = {}
        self._error: Optional[SubmissionError] = None
        self._confirmation: Optional[dict[str, Any]] = None
        self._submitting = False

        lookup = lookup or NominatimGeocoder().search
        self.start_search = LocationSearch(
            lookup, on_select=self._commit_start, debounce=debounce
        )
        self.end_search = LocationSearch(
            lookup, on_select=self._commit_end, debounce=debounce
        )

    # ── Navigation state ──────────────────────────────────────

    @property
    def definition(self) -> WizardDef:
        return self._definition

    @property
    def current_step(self) -> WizardStepDef:
        return self._definition.steps[self._step_index]

    @property
    def step_number(self) -> int:
        return self._step_index + 1

    @property
    def is_first(self) -> bool:
        return self._step_index == 0

    @property
    def is_last(self) -> bool:
        return self._step_index == len(self._definition.steps) - 1

    @property
    def can_submit(self) -> bool:
        return self.is_last and not self._submitting

    @property
    def errors(self) -> dict[str, str]:
        return dict(self._errors)

    @property
    def error(self) -> Optional[SubmissionError]:
        return self._error

    @property
    def confirmation(self) -> Optional[dict[str, Any]]:
        return self._confirmation

    # ── Field values ──────────────────────────────────────────

    @property
    def values(self) -> dict[str, Any]:
        """Snapshot of every scalar field plus the selected rooms."""
        values = dict(self._values)
        values["selectedRooms"] = self.rooms.to_payload()
        return values

    def get(self, name: str) -> Any:
        return self.values.get(name)

    def set_field(self, name: str, value: Any) -> None:
        if name not in DEFAULT_VALUES:
            raise KeyError(f"Unknown form field: {name}")
        self._values[name] = value

    def update(self, **values: Any) -> None:
        for name, value in values.items():
            self.set_field(name, value)

    def visible_fields(self, step: WizardStepDef | None = None) -> list[str]:
        """Fields shown on ``step``; conditional fields only when triggered."""
        step = step or self.current_step
        values = self.values
        return [f for f in step.fields if is_visible(f, values)]

    # ── Locations ─────────────────────────────────────────────

    def type_location(self, which: str, text: str) -> None:
        """Free-text edit of a location input. Drops stale coordinates.

        Needs a running event loop (a lookup may be scheduled).
        """
        field, search = self._location(which)
        self._values[field] = text
        self._values[f"{field}Coords"] = None
        search.set_query(text)

    def _location(self, which: str) -> tuple[str, LocationSearch]:
        if which == "start":
            return "startLocation", self.start_search
        if which == "end":
            return "endLocation", self.end_search
        raise ValueError(f"Unknown location: {which!r}")

    def _commit_start(self, text: str, coords: Optional[Coordinates]) -> None:
        self._values["startLocation"] = text
        self._values["startLocationCoords"] = coords

    def _commit_end(self, text: str, coords: Optional[Coordinates]) -> None:
        self._values["endLocation"] = text
        self._values["endLocationCoords"] = coords

    # ── Photos ────────────────────────────────────────────────

    def add_photo(
        self, field: str, filename: str, content: bytes, content_type: str
    ) -> None:
        if field not in PHOTO_FIELDS:
            raise ValueError(f"Unknown photo field: {field}")
        if not content_type.startswith("image/"):
            raise ValueError("Only image files are allowed")
        if len(content) > settings.max_upload_bytes:
            raise ValueError(f"{filename} is larger than the upload limit")
        if len(self._photos[field]) >= settings.max_photos_per_field:
            raise ValueError(f"At most {settings.max_photos_per_field} photos per field")
        self._photos[field].append(PhotoAttachment(filename, content, content_type))

    def remove_photo(self, field: str, index: int) -> None:
        del self._photos[field][index]

    def photos(self, field: str) -> list[PhotoAttachment]:
        return list(self._photos[field])

    # ── Validation & transitions ──────────────────────────────

    def _fields_to_validate(self, step: WizardStepDef) -> list[str]:
        values = self.values
        fields = list(step.required_fields)

        # Optional fields are checked only once the customer filled them in
        for name in step.fields:
            if name not in fields and values.get(name) not in (None, "", {}, False):
                fields.append(name)

        for name, (controller, _) in CONDITIONAL_REQUIRED.items():
            if controller in step.fields and is_visible(name, values) and name not in fields:
                fields.append(name)
        return fields

    def validate_step(self, step: WizardStepDef | None = None) -> dict[str, str]:
        """Return ``{field: message}`` for the given (default: current) step."""
        step = step or self.current_step
        fields = [f for f in self._fields_to_validate(step) if f not in PHOTO_FIELDS]
        return field_errors(self.values, fields)

    def validate_all(self) -> dict[str, str]:
        errors: dict[str, str] = {}
        for step in self._definition.steps:
            errors.update(self.validate_step(step))
        return errors

    def next(self) -> bool:
        """Advance one step if the current step validates."""
        if self.is_last:
            return False

        self._errors = self.validate_step()
        if self._errors:
            log.info(
                "Step %s blocked: %s", self.current_step.id, ", ".join(sorted(self._errors))
            )
            return False

        self._step_index += 1
        log.debug("Wizard advanced to %s", self.current_step.id)
        return True

    def previous(self) -> bool:
        """Go back one step. Never validates."""
        if self.is_first:
            return False
        self._step_index -= 1
        self._errors = {}
        return True

    # ── Submission ────────────────────────────────────────────

    def build_payload(self) -> tuple[dict[str, str], list[tuple[str, tuple[str, bytes, str]]]]:
        """Scalars as text fields, photos as file parts."""
        values = self.values
        data: dict[str, str] = {}
        for name, value in values.items():
            if not is_visible(name, values):
                continue
            text = _to_text(value)
            if text is not None:
                data[name] = text

        files = [
            (field, (photo.filename, photo.content, photo.content_type))
            for field in PHOTO_FIELDS
            for photo in self._photos[field]
        ]
        return data, files

    async def submit(self) -> Optional[dict[str, Any]]:
        """Send the booking. Returns the created booking, or None on failure.

        On success the wizard resets to the first step with default values
        and keeps the booking in ``confirmation``.  On failure nothing in
        the form changes; ``error`` (and ``errors`` for field problems)
        describe what went wrong.
        """
        if not self.is_last:
            raise WizardError("Submit is only available on the last step")
        if self._client is None:
            raise WizardError("No booking client configured")
        if self._submitting:
            raise WizardError("A submission is already in progress")

        errors = self.validate_all()
        if errors:
            self._errors = errors
            self._error = SubmissionError("Please fix the highlighted fields", field_errors=errors)
            return None

        data, files = self.build_payload()
        self._submitting = True
        try:
            booking = await self._client.create_booking(data, files)
        except ApiError as exc:
            server_errors = {
                e.get("field", ""): e.get("message", "") for e in exc.errors if isinstance(e, dict)
            }
            self._errors = server_errors
            self._error = SubmissionError(exc.message, exc.status_code, server_errors or None)
            log.warning("Booking submission failed (%d): %s", exc.status_code, exc.message)
            return None
        finally:
            self._submitting = False

        log.info(
            "Booking %s submitted for %s",
            booking.get("id"),
            redact_pii(str(self._values.get("phoneNumber", ""))),
        )
        self.reset()
        self._confirmation = booking
        return booking

    def reset(self) -> None:
        """Back to step 1 with default values."""
        self._step_index = 0
        self._values = dict(DEFAULT_VALUES)
        self.rooms.clear()
        self._photos = {f: [] for f in PHOTO_FIELDS}
        self._errors = {}
        self._error = None
        self._confirmation = None
        self.start_search.set_query("")
        self.end_search.set_query("")

    def to_dict(self) -> dict[str, Any]:
        """Summary suitable for logging (PII masked)."""
        return {
            "wizard_id": self._definition.id,
            "step": self.current_step.id,
            "step_number": self.step_number,
            "full_name": redact_pii(self._values.get("fullName", "")),
            "phone_number": redact_pii(self._values.get("phoneNumber", "")),
            "rooms": self.rooms.active_rooms,
            "item_count": self.rooms.total_count(),
            "photos": {f: len(p) for f, p in self._photos.items()},
            "errors": self.errors,
        }
