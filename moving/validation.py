"""Field-level validation shared by the form wizard and the HTTP layer.

Both sides validate the same raw mapping (wire names, text values) against
``BookingCreate`` and report one message per field.  The wizard restricts
the report to the fields of the current step; the server reports
everything.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from pydantic import ValidationError

from moving.models.booking import BookingCreate

# field -> (controlling field, value that makes it visible and required)
CONDITIONAL_REQUIRED: dict[str, tuple[str, str]] = {
    "customMoveType": ("moveType", "other"),
}

REQUIRED_MESSAGES: dict[str, str] = {
    "fullName": "Full name is required",
    "phoneNumber": "Valid phone number is required",
    "startLocation": "Pick-up location is required",
    "endLocation": "Drop-off location is required",
    "moveType": "Move type is required",
    "selectedDate": "Move date is required",
    "timePreference": "Time preference is required",
}

_WIRE_NAMES: dict[str, str] = {
    name: (info.alias or name) for name, info in BookingCreate.model_fields.items()
}


@dataclass
class FieldError:
    """One validation failure, keyed by the wire field name."""

    field: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


def wire_name(name: str) -> str:
    """Map a Python attribute name to its wire name (wire names pass through)."""
    return _WIRE_NAMES.get(name, name)


def is_visible(field: str, values: Mapping[str, Any]) -> bool:
    """Conditional fields are shown only while their controlling value is selected."""
    rule = CONDITIONAL_REQUIRED.get(field)
    if rule is None:
        return True
    controller, expected = rule
    return values.get(controller) == expected


def _message(err: dict) -> str:
    field = wire_name(str(err["loc"][0])) if err["loc"] else ""
    if err["type"] == "missing":
        return REQUIRED_MESSAGES.get(field, "This field is required")
    if err["type"] == "value_error":
        cause = err.get("ctx", {}).get("error")
        if cause is not None:
            return str(cause)
    return err["msg"]


def _collect(exc: ValidationError) -> list[FieldError]:
    errors: list[FieldError] = []
    for err in exc.errors():
        field = wire_name(str(err["loc"][0])) if err["loc"] else "__all__"
        errors.append(FieldError(field=field, message=_message(err)))
    return errors


def validate_booking(
    values: Mapping[str, Any],
) -> tuple[Optional[BookingCreate], list[FieldError]]:
    """Validate a raw submission. Returns the model or the list of field errors."""
    try:
        return BookingCreate.model_validate(dict(values)), []
    except ValidationError as exc:
        return None, _collect(exc)


def field_errors(
    values: Mapping[str, Any],
    fields: Optional[Iterable[str]] = None,
) -> dict[str, str]:
    """Return ``{field: message}``, optionally restricted to ``fields``.

    The first message wins when a field fails more than one rule.
    """
    _, errors = validate_booking(values)
    wanted = {wire_name(f) for f in fields} if fields is not None else None

    result: dict[str, str] = {}
    for error in errors:
        if wanted is not None and error.field not in wanted:
            continue
        result.setdefault(error.field, error.message)
    return result
