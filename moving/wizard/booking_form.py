"""4-step moving booking form wizard definitions.

The canonical definitions live in booking_forms.jsonl next to this
module: ``booking_form`` (full details step with the room selector) and
``booking_form_simple`` (free-text items description, required).
"""

from __future__ import annotations

from pathlib import Path

from moving.wizard.loader import load_wizards_jsonl
from moving.wizard.schema import WizardDef

_JSONL_PATH = Path(__file__).resolve().parent / "booking_forms.jsonl"

WIZARDS: dict[str, WizardDef] = load_wizards_jsonl(_JSONL_PATH)

DEFAULT_WIZARD: WizardDef = WIZARDS["booking_form"]
SIMPLE_WIZARD: WizardDef = WIZARDS["booking_form_simple"]

STEP_ORDER: list[str] = DEFAULT_WIZARD.step_ids
FIRST_STEP: str = STEP_ORDER[0] if STEP_ORDER else ""
