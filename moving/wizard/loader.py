"""Load the JSONL wizard definitions into WizardDef objects."""

from __future__ import annotations

import json
from pathlib import Path

from moving.wizard.schema import WizardDef, WizardStepDef


def load_wizards_jsonl(path: str | Path) -> dict[str, WizardDef]:
    """Load every wizard in a JSONL file (one per line), keyed by wizard ID."""
    path = Path(path)
    wizards: dict[str, WizardDef] = {}
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line:
            continue
        wizard = _parse_wizard(json.loads(line))
        if wizard.id in wizards:
            raise ValueError(f"Wizard {wizard.id!r} defined twice in {path}")
        wizards[wizard.id] = wizard

    if not wizards:
        raise ValueError(f"No wizard found in {path}")
    return wizards


def _parse_wizard(data: dict) -> WizardDef:
    """Build a WizardDef, rejecting duplicate step ids and hidden required fields."""
    steps = [WizardStepDef(**step) for step in data.get("steps", [])]
    ids = [step.id for step in steps]
    if len(ids) != len(set(ids)):
        raise ValueError(f"Duplicate step ids in wizard {data.get('id')!r}")

    for step in steps:
        missing = set(step.required_fields) - set(step.fields)
        if missing:
            raise ValueError(
                f"Step {step.id!r} requires fields it does not show: {sorted(missing)}"
            )

    return WizardDef(**{**data, "steps": steps})
