"""Pydantic models for booking form wizard definitions.

A wizard is an ordered list of steps.  Each step names the fields it
shows and the subset of those that must validate before the customer can
move on.
"""

from __future__ import annotations

from pydantic import BaseModel


class WizardStepDef(BaseModel):
    """One page of the booking form."""

    id: str
    title: str = ""
    description: str = ""
    fields: list[str] = []                 # Wire names shown on this step
    required_fields: list[str] = []        # Must validate before "next"


class WizardDef(BaseModel):
    """A complete wizard definition."""

    id: str
    name: str = ""
    steps: list[WizardStepDef] = []

    @property
    def step_ids(self) -> list[str]:
        return [step.id for step in self.steps]

    def step(self, step_id: str) -> WizardStepDef | None:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None
