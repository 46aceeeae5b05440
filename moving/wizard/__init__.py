"""Multi-step booking form wizard."""

from .booking_form import DEFAULT_WIZARD, FIRST_STEP, SIMPLE_WIZARD, STEP_ORDER, WIZARDS
from .schema import WizardDef, WizardStepDef
from .session import BookingWizard, PhotoAttachment, SubmissionError, WizardError

__all__ = [
    "BookingWizard",
    "DEFAULT_WIZARD",
    "FIRST_STEP",
    "PhotoAttachment",
    "SIMPLE_WIZARD",
    "STEP_ORDER",
    "SubmissionError",
    "WIZARDS",
    "WizardDef",
    "WizardError",
    "WizardStepDef",
]
