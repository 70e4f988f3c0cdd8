"""Form state controllers: one per worksheet, driven by pure reducers."""

from .base import FormController
from .banking_form import BankingFormController
from .ein_form import EINFormController
from .license_form import LicenseFormController
from .llc_form import LLCFormController
from .reducers import Transition
from .registry import (
    FormControllerRegistry,
    clear_form_registry,
    get_form_registry,
    init_form_registry,
)

__all__ = [
    "FormController",
    "BankingFormController",
    "EINFormController",
    "LicenseFormController",
    "LLCFormController",
    "Transition",
    "FormControllerRegistry",
    "clear_form_registry",
    "get_form_registry",
    "init_form_registry",
]
