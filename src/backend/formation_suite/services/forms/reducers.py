"""
Form Reducers

Pure transition functions, one per edit kind. Each takes the current record
and returns a Transition holding a new record plus the notifications the edit
produced; the input record is never mutated.

Controllers call these and store the result in the draft session. Nothing here
performs I/O beyond the cached reference tables.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, List

from pydantic import BaseModel

from ...config.reference_loader import load_notification_templates
from ...exceptions import FormFieldError
from ...models.applications import (
    ApplicationRecord,
    BankingLookup,
    JurisdictionSnapshot,
    LicenseLookup,
    LLCApplication,
)
from ...models.notification import Notification
from ..resolver.requirement_resolver import (
    resolve_jurisdiction_profile,
    resolve_license_checklist,
    resolve_state_from_zip,
    state_name,
)
from ..search.providers import BankSearchResult, LicenseSearchResult

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


@dataclass
class Transition:
    """Result of applying one form event"""

    record: ApplicationRecord
    notifications: List[Notification] = field(default_factory=list)


def notify(key: str, **values: Any) -> Notification:
    """Render a catalog notification by key."""
    template = load_notification_templates().get(key)
    if template is None:
        logger.warning(f"No notification template for '{key}'")
        return Notification(title=key)
    return template.render(**values)


def coerce_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def coerce_int(value: Any) -> int:
    """
    Parse a whole number leniently.

    Leading digits are kept ("12 staff" → 12); anything unparseable becomes 0.
    """
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0

    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else 0


def set_field(record: ApplicationRecord, name: str, value: Any) -> Transition:
    """
    Overwrite one editable field.

    Nested party fields are addressed with a dotted name such as
    "registered_agent.name".

    Raises:
        FormFieldError: If the field is unknown or only written by a dedicated event
    """
    record_type = type(record)
    head, _, tail = name.partition(".")

    if head not in record_type.model_fields:
        raise FormFieldError(f"Unknown field '{name}' for {record_type.__name__}", field_name=name)
    if head in record_type.READ_ONLY_FIELDS:
        raise FormFieldError(f"Field '{name}' cannot be edited directly", field_name=name)

    updated = record.model_copy(deep=True)
    current = getattr(updated, head)

    if isinstance(current, BaseModel):
        if not tail or tail not in type(current).model_fields:
            raise FormFieldError(
                f"Field '{head}' needs one of: "
                + ", ".join(f"{head}.{sub}" for sub in type(current).model_fields),
                field_name=name,
            )
        setattr(current, tail, coerce_text(value))
    elif tail:
        raise FormFieldError(f"Field '{head}' has no sub-field '{tail}'", field_name=name)
    elif record_type.model_fields[head].annotation is int:
        setattr(updated, head, coerce_int(value))
    else:
        setattr(updated, head, coerce_text(value))

    return Transition(updated)


# LLC


def apply_zip_change(record: LLCApplication, zip_code: Any) -> Transition:
    """
    Write the business ZIP and apply state detection.

    A newly detected state overwrites business_state and the whole jurisdiction
    snapshot. Re-detecting the current state, or detecting nothing, leaves both
    as they were and produces no notification.
    """
    updated = record.model_copy(deep=True)
    updated.business_zip = coerce_text(zip_code)

    detected = resolve_state_from_zip(updated.business_zip)
    if detected is None or detected.value == updated.jurisdiction.detected_state:
        return Transition(updated)

    profile = resolve_jurisdiction_profile(detected)
    updated.business_state = detected.value
    updated.jurisdiction = JurisdictionSnapshot.from_profile(detected.value, profile)

    logger.info(
        f"Detected {detected.value} from ZIP prefix {updated.business_zip[:3]} "
        f"(profile: {'yes' if profile else 'no'})"
    )
    return Transition(
        updated,
        [notify("state_detected", state_name=state_name(detected), zip_code=updated.business_zip)],
    )


def select_state(record: LLCApplication, state_code: Any) -> Transition:
    """Manual state choice; the jurisdiction snapshot is left alone."""
    updated = record.model_copy(deep=True)
    updated.business_state = coerce_text(state_code)
    return Transition(updated)


def _check_member_index(record: LLCApplication, index: int):
    if not 0 <= index < len(record.member_names):
        raise FormFieldError(
            f"Member index {index} out of range (0-{len(record.member_names) - 1})",
            field_name="member_names",
        )


def add_member(record: LLCApplication) -> Transition:
    updated = record.model_copy(deep=True)
    updated.member_names = updated.member_names + [""]
    return Transition(updated)


def update_member(record: LLCApplication, index: int, name: Any) -> Transition:
    _check_member_index(record, index)
    updated = record.model_copy(deep=True)
    members = list(updated.member_names)
    members[index] = coerce_text(name)
    updated.member_names = members
    return Transition(updated)


def remove_member(record: LLCApplication, index: int) -> Transition:
    """Remove one entry; removing the only entry leaves a single blank one."""
    _check_member_index(record, index)
    updated = record.model_copy(deep=True)
    updated.member_names = updated.member_names[:index] + updated.member_names[index + 1:]
    return Transition(updated)


# Licenses


def apply_business_type(record: LicenseLookup, business_type: Any) -> Transition:
    """Select a category: reset the checklist, blank the links, clear the permit steps."""
    updated = record.model_copy(deep=True)
    updated.business_type = coerce_text(business_type)

    licenses = resolve_license_checklist(updated.business_type)
    updated.required_licenses = licenses
    updated.license_links = ["" for _ in licenses]
    updated.permit_requirements = []
    return Transition(updated)


def license_search_ready(record: LicenseLookup) -> bool:
    return bool(record.business_type and record.business_state)


def apply_license_search(record: LicenseLookup, result: LicenseSearchResult) -> Transition:
    updated = record.model_copy(deep=True)
    updated.required_licenses = list(result.required_licenses)
    updated.license_links = list(result.license_links)
    updated.permit_requirements = list(result.permit_requirements)
    return Transition(updated, [notify("licenses.found", count=len(updated.required_licenses))])


# Banking


def bank_search_ready(record: BankingLookup) -> bool:
    return len(record.zip_code) == 5


def apply_bank_search(record: BankingLookup, result: BankSearchResult) -> Transition:
    updated = record.model_copy(deep=True)
    updated.bank_results = [bank.model_copy(deep=True) for bank in result.banks]
    return Transition(updated, [notify("banking.found", count=len(updated.bank_results))])
