"""Requirement resolution: ZIP → state → jurisdiction profile, business type → licenses."""

from .requirement_resolver import (
    resolve_state_from_zip,
    resolve_jurisdiction_profile,
    resolve_license_checklist,
    augment_with_state_registration,
    license_links_for,
    standard_permit_steps,
    state_name,
)

__all__ = [
    "resolve_state_from_zip",
    "resolve_jurisdiction_profile",
    "resolve_license_checklist",
    "augment_with_state_registration",
    "license_links_for",
    "standard_permit_steps",
    "state_name",
]
