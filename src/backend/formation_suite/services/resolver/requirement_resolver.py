"""
Requirement Resolver

Pure lookups that turn user input into derived form data:

- ZIP code → state code (three-character prefix table)
- state code → jurisdiction profile
- business type → license checklist, plus the state registration items,
  portal links and permit steps a license search attaches

None of these functions raise. "No match" is returned as None (or the
fallback checklist) and callers decide what an absent result means.
"""

import logging
from typing import List, Optional, Union

from ...config.reference_loader import (
    load_business_types,
    load_jurisdiction_profiles,
    load_state_registration,
    load_states,
    load_zip_prefix_table,
)
from ...models.reference import BusinessType, JurisdictionProfile, StateCode

logger = logging.getLogger(__name__)

ZIP_PREFIX_LENGTH = 3


def _as_state_code(state_code: Union[StateCode, str, None]) -> Optional[StateCode]:
    if state_code is None:
        return None
    if isinstance(state_code, StateCode):
        return state_code
    try:
        return StateCode(str(state_code).strip().upper())
    except ValueError:
        return None


def resolve_state_from_zip(zip_code: Optional[str]) -> Optional[StateCode]:
    """
    Detect the state a ZIP code belongs to.

    Only the first three characters are looked up; nothing else about the
    input is validated.

    Returns:
        The mapped StateCode, or None when the prefix is not in the table
    """
    if not isinstance(zip_code, str) or len(zip_code) < ZIP_PREFIX_LENGTH:
        return None

    return load_zip_prefix_table().get(zip_code[:ZIP_PREFIX_LENGTH])


def resolve_jurisdiction_profile(
    state_code: Union[StateCode, str, None],
) -> Optional[JurisdictionProfile]:
    """
    Look up the formation profile of a state.

    Returns:
        The profile, or None for states without one (and for unknown codes)
    """
    code = _as_state_code(state_code)
    if code is None:
        return None

    return load_jurisdiction_profiles().get(code)


def resolve_license_checklist(business_type_key: Optional[str]) -> List[str]:
    """
    Return the license checklist of a business category.

    Unknown or empty keys fall back to the "other" category, which always
    contains "Business License".
    """
    try:
        business_type = BusinessType(business_type_key)
    except ValueError:
        business_type = BusinessType.OTHER

    return list(load_business_types()[business_type].licenses)


def augment_with_state_registration(licenses: List[str]) -> List[str]:
    """Append the state registration items; the same items apply in every state."""
    return list(licenses) + list(load_state_registration().registration_items)


def license_links_for(state_code: Union[StateCode, str], licenses: List[str]) -> List[str]:
    """One state portal link per license, in checklist order."""
    code = state_code.value if isinstance(state_code, StateCode) else str(state_code)
    link = load_state_registration().license_link_template.format(state=code.lower())
    return [link for _ in licenses]


def standard_permit_steps() -> List[str]:
    return list(load_state_registration().permit_steps)


def state_name(state_code: Union[StateCode, str, None]) -> Optional[str]:
    """Display name of a state code, or None for unknown codes"""
    code = _as_state_code(state_code)
    if code is None:
        return None
    return load_states()[code].name
