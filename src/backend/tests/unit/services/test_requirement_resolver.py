"""
Unit tests for the requirement resolver

Covers ZIP → state detection, jurisdiction profile lookup and the license
checklist with its state registration, portal link and permit helpers.
"""

import pytest
from pydantic import ValidationError

from formation_suite.config.reference_loader import load_zip_prefix_table
from formation_suite.models.reference import JurisdictionProfile, StateCode
from formation_suite.services.resolver import (
    augment_with_state_registration,
    license_links_for,
    resolve_jurisdiction_profile,
    resolve_license_checklist,
    resolve_state_from_zip,
    standard_permit_steps,
    state_name,
)

RESTAURANT_LICENSES = [
    "Food Service License",
    "Liquor License (if applicable)",
    "Business License",
    "Health Department Permit",
]

PROFILED_STATES = {
    StateCode.CA, StateCode.NY, StateCode.DE, StateCode.TX,
    StateCode.FL, StateCode.NV, StateCode.WY,
}

REGISTRATION_ITEMS = [
    "State Business Registration",
    "State Tax Registration",
    "Workers' Compensation (if employees)",
    "Unemployment Insurance (if employees)",
]


@pytest.mark.unit
class TestResolveStateFromZip:
    """ZIP prefix detection"""

    @pytest.mark.parametrize(
        "zip_code,expected",
        [
            ("90210", StateCode.CA),
            ("94105", StateCode.CA),
            ("10001", StateCode.NY),
            ("19901", StateCode.DE),
            ("33101", StateCode.FL),
            ("75001", StateCode.TX),
            ("89101", StateCode.NV),
            ("82001", StateCode.WY),
            ("02108", StateCode.MA),
        ],
    )
    def test_known_prefixes(self, zip_code, expected):
        assert resolve_state_from_zip(zip_code) == expected

    def test_only_first_three_characters_matter(self):
        assert resolve_state_from_zip("941") == StateCode.CA
        assert resolve_state_from_zip("941xx-9999") == StateCode.CA

    @pytest.mark.parametrize("zip_code", ["19101", "99999", "000"])
    def test_unmapped_prefix_returns_none(self, zip_code):
        assert resolve_state_from_zip(zip_code) is None

    @pytest.mark.parametrize("zip_code", ["", "9", "90", None, 90210])
    def test_short_or_non_string_input_returns_none(self, zip_code):
        assert resolve_state_from_zip(zip_code) is None

    def test_every_prefix_maps_to_its_state(self):
        table = load_zip_prefix_table()

        assert table
        for prefix, state_code in table.items():
            assert resolve_state_from_zip(f"{prefix}42") is state_code, prefix

    @pytest.mark.parametrize("zip_code", ["90210", "10001", "19901", "02108", "19101", "99999", ""])
    def test_detection_is_idempotent(self, zip_code):
        first = resolve_jurisdiction_profile(resolve_state_from_zip(zip_code))
        second = resolve_jurisdiction_profile(resolve_state_from_zip(zip_code))

        assert resolve_state_from_zip(zip_code) == resolve_state_from_zip(zip_code)
        assert first == second


@pytest.mark.unit
class TestResolveJurisdictionProfile:
    """State → formation profile"""

    def test_california_profile(self):
        profile = resolve_jurisdiction_profile(StateCode.CA)

        assert isinstance(profile, JurisdictionProfile)
        assert profile.filing_fee == "$70 (Articles of Organization, Form LLC-1)"
        assert "$800" in profile.franchise_tax_info
        assert profile.publication_required is False
        assert profile.special_requirements

    def test_new_york_requires_publication(self):
        assert resolve_jurisdiction_profile("NY").publication_required is True

    def test_cached_profile_cannot_be_mutated(self):
        profile = resolve_jurisdiction_profile(StateCode.CA)

        with pytest.raises(AttributeError):
            profile.special_requirements.append("Injected")
        with pytest.raises(ValidationError):
            profile.filing_fee = "$0"

        assert "Injected" not in resolve_jurisdiction_profile(StateCode.CA).special_requirements

    def test_accepts_lowercase_string_code(self):
        assert resolve_jurisdiction_profile("de") == resolve_jurisdiction_profile(StateCode.DE)

    @pytest.mark.parametrize("state_code", ["MA", "GA", StateCode.IL])
    def test_state_without_profile_returns_none(self, state_code):
        assert resolve_jurisdiction_profile(state_code) is None

    @pytest.mark.parametrize("state_code", ["", "ZZ", None])
    def test_unknown_code_returns_none(self, state_code):
        assert resolve_jurisdiction_profile(state_code) is None

    @pytest.mark.parametrize("state_code", list(StateCode))
    def test_every_state_code(self, state_code):
        profile = resolve_jurisdiction_profile(state_code)

        if state_code in PROFILED_STATES:
            assert profile.state_code is state_code
            assert profile.special_requirements
            assert all(item.strip() for item in profile.special_requirements)
        else:
            assert profile is None


@pytest.mark.unit
class TestLicenseChecklist:
    """Business type → licenses"""

    def test_restaurant_checklist(self):
        assert resolve_license_checklist("restaurant") == RESTAURANT_LICENSES

    def test_retail_checklist(self):
        assert resolve_license_checklist("retail") == ["Business License", "Sales Tax Permit", "Signage Permit"]

    @pytest.mark.parametrize("business_type", ["other", "", None, "space-mining"])
    def test_unknown_types_fall_back_to_other(self, business_type):
        assert resolve_license_checklist(business_type) == ["Business License"]

    def test_returned_list_is_a_copy(self):
        first = resolve_license_checklist("restaurant")
        first.append("Mutated")

        assert resolve_license_checklist("restaurant") == RESTAURANT_LICENSES

    def test_state_registration_items_are_appended(self):
        licenses = augment_with_state_registration(["Business License"])

        assert licenses == ["Business License"] + REGISTRATION_ITEMS

    def test_one_link_per_license(self):
        links = license_links_for("CA", ["A", "B", "C"])

        assert links == ["https://ca.gov/business-licenses"] * 3

    def test_links_accept_state_code_enum(self):
        assert license_links_for(StateCode.NY, ["A"]) == ["https://ny.gov/business-licenses"]

    def test_permit_steps(self):
        steps = standard_permit_steps()

        assert len(steps) == 4
        assert "Obtain federal EIN if needed" in steps


@pytest.mark.unit
class TestStateName:
    def test_known_code(self):
        assert state_name("CA") == "California"
        assert state_name(StateCode.MA) == "Massachusetts"

    def test_unknown_code(self):
        assert state_name("ZZ") is None
        assert state_name(None) is None
