"""
Unit tests for the form reducers

Every reducer is pure: the input record must come back unchanged and the
notifications must match the catalog entries.
"""

import pytest

from formation_suite.exceptions import FormFieldError
from formation_suite.models.applications import (
    BankingLookup,
    EINApplication,
    JurisdictionSnapshot,
    LicenseLookup,
    LLCApplication,
)
from formation_suite.services.forms import reducers
from formation_suite.services.search.providers import BankSearchResult, LicenseSearchResult


@pytest.mark.unit
class TestCoercion:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (5, 5),
            ("12", 12),
            ("12 staff", 12),
            ("  -3", -3),
            (7.9, 7),
            (float("inf"), 0),
            (float("-inf"), 0),
            (float("nan"), 0),
            ("", 0),
            ("abc", 0),
            (None, 0),
            (True, 0),
        ],
    )
    def test_coerce_int(self, value, expected):
        assert reducers.coerce_int(value) == expected

    def test_coerce_text(self):
        assert reducers.coerce_text(None) == ""
        assert reducers.coerce_text(42) == "42"
        assert reducers.coerce_text("Acme") == "Acme"


@pytest.mark.unit
class TestSetField:
    def test_overwrites_plain_field_without_mutating_input(self):
        record = EINApplication()

        transition = reducers.set_field(record, "business_name", "Acme Widgets")

        assert transition.record.business_name == "Acme Widgets"
        assert transition.notifications == []
        assert record.business_name == ""

    def test_int_field_is_coerced(self):
        transition = reducers.set_field(EINApplication(), "employees_expected", "25 people")

        assert transition.record.employees_expected == 25

    def test_unparseable_int_becomes_zero(self):
        record = EINApplication(employees_expected=4)

        transition = reducers.set_field(record, "employees_expected", "a few")

        assert transition.record.employees_expected == 0

    def test_dotted_party_field(self):
        transition = reducers.set_field(LLCApplication(), "registered_agent.name", "Agents R Us")

        assert transition.record.registered_agent.name == "Agents R Us"
        assert transition.record.organizer.name == ""

    def test_unknown_field_raises(self):
        with pytest.raises(FormFieldError) as exc_info:
            reducers.set_field(LLCApplication(), "llc_nmae", "typo")

        assert exc_info.value.field_name == "llc_nmae"

    @pytest.mark.parametrize("name", ["member_names", "jurisdiction", "jurisdiction.filing_fee"])
    def test_read_only_llc_fields_raise(self, name):
        with pytest.raises(FormFieldError):
            reducers.set_field(LLCApplication(), name, "x")

    def test_read_only_search_results_raise(self):
        with pytest.raises(FormFieldError):
            reducers.set_field(LicenseLookup(), "required_licenses", ["x"])
        with pytest.raises(FormFieldError):
            reducers.set_field(BankingLookup(), "bank_results", [])

    def test_party_field_needs_sub_field(self):
        with pytest.raises(FormFieldError):
            reducers.set_field(LLCApplication(), "organizer", "Jane")
        with pytest.raises(FormFieldError):
            reducers.set_field(LLCApplication(), "organizer.phone", "555")

    def test_plain_field_has_no_sub_field(self):
        with pytest.raises(FormFieldError):
            reducers.set_field(LLCApplication(), "llc_name.first", "x")


@pytest.mark.unit
class TestZipChange:
    """State detection on the LLC worksheet"""

    def test_detects_state_and_copies_profile(self):
        record = LLCApplication()

        transition = reducers.apply_zip_change(record, "94105")
        updated = transition.record

        assert updated.business_zip == "94105"
        assert updated.business_state == "CA"
        assert updated.jurisdiction.detected_state == "CA"
        assert updated.jurisdiction.filing_fee == "$70 (Articles of Organization, Form LLC-1)"
        assert "$800" in updated.jurisdiction.franchise_tax_info
        assert updated.jurisdiction.special_requirements

        assert len(transition.notifications) == 1
        notification = transition.notifications[0]
        assert notification.title == "State Detected"
        assert "California" in notification.description
        assert "94105" in notification.description

        assert record.jurisdiction.detected_state is None
        assert record.business_zip == ""

    def test_unmapped_zip_keeps_previous_detection(self):
        detected = reducers.apply_zip_change(LLCApplication(), "10001").record

        transition = reducers.apply_zip_change(detected, "99999")

        assert transition.record.business_zip == "99999"
        assert transition.record.business_state == "NY"
        assert transition.record.jurisdiction == detected.jurisdiction
        assert transition.notifications == []

    def test_same_state_is_not_detected_twice(self):
        detected = reducers.apply_zip_change(LLCApplication(), "90210").record
        manual = reducers.select_state(detected, "NV").record

        transition = reducers.apply_zip_change(manual, "94105")

        assert transition.notifications == []
        assert transition.record.business_state == "NV"
        assert transition.record.jurisdiction.detected_state == "CA"

    def test_new_state_replaces_snapshot(self):
        ny = reducers.apply_zip_change(LLCApplication(), "10001").record
        assert ny.jurisdiction.publication_required is True

        transition = reducers.apply_zip_change(ny, "19901")

        assert transition.record.business_state == "DE"
        assert transition.record.jurisdiction.detected_state == "DE"
        assert transition.record.jurisdiction.publication_required is False
        assert transition.notifications[0].title == "State Detected"

    def test_state_without_profile_gets_bare_snapshot(self):
        transition = reducers.apply_zip_change(LLCApplication(), "02108")

        assert transition.record.business_state == "MA"
        assert transition.record.jurisdiction == JurisdictionSnapshot(detected_state="MA")
        assert not transition.record.jurisdiction.has_profile
        assert "Massachusetts" in transition.notifications[0].description

    def test_short_zip_only_writes_the_field(self):
        transition = reducers.apply_zip_change(LLCApplication(), "94")

        assert transition.record.business_zip == "94"
        assert transition.record.business_state == ""
        assert transition.notifications == []

    def test_manual_state_selection_leaves_snapshot(self):
        detected = reducers.apply_zip_change(LLCApplication(), "10001").record

        transition = reducers.select_state(detected, "TX")

        assert transition.record.business_state == "TX"
        assert transition.record.jurisdiction.detected_state == "NY"
        assert transition.notifications == []


@pytest.mark.unit
class TestMembers:
    def test_default_has_one_blank_entry(self):
        assert LLCApplication().member_names == [""]

    def test_add_update_remove(self):
        record = LLCApplication()

        record = reducers.update_member(record, 0, "Dana").record
        record = reducers.add_member(record).record
        record = reducers.update_member(record, 1, "Sam").record
        record = reducers.add_member(record).record
        record = reducers.update_member(record, 2, "Lee").record

        assert record.member_names == ["Dana", "Sam", "Lee"]

        record = reducers.remove_member(record, 1).record
        assert record.member_names == ["Dana", "Lee"]

    def test_removing_only_entry_leaves_blank_entry(self):
        record = LLCApplication(member_names=["Dana"])

        transition = reducers.remove_member(record, 0)

        assert transition.record.member_names == [""]

    @pytest.mark.parametrize("index", [1, 5, -1])
    def test_index_out_of_range_raises(self, index):
        with pytest.raises(FormFieldError):
            reducers.update_member(LLCApplication(), index, "x")
        with pytest.raises(FormFieldError):
            reducers.remove_member(LLCApplication(), index)


@pytest.mark.unit
class TestLicenseReducers:
    def test_business_type_resets_checklist(self):
        record = LicenseLookup(
            business_state="CA",
            required_licenses=["Old"],
            license_links=["https://old"],
            permit_requirements=["Old step"],
        )

        transition = reducers.apply_business_type(record, "retail")

        assert transition.record.business_type == "retail"
        assert transition.record.required_licenses == ["Business License", "Sales Tax Permit", "Signage Permit"]
        assert transition.record.license_links == ["", "", ""]
        assert transition.record.permit_requirements == []
        assert transition.notifications == []

    def test_search_ready_needs_type_and_state(self):
        assert not reducers.license_search_ready(LicenseLookup())
        assert not reducers.license_search_ready(LicenseLookup(business_type="retail"))
        assert not reducers.license_search_ready(LicenseLookup(business_state="CA"))
        assert reducers.license_search_ready(LicenseLookup(business_type="retail", business_state="CA"))

    def test_apply_search_result(self):
        result = LicenseSearchResult(
            required_licenses=["A", "B"],
            license_links=["https://ca.gov/business-licenses"] * 2,
            permit_requirements=["Step"],
            provider_name="test",
        )

        transition = reducers.apply_license_search(LicenseLookup(), result)

        assert transition.record.required_licenses == ["A", "B"]
        assert transition.record.permit_requirements == ["Step"]
        assert transition.notifications[0].title == "Licenses Found"
        assert "2" in transition.notifications[0].description


@pytest.mark.unit
class TestBankingReducers:
    @pytest.mark.parametrize(
        "zip_code,ready",
        [("94105", True), ("abcde", True), ("9410", False), ("941050", False), ("", False)],
    )
    def test_search_ready_is_length_five(self, zip_code, ready):
        assert reducers.bank_search_ready(BankingLookup(zip_code=zip_code)) is ready

    def test_apply_search_result(self):
        result = BankSearchResult(banks=[], provider_name="test")

        transition = reducers.apply_bank_search(BankingLookup(zip_code="94105"), result)

        assert transition.record.bank_results == []
        assert transition.notifications[0].title == "Banks Found"


@pytest.mark.unit
def test_notify_unknown_key_uses_key_as_title():
    notification = reducers.notify("no.such.event")

    assert notification.title == "no.such.event"
    assert notification.description == ""
