"""
Unit tests for the typed reference table loaders
"""

import json
import shutil
from pathlib import Path

import pytest

import formation_suite
from formation_suite.config import reference_loader
from formation_suite.exceptions import ReferenceDataError
from formation_suite.models.reference import BusinessType, StateCode
from formation_suite.services.config.configuration_service import init_config_service


@pytest.fixture
def broken_config(tmp_path):
    """
    Copy of the packaged tables installed as the active configuration

    Usage:
        def test_x(broken_config):
            broken_config("zip_prefixes", lambda data: ...)
    """
    config_dir = tmp_path / "config"
    shutil.copytree(Path(formation_suite.__file__).parent / "config", config_dir)
    init_config_service(str(config_dir))

    def _break(name, mutate):
        path = config_dir / f"{name}.json"
        data = json.loads(path.read_text(encoding="utf-8"))
        mutate(data)
        path.write_text(json.dumps(data), encoding="utf-8")

    return _break


@pytest.mark.config
class TestPackagedTables:
    def test_states_keyed_by_code_in_display_order(self):
        states = reference_loader.load_states()

        assert len(states) == len(StateCode) == 56
        assert list(states)[0] == StateCode.AL
        assert states[StateCode.DC].name == "District of Columbia"

    def test_zip_prefix_values_are_state_codes(self):
        table = reference_loader.load_zip_prefix_table()

        assert table["100"] is StateCode.NY
        assert all(len(prefix) == 3 for prefix in table)

    def test_profiles(self):
        profiles = reference_loader.load_jurisdiction_profiles()

        assert set(profiles) == {
            StateCode.CA, StateCode.NY, StateCode.DE, StateCode.TX,
            StateCode.FL, StateCode.NV, StateCode.WY,
        }
        assert profiles[StateCode.NY].state_code == StateCode.NY

    def test_every_business_type_present(self):
        entries = reference_loader.load_business_types()

        assert set(entries) == set(BusinessType)
        assert entries[BusinessType.OTHER].label == "Other"

    def test_small_tables(self):
        assert len(reference_loader.load_bank_catalog()) == 10
        assert len(reference_loader.load_ein_options().entity_types) == 8
        assert [m.key for m in reference_loader.load_suite_modules()] == ["ein", "llc", "licenses", "banking"]
        assert reference_loader.load_state_registration().license_link_template == "https://{state}.gov/business-licenses"

    def test_tables_are_cached(self):
        assert reference_loader.load_states() is reference_loader.load_states()

        first = reference_loader.load_bank_catalog()
        reference_loader.clear_reference_cache()

        assert reference_loader.load_bank_catalog() is not first


@pytest.mark.config
class TestBrokenTables:
    def test_unknown_state_in_prefix_table(self, broken_config):
        broken_config("zip_prefixes", lambda data: data["prefixes"].update({"001": "XX"}))

        with pytest.raises(ReferenceDataError, match="Unknown state code 'XX'"):
            reference_loader.load_zip_prefix_table()

    def test_missing_state(self, broken_config):
        broken_config("us_states", lambda data: data.update(states=data["states"][:-1]))

        with pytest.raises(ReferenceDataError, match="missing codes"):
            reference_loader.load_states()

    def test_missing_business_type(self, broken_config):
        broken_config("business_types", lambda data: data["business_types"].pop("fitness"))

        with pytest.raises(ReferenceDataError, match="fitness"):
            reference_loader.load_business_types()

    def test_invalid_profile(self, broken_config):
        broken_config("jurisdiction_profiles", lambda data: data["profiles"]["CA"].pop("filing_fee"))

        with pytest.raises(ReferenceDataError, match="CA"):
            reference_loader.load_jurisdiction_profiles()
