"""
Integration tests for the reference table API
"""

import pytest

REFERENCE = "/api/v1/reference"


@pytest.mark.integration
class TestReferenceAPI:
    @pytest.mark.asyncio
    async def test_states(self, api_client):
        response = await api_client.get(f"{REFERENCE}/states")

        states = response.json()
        assert response.status_code == 200
        assert len(states) == 56
        assert states[0] == {"code": "AL", "name": "Alabama"}

    @pytest.mark.asyncio
    async def test_business_types(self, api_client):
        response = await api_client.get(f"{REFERENCE}/business-types")

        entries = {entry["key"]: entry for entry in response.json()}
        assert entries["restaurant"]["label"] == "Restaurant/Food Service"
        assert entries["restaurant"]["licenses"][0] == "Food Service License"
        assert "other" in entries

    @pytest.mark.asyncio
    async def test_license_checklist_falls_back_to_other(self, api_client):
        known = await api_client.get(f"{REFERENCE}/business-types/retail/licenses")
        unknown = await api_client.get(f"{REFERENCE}/business-types/space-tourism/licenses")
        other = await api_client.get(f"{REFERENCE}/business-types/other/licenses")

        assert known.json() == ["Business License", "Sales Tax Permit", "Signage Permit"]
        assert unknown.json() == other.json()
        assert "Business License" in unknown.json()

    @pytest.mark.asyncio
    async def test_ein_options(self, api_client):
        data = (await api_client.get(f"{REFERENCE}/ein-options")).json()

        assert "LLC" in data["entity_types"]
        assert data["irs_application_url"].startswith("https://www.irs.gov/")

    @pytest.mark.asyncio
    async def test_jurisdictions(self, api_client):
        profiles = (await api_client.get(f"{REFERENCE}/jurisdictions")).json()

        assert {profile["state_code"] for profile in profiles} == {"CA", "NY", "DE", "TX", "FL", "NV", "WY"}

    @pytest.mark.asyncio
    async def test_single_jurisdiction(self, api_client):
        response = await api_client.get(f"{REFERENCE}/jurisdictions/NY")

        profile = response.json()
        assert profile["publication_required"] is True
        assert profile["filing_fee"] == "$200 (Articles of Organization)"

    @pytest.mark.asyncio
    async def test_state_without_profile(self, api_client):
        assert (await api_client.get(f"{REFERENCE}/jurisdictions/MA")).status_code == 404
        assert (await api_client.get(f"{REFERENCE}/jurisdictions/ZZ")).status_code == 404

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "zip_code,state_code,has_profile",
        [
            ("90210", "CA", True),
            ("10001", "NY", True),
            ("02108", "MA", False),
        ],
    )
    async def test_zip_resolution(self, api_client, zip_code, state_code, has_profile):
        data = (await api_client.get(f"{REFERENCE}/zip/{zip_code}")).json()

        assert data["zip_code"] == zip_code
        assert data["state_code"] == state_code
        assert (data["profile"] is not None) is has_profile

    @pytest.mark.asyncio
    async def test_unknown_zip(self, api_client):
        response = await api_client.get(f"{REFERENCE}/zip/99999")

        assert response.status_code == 200
        assert response.json() == {"zip_code": "99999", "state_code": None, "state_name": None, "profile": None}

    @pytest.mark.asyncio
    async def test_modules_in_order(self, api_client):
        modules = (await api_client.get(f"{REFERENCE}/modules")).json()

        assert [module["key"] for module in modules] == ["ein", "llc", "licenses", "banking"]
        assert modules[1]["path"] == "/llc-application"
