"""
Integration test fixtures

Fixtures for integration tests that drive the FastAPI app over HTTP.
The app lifespan is not run: drafts live in memory and saved applications
go to an in-memory gateway wired in by the `forms_backend` fixture.
"""

import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from formation_suite.database.form_session_storage import init_form_session_storage
from formation_suite.services.forms import init_form_registry


@pytest.fixture
def forms_backend(gateway, license_provider, bank_provider):
    """Initialize global draft storage and controllers for the app"""
    init_form_session_storage(None, ttl=300)
    return init_form_registry(
        gateway=gateway,
        license_provider=license_provider,
        bank_provider=bank_provider,
    )


@pytest_asyncio.fixture
async def api_client(forms_backend):
    """
    HTTP client for API integration testing

    Usage:
        async def test_health_endpoint(api_client):
            response = await api_client.get("/health")
            assert response.status_code == 200
    """
    from formation_suite.main import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
def user_headers():
    """Headers of an authenticated user with a unique id"""
    return {"X-User-Id": f"user-{uuid.uuid4().hex[:12]}"}


@pytest_asyncio.fixture
async def llc_session(api_client):
    """Create an anonymous LLC draft and return its session_id"""
    response = await api_client.post("/api/v1/forms/llc/sessions", json={})
    assert response.status_code == 200
    return response.json()["session_id"]
