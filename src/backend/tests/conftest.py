"""
Pytest configuration and shared fixtures
Provides common test fixtures for all test modules
"""

import os
import sys
import tempfile
from pathlib import Path

import pytest
import pytest_asyncio

# Add backend directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Searches answer immediately and drafts stay in memory unless a test opts in
os.environ["SEARCH_DELAY_SECONDS"] = "0"
os.environ["ENABLE_REDIS_CACHING"] = "false"
os.environ["ENABLE_POSTGRES"] = "false"
os.environ.setdefault("LOG_FILE_PATH", str(Path(tempfile.gettempdir()) / "formation-suite-tests.log"))

from fakeredis import aioredis as fakeredis_aioredis

from formation_suite.config.reference_loader import clear_reference_cache
from formation_suite.database import form_session_storage
from formation_suite.database.application_store import InMemoryApplicationGateway
from formation_suite.models.applications import FormKind
from formation_suite.models.form_session import FormSession
from formation_suite.services.config.config_monitor import clear_config_monitor
from formation_suite.services.forms import FormControllerRegistry, clear_form_registry
from formation_suite.services.search.providers import (
    StaticBankSearchProvider,
    StaticLicenseSearchProvider,
)


@pytest.fixture
def gateway():
    """Fresh in-memory application store"""
    return InMemoryApplicationGateway()


@pytest.fixture
def license_provider():
    return StaticLicenseSearchProvider({"latency_seconds": 0})


@pytest.fixture
def bank_provider():
    return StaticBankSearchProvider({"latency_seconds": 0, "max_results": 10})


@pytest.fixture
def registry(gateway, license_provider, bank_provider):
    """Controllers wired to the in-memory store and zero-latency providers"""
    return FormControllerRegistry(gateway, license_provider, bank_provider)


@pytest.fixture
def make_session():
    """
    Factory for draft sessions with default records

    Usage:
        def test_something(make_session):
            session = make_session(FormKind.LLC)
    """
    import uuid

    def _make(form_kind: FormKind, owner_user_id=None, **kwargs) -> FormSession:
        return FormSession(
            session_id=str(uuid.uuid4()),
            form_kind=form_kind,
            record={},
            owner_user_id=owner_user_id,
            **kwargs,
        )

    return _make


@pytest_asyncio.fixture
async def fake_redis_client():
    """Provide a fakeredis asyncio client for Redis-backed tests."""
    client = fakeredis_aioredis.FakeRedis(decode_responses=True)
    try:
        yield client
    finally:
        await client.flushall()
        await client.aclose()


@pytest_asyncio.fixture
async def redis_storage(fake_redis_client):
    """Patch global draft storage with a fakeredis-backed instance."""
    original_storage = form_session_storage._redis_session_storage
    original_memory = form_session_storage._in_memory_session_storage

    storage = form_session_storage.RedisFormSessionStorage(fake_redis_client, ttl=120)
    form_session_storage._redis_session_storage = storage
    form_session_storage._in_memory_session_storage = None

    try:
        yield storage
    finally:
        form_session_storage._redis_session_storage = original_storage
        form_session_storage._in_memory_session_storage = original_memory


# Pytest markers
def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "config: Configuration system tests")
    config.addinivalue_line("markers", "services: Service layer tests")


# Auto-use fixtures
@pytest.fixture(autouse=True)
def reset_singletons():
    """
    Reset singleton instances before each test
    Ensures test isolation
    """
    import formation_suite.services.config.config_validator as validator_module
    import formation_suite.services.config.configuration_service as config_module

    def _reset():
        config_module._config_service = None
        validator_module._validator = None
        clear_reference_cache()
        clear_config_monitor()
        clear_form_registry()
        form_session_storage.reset_form_session_storage()

    _reset()
    yield
    _reset()
