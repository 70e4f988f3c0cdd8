"""
Unit test fixtures

Fixtures for unit tests that mock external dependencies.
Unit tests should be fast (< 100ms) and isolated.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from formation_suite.exceptions import PersistenceError


@pytest.fixture
def mock_db_session():
    """Mock SQLAlchemy AsyncSession returning no existing row"""
    session = AsyncMock()
    session.add = MagicMock()

    result = MagicMock()
    result.scalar_one_or_none.return_value = None
    session.execute.return_value = result
    return session


@pytest.fixture
def mock_session_factory(mock_db_session):
    """Mock async_sessionmaker yielding mock_db_session from `async with factory()`"""
    factory = MagicMock()
    factory.return_value.__aenter__.return_value = mock_db_session
    factory.return_value.__aexit__.return_value = False
    return factory


@pytest.fixture
def failing_gateway():
    """Application gateway whose saves always fail"""
    gateway = AsyncMock()
    gateway.upsert.side_effect = PersistenceError("connection refused")
    gateway.load_latest.return_value = None
    gateway.get_name = MagicMock(return_value="FailingGateway")
    return gateway
