"""
Connection managers for the two backing stores.

Redis holds draft form sessions; PostgreSQL holds saved worksheets. Both are
optional: the lifespan in main.py falls back to in-memory stores when a
manager is disabled or cannot connect.
"""

import logging
import os
from typing import Optional
from urllib.parse import urlsplit

from redis.asyncio import Redis
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

logger = logging.getLogger(__name__)


def _env_flag(name: str, default: str = "true") -> bool:
    return os.getenv(name, default).lower() == "true"


class Base(DeclarativeBase):
    """Declarative base for the saved application tables."""


class RedisManager:
    """Async Redis client for draft sessions (REDIS_URL, or REDIS_HOST/PORT/DB/PASSWORD)."""

    def __init__(self):
        self.enabled = _env_flag("ENABLE_REDIS_CACHING")
        self.redis_url = os.getenv("REDIS_URL") or None
        self.redis_host = os.getenv("REDIS_HOST", "localhost")
        self.redis_port = int(os.getenv("REDIS_PORT", "6379"))
        self.redis_db = int(os.getenv("REDIS_DB", "0"))
        self.redis_password = os.getenv("REDIS_PASSWORD") or None

        self.client: Optional[Redis] = None

    @property
    def is_connected(self) -> bool:
        return self.client is not None

    @property
    def target(self) -> str:
        """Connection target for logs, without credentials."""
        if self.redis_url:
            parts = urlsplit(self.redis_url)
            return f"{parts.hostname}:{parts.port or 6379}{parts.path or '/0'}"
        return f"{self.redis_host}:{self.redis_port}/{self.redis_db}"

    def _build_client(self) -> Redis:
        if self.redis_url:
            return Redis.from_url(self.redis_url, decode_responses=True, encoding="utf-8")
        return Redis(
            host=self.redis_host,
            port=self.redis_port,
            db=self.redis_db,
            password=self.redis_password,
            decode_responses=True,
            encoding="utf-8",
        )

    async def connect(self) -> Redis:
        """
        Open and ping the client; repeated calls return the same client.

        Raises:
            redis.exceptions.RedisError: If the server cannot be reached
        """
        if self.client is not None:
            return self.client

        client = self._build_client()
        try:
            await client.ping()
        except Exception as e:
            logger.error(f"Redis connection to {self.target} failed: {e}")
            await client.aclose()
            raise

        self.client = client
        logger.info(f"Redis connected: {self.target}")
        return client

    async def close(self):
        if self.client is None:
            return
        await self.client.aclose()
        self.client = None
        logger.info("Redis connection closed")


class PostgreSQLManager:
    """
    Async engine and session factory for saved worksheets.

    DATABASE_URL wins over the POSTGRES_* parts. A plain postgresql:// URL is
    switched to the asyncpg driver.
    """

    def __init__(self):
        self.enabled = _env_flag("ENABLE_POSTGRES")
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker] = None

    @property
    def is_connected(self) -> bool:
        return self.session_factory is not None

    @property
    def database_url(self) -> str:
        url = os.getenv("DATABASE_URL")
        if url:
            if url.startswith("postgresql://"):
                url = "postgresql+asyncpg://" + url[len("postgresql://"):]
            return url

        return (
            f"postgresql+asyncpg://{os.getenv('POSTGRES_USER', 'postgres')}:"
            f"{os.getenv('POSTGRES_PASSWORD', 'postgres')}@"
            f"{os.getenv('POSTGRES_HOST', 'localhost')}:"
            f"{os.getenv('POSTGRES_PORT', '5432')}/"
            f"{os.getenv('POSTGRES_DB', 'formation_suite')}"
        )

    async def connect(self) -> async_sessionmaker:
        """
        Create the engine, make sure the application tables exist and return
        the session factory.
        """
        if self.session_factory is not None:
            return self.session_factory

        url = make_url(self.database_url)
        engine = create_async_engine(url, echo=False, poolclass=NullPool)
        try:
            await self.create_tables(engine)
        except Exception:
            await engine.dispose()
            raise

        self.engine = engine
        self.session_factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
        logger.info(f"PostgreSQL connected: {url.render_as_string(hide_password=True)}")
        return self.session_factory

    @staticmethod
    async def create_tables(engine: AsyncEngine):
        """Create the four application tables if they do not exist."""
        # Registers the ORM tables on Base.metadata
        from . import application_store  # noqa: F401

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self):
        if self.engine is None:
            return
        await self.engine.dispose()
        self.engine = None
        self.session_factory = None
        logger.info("PostgreSQL engine disposed")


# Global manager instances
redis_manager = RedisManager()
postgresql_manager = PostgreSQLManager()
