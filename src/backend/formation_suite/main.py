"""
Business Formation Suite
FastAPI Application Entry Point
"""

import logging
import logging.handlers
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path

import structlog
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .api.v1.forms import get_form_registry_dep, router as forms_router
from .api.v1.health import router as health_router
from .api.v1.reference import router as reference_router
from .config.reference_loader import (
    load_business_types,
    load_jurisdiction_profiles,
    load_notification_templates,
    load_states,
    load_zip_prefix_table,
)
from .database.application_store import create_application_gateway
from .database.database import postgresql_manager, redis_manager
from .database.form_session_storage import (
    InMemoryFormSessionStorage,
    get_form_session_storage,
    init_form_session_storage,
)
from .middleware import LoggingMiddleware, SessionContextMiddleware
from .services.config.config_monitor import init_config_monitor
from .services.config.config_validator import validate_configs_on_startup
from .services.config.configuration_service import get_config_service
from .services.forms import FormControllerRegistry, get_form_registry, init_form_registry
from .utils.logging_context import log_context

# Load environment variables
load_dotenv()


def configure_logging():
    """
    Configure structured logging using structlog.

    - Production (ENV=production): JSON output for log aggregation
    - Development (ENV=development): Human-readable console output
    - Includes automatic context: timestamp, level, logger name, correlation_id,
      session_id, form_kind, user_id
    """
    env = os.getenv("ENV", "development").lower()
    log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    timestamper = structlog.processors.TimeStamper(fmt="iso")

    shared_processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.contextvars.merge_contextvars,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        timestamper,
    ]

    if env == "production":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.plain_traceback
        )

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    # Project root is three levels up from src/backend/formation_suite/main.py
    project_root = Path(__file__).resolve().parent.parent.parent.parent
    default_log_path = project_root / "logs" / "formation-suite.log"
    log_file_path = str(Path(os.getenv("LOG_FILE_PATH", str(default_log_path))).resolve())

    log_dir = os.path.dirname(log_file_path)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)

    file_handler = logging.handlers.RotatingFileHandler(
        filename=log_file_path,
        maxBytes=10 * 1024 * 1024,  # 10MB per file
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.addHandler(stdout_handler)
    root_logger.addHandler(file_handler)
    root_logger.setLevel(log_level)

    # Reduce noise from verbose libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return structlog.get_logger(__name__)


logger = configure_logging()


def load_reference_tables():
    """
    Validate and load every reference table.

    Raises:
        RuntimeError: If schema or consistency validation fails
        ReferenceDataError: If a table cannot be parsed into its typed shape
    """
    is_valid, report = validate_configs_on_startup()
    if not is_valid:
        raise RuntimeError(
            f"Reference data validation failed: {report['total_errors']} errors"
        )

    load_states()
    load_zip_prefix_table()
    load_jurisdiction_profiles()
    load_business_types()
    load_notification_templates()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - startup and shutdown"""

    logger.info("Starting Business Formation Suite...")
    config_service = get_config_service()
    session_ttl = config_service.get_session_ttl()

    with log_context(phase="startup"):
        logger.info("Validating reference data...")
        load_reference_tables()
        logger.info("✓ Reference data validated")

        try:
            init_config_monitor()
            logger.info("✓ Configuration monitor initialized")
        except Exception as e:
            logger.warning(f"Config monitor initialization failed: {e}")

        redis_client = None

        if redis_manager.enabled:
            try:
                redis_client = await redis_manager.connect()
                logger.info("✓ Redis initialized")
            except Exception as e:
                logger.warning(f"Redis initialization failed: {e}. Continuing with in-memory drafts.")
        else:
            logger.info("Redis disabled via ENABLE_REDIS_CACHING=false")

        storage = init_form_session_storage(
            redis_client,
            ttl=session_ttl,
            namespace=config_service.get_session_namespace(),
        )
        if isinstance(storage, InMemoryFormSessionStorage):
            storage.start_cleanup_loop()
            logger.info("✓ In-memory session storage initialized (no persistence across restarts)")
        else:
            logger.info("✓ Redis session storage initialized")

        session_factory = None
        if postgresql_manager.enabled:
            try:
                session_factory = await postgresql_manager.connect()
                logger.info("✓ PostgreSQL initialized, application tables created/verified")
            except Exception as e:
                logger.warning(f"PostgreSQL initialization failed: {e}. Saved applications kept in memory.")
        else:
            logger.info("PostgreSQL disabled via ENABLE_POSTGRES=false")

        init_form_registry(gateway=create_application_gateway(session_factory))
        logger.info("✓ Form controllers initialized")

    yield

    logger.info("Shutting down Business Formation Suite...")

    storage = get_form_session_storage()
    if isinstance(storage, InMemoryFormSessionStorage):
        await storage.stop_cleanup_loop()
        logger.info("✓ Session storage cleanup task stopped")

    try:
        await redis_manager.close()
        logger.info("✓ Redis closed")
    except Exception as e:
        logger.error(f"Error closing Redis: {e}")

    try:
        await postgresql_manager.close()
        logger.info("✓ PostgreSQL closed")
    except Exception as e:
        logger.error(f"Error closing PostgreSQL: {e}")

    logger.info("Shutdown complete")


app = FastAPI(
    title="Business Formation Suite",
    description="EIN, LLC formation, business license and banking worksheets with state-aware requirements",
    version=__version__,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Update for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Middleware is executed in reverse order of addition:
# LoggingMiddleware clears and binds the request context, then SessionContextMiddleware adds to it
app.add_middleware(SessionContextMiddleware)
app.add_middleware(LoggingMiddleware)


def get_registry() -> FormControllerRegistry:
    """Get the form controller registry for dependency injection"""
    return get_form_registry()


app.include_router(forms_router)
app.include_router(reference_router)
app.include_router(health_router)

# Override dependency in app (not router)
app.dependency_overrides[get_form_registry_dep] = get_registry


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": "Business Formation Suite",
        "version": __version__,
        "endpoints": {
            "forms": "/api/v1/forms/{form_kind}/sessions",
            "reference": "/api/v1/reference",
            "docs": "/docs"
        }
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    session_storage = get_form_session_storage()
    storage_type = "in-memory" if isinstance(session_storage, InMemoryFormSessionStorage) else "redis"
    gateway = get_form_registry().gateway

    return {
        "status": "healthy",
        "services": {
            "redis": redis_manager.is_connected,
            "postgresql": postgresql_manager.is_connected,
        },
        "session_storage": {
            "type": storage_type,
            "ttl_seconds": get_config_service().get_session_ttl(),
            "persistent": storage_type == "redis",
        },
        "application_store": gateway.get_name(),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "formation_suite.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
