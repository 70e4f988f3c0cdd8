"""
Health Check API Endpoints for Reference Data Validation
GET /api/v1/health/config - Overall reference table health
GET /api/v1/health/config/consistency - Cross-table consistency checks
GET /api/v1/health/config/validation/full - Comprehensive validation
GET /api/v1/health/config/{config_name} - Specific table health
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from ...services.config.config_monitor import SystemHealth, get_config_monitor
from ...services.config.config_validator import SCHEMA_CONFIGS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/health", tags=["Health"])


class ConfigHealthResponse(BaseModel):
    """Response model for config health check"""
    config_name: str
    status: str
    last_validated: str
    validation_errors: list
    validation_warnings: list
    file_size_bytes: Optional[int]
    last_modified: Optional[str]


class SystemHealthResponse(BaseModel):
    """Response model for system health check"""
    status: str
    configs: Dict[str, Dict[str, Any]]
    summary: Dict[str, int]
    last_check: str


def _system_response(system_health: SystemHealth) -> SystemHealthResponse:
    return SystemHealthResponse(
        status=system_health.status.value,
        configs={name: health.to_dict() for name, health in system_health.configs.items()},
        summary={
            "total_configs": system_health.total_configs,
            "healthy": system_health.healthy_configs,
            "warnings": system_health.warning_configs,
            "errors": system_health.error_configs
        },
        last_check=system_health.last_check.isoformat()
    )


@router.get("/config", response_model=SystemHealthResponse)
async def get_config_health():
    """
    Get overall reference table health status

    Example:
        GET /api/v1/health/config

        Response:
        {
            "status": "healthy",
            "configs": {
                "zip_prefixes": {"status": "healthy", ...},
                ...
            },
            "summary": {"total_configs": 11, "healthy": 11, "warnings": 0, "errors": 0},
            "last_check": "2026-01-28T10:30:00+00:00"
        }
    """
    try:
        return _system_response(get_config_monitor().validate_all_configs())

    except Exception as e:
        logger.error(f"Config health check failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Health check failed: {str(e)}"
        )


@router.get("/config/consistency")
async def get_consistency_check():
    """
    Check consistency between reference tables

    Validates:
    - Every ZIP prefix maps to a known state
    - Every jurisdiction profile belongs to a known state and lists special requirements
    - The business type table covers every category, with "Business License" under "other"
    - Every notification a form event can emit is in the catalog
    """
    try:
        checks = get_config_monitor().validate_consistency()

        return {
            name: {
                "status": health.status.value,
                "validation_errors": health.validation_errors,
                "validation_warnings": health.validation_warnings,
                "last_validated": health.last_validated.isoformat()
            }
            for name, health in checks.items()
        }

    except Exception as e:
        logger.error(f"Consistency check failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Consistency check failed: {str(e)}"
        )


@router.get("/config/validation/full", response_model=SystemHealthResponse)
async def get_comprehensive_health():
    """
    Get comprehensive health check: every table schema plus the consistency checks
    """
    try:
        return _system_response(get_config_monitor().get_comprehensive_health())

    except Exception as e:
        logger.error(f"Comprehensive health check failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Health check failed: {str(e)}"
        )


@router.get("/config/{config_name}", response_model=ConfigHealthResponse)
async def get_specific_config_health(config_name: str):
    """
    Get health status for a specific reference table

    Example:
        GET /api/v1/health/config/jurisdiction_profiles
    """
    try:
        if config_name not in SCHEMA_CONFIGS:
            raise HTTPException(
                status_code=404,
                detail=f"Config '{config_name}' not found. Allowed: {', '.join(SCHEMA_CONFIGS)}"
            )

        health = get_config_monitor().validate_config(config_name)

        return ConfigHealthResponse(
            config_name=health.config_name,
            status=health.status.value,
            last_validated=health.last_validated.isoformat(),
            validation_errors=health.validation_errors,
            validation_warnings=health.validation_warnings,
            file_size_bytes=health.file_size_bytes,
            last_modified=health.last_modified.isoformat() if health.last_modified else None
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Config health check failed for {config_name}: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Health check failed: {str(e)}"
        )


@router.post("/config/cache/clear")
async def clear_health_cache():
    """
    Clear health check cache

    Forces re-validation on next health check.
    """
    try:
        get_config_monitor().clear_cache()

        return {
            "message": "Health cache cleared successfully",
            "next_check_will_revalidate": True
        }

    except Exception as e:
        logger.error(f"Failed to clear cache: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Cache clear failed: {str(e)}"
        )
