"""
Configuration Monitor Service
Provides runtime validation and health checks for the reference tables
"""

import logging
from typing import Callable, Dict, Any, Optional, List
from datetime import datetime, timezone
from pathlib import Path
from dataclasses import dataclass, field
from enum import Enum

from .config_validator import SCHEMA_CONFIGS, ValidationResult

logger = logging.getLogger(__name__)


class ConfigStatus(str, Enum):
    """Configuration health status"""
    HEALTHY = "healthy"
    WARNING = "warning"
    ERROR = "error"
    UNKNOWN = "unknown"


@dataclass
class ConfigHealth:
    """Health status for a configuration file or consistency check"""
    config_name: str
    status: ConfigStatus
    last_validated: datetime
    validation_errors: List[str] = field(default_factory=list)
    validation_warnings: List[str] = field(default_factory=list)
    file_size_bytes: Optional[int] = None
    last_modified: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses"""
        return {
            "config_name": self.config_name,
            "status": self.status.value,
            "last_validated": self.last_validated.isoformat(),
            "validation_errors": self.validation_errors,
            "validation_warnings": self.validation_warnings,
            "file_size_bytes": self.file_size_bytes,
            "last_modified": self.last_modified.isoformat() if self.last_modified else None
        }


@dataclass
class SystemHealth:
    """Overall system configuration health"""
    status: ConfigStatus
    configs: Dict[str, ConfigHealth]
    last_check: datetime

    @property
    def total_configs(self) -> int:
        return len(self.configs)

    @property
    def healthy_configs(self) -> int:
        return sum(1 for h in self.configs.values() if h.status == ConfigStatus.HEALTHY)

    @property
    def warning_configs(self) -> int:
        return sum(1 for h in self.configs.values() if h.status == ConfigStatus.WARNING)

    @property
    def error_configs(self) -> int:
        return sum(1 for h in self.configs.values() if h.status == ConfigStatus.ERROR)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses"""
        return {
            "status": self.status.value,
            "configs": {name: health.to_dict() for name, health in self.configs.items()},
            "summary": {
                "total_configs": self.total_configs,
                "healthy": self.healthy_configs,
                "warnings": self.warning_configs,
                "errors": self.error_configs
            },
            "last_check": self.last_check.isoformat()
        }


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _status_for(errors: List[str], warnings: List[str]) -> ConfigStatus:
    if errors:
        return ConfigStatus.ERROR
    if warnings:
        return ConfigStatus.WARNING
    return ConfigStatus.HEALTHY


def _overall_status(configs: Dict[str, ConfigHealth]) -> ConfigStatus:
    statuses = {h.status for h in configs.values()}
    if ConfigStatus.ERROR in statuses:
        return ConfigStatus.ERROR
    if ConfigStatus.WARNING in statuses:
        return ConfigStatus.WARNING
    return ConfigStatus.HEALTHY


class ConfigMonitor:
    """
    Configuration monitoring service

    Provides:
    - Runtime configuration validation
    - Health check reporting
    - Cached per-file health
    """

    def __init__(self, config_dir: Optional[Path] = None, validator=None):
        """
        Initialize configuration monitor

        Args:
            config_dir: Path to config directory (auto-detected if not provided)
            validator: ConfigValidator to use (defaults to the global validator)
        """
        if config_dir is None:
            config_dir = Path(__file__).parent.parent.parent / "config"

        self.config_dir = Path(config_dir)
        self._health_cache: Dict[str, ConfigHealth] = {}
        self._last_system_check: Optional[datetime] = None
        self._validator = validator

        logger.info(f"ConfigMonitor initialized for directory: {self.config_dir}")

    def _get_validator(self):
        """Lazy-load config validator"""
        if self._validator is None:
            from .config_validator import get_validator
            self._validator = get_validator()
        return self._validator

    def _get_config_file_info(self, config_name: str) -> Dict[str, Any]:
        """Get file information for a config"""
        config_path = self.config_dir / f"{config_name}.json"

        if not config_path.exists():
            return {"file_size_bytes": None, "last_modified": None}

        stat = config_path.stat()
        return {
            "file_size_bytes": stat.st_size,
            "last_modified": datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        }

    def _health_from_check(self, config_name: str, check: Callable[[], ValidationResult]) -> ConfigHealth:
        try:
            result = check()
            errors = list(result.errors)
            warnings = list(result.warnings)
        except Exception as e:
            logger.error(f"Validation failed for {config_name}: {e}", exc_info=True)
            errors = [f"Validation error: {str(e)}"]
            warnings = []

        return ConfigHealth(
            config_name=config_name,
            status=_status_for(errors, warnings),
            last_validated=_utc_now(),
            validation_errors=errors,
            validation_warnings=warnings,
        )

    def validate_config(self, config_name: str) -> ConfigHealth:
        """
        Validate a single configuration file

        Args:
            config_name: Name of config to validate (without .json extension)

        Returns:
            ConfigHealth status
        """
        validator = self._get_validator()
        health = self._health_from_check(
            config_name, lambda: validator.validate_config_schema(config_name)
        )

        file_info = self._get_config_file_info(config_name)
        health.file_size_bytes = file_info["file_size_bytes"]
        health.last_modified = file_info["last_modified"]

        self._health_cache[config_name] = health
        return health

    def validate_all_configs(self) -> SystemHealth:
        """
        Validate all configuration files that ship with a schema

        Returns:
            SystemHealth with status for all configs
        """
        logger.info("Running full configuration validation")

        health_map = {name: self.validate_config(name) for name in SCHEMA_CONFIGS}
        system_health = SystemHealth(
            status=_overall_status(health_map),
            configs=health_map,
            last_check=_utc_now(),
        )
        self._last_system_check = system_health.last_check

        logger.info(
            f"Configuration validation complete: "
            f"{system_health.healthy_configs}/{system_health.total_configs} healthy, "
            f"{system_health.warning_configs} warnings, {system_health.error_configs} errors"
        )

        return system_health

    def validate_consistency(self) -> Dict[str, ConfigHealth]:
        """
        Run the cross-table consistency checks

        Returns:
            ConfigHealth per check name
        """
        validator = self._get_validator()
        checks = {
            "jurisdiction_consistency": validator.validate_jurisdiction_consistency,
            "license_catalog": validator.validate_license_catalog,
            "notification_catalog": validator.validate_notification_catalog,
        }
        return {name: self._health_from_check(name, check) for name, check in checks.items()}

    def get_comprehensive_health(self) -> SystemHealth:
        """
        Get comprehensive health check including consistency checks

        Returns:
            SystemHealth with all checks
        """
        system_health = self.validate_all_configs()
        system_health.configs.update(self.validate_consistency())
        system_health.status = _overall_status(system_health.configs)
        return system_health

    def get_cached_health(self, config_name: str) -> Optional[ConfigHealth]:
        """Get cached health status (no validation)"""
        return self._health_cache.get(config_name)

    def clear_cache(self):
        """Clear health cache (force re-validation on next check)"""
        self._health_cache.clear()
        self._last_system_check = None
        logger.debug("Health cache cleared")


# Singleton instance
_monitor: Optional[ConfigMonitor] = None


def get_config_monitor() -> ConfigMonitor:
    """Get singleton config monitor instance"""
    global _monitor

    if _monitor is None:
        _monitor = ConfigMonitor()

    return _monitor


def init_config_monitor(config_dir: Optional[Path] = None) -> ConfigMonitor:
    """
    Initialize config monitor

    Args:
        config_dir: Path to config directory (optional)

    Returns:
        Initialized ConfigMonitor
    """
    global _monitor

    if _monitor is not None:
        logger.debug("ConfigMonitor already initialized")
        return _monitor

    _monitor = ConfigMonitor(config_dir)
    logger.info("[OK] ConfigMonitor initialized")

    return _monitor


def clear_config_monitor():
    """Clear monitor singleton (useful for testing)"""
    global _monitor
    _monitor = None
    logger.debug("ConfigMonitor singleton cleared")
