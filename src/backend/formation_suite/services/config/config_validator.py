"""
Configuration Validator Service
Validates reference tables against JSON schemas and performs cross-file consistency checks
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Tuple, Any, Optional
from jsonschema import validate, ValidationError, SchemaError
from dataclasses import dataclass

from ...models.applications import FormKind
from ...models.reference import BusinessType, StateCode

logger = logging.getLogger(__name__)

# Config files that ship with a schema in config/schemas
SCHEMA_CONFIGS = [
    "us_states",
    "zip_prefixes",
    "jurisdiction_profiles",
    "business_types",
    "state_registration",
    "bank_catalog",
    "ein_options",
    "suite_modules",
    "notifications",
    "search_config",
    "cache_config",
]

# Events every worksheet must be able to report
_REQUIRED_FORM_NOTIFICATIONS = ["auth_required", "saved", "save_failed"]
_REQUIRED_EVENT_NOTIFICATIONS = [
    "state_detected",
    "search_failed",
    "licenses.missing_information",
    "licenses.found",
    "banking.invalid_zip",
    "banking.found",
]


@dataclass
class ValidationResult:
    """Result of a validation check"""
    is_valid: bool
    errors: List[str]
    warnings: List[str]
    config_name: str

    def add_error(self, error: str):
        """Add an error message"""
        self.errors.append(error)
        self.is_valid = False

    def add_warning(self, warning: str):
        """Add a warning message"""
        self.warnings.append(warning)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses"""
        return {
            "config_name": self.config_name,
            "is_valid": self.is_valid,
            "errors": self.errors,
            "warnings": self.warnings,
            "error_count": len(self.errors),
            "warning_count": len(self.warnings)
        }


@dataclass
class ValidationReport:
    """Complete validation report for all configs"""
    results: List[ValidationResult]
    overall_valid: bool
    timestamp: str

    @classmethod
    def create(cls, results: List[ValidationResult]):
        """Create report from results"""
        return cls(
            results=results,
            overall_valid=all(r.is_valid for r in results),
            timestamp=datetime.now(timezone.utc).isoformat()
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "overall_valid": self.overall_valid,
            "timestamp": self.timestamp,
            "total_configs": len(self.results),
            "valid_configs": sum(1 for r in self.results if r.is_valid),
            "invalid_configs": sum(1 for r in self.results if not r.is_valid),
            "total_errors": sum(len(r.errors) for r in self.results),
            "total_warnings": sum(len(r.warnings) for r in self.results),
            "results": [r.to_dict() for r in self.results]
        }


def _new_result(config_name: str) -> ValidationResult:
    return ValidationResult(is_valid=True, errors=[], warnings=[], config_name=config_name)


class ConfigValidator:
    """
    Configuration validator with JSON schema validation and consistency checks
    """

    def __init__(self, config_dir: Optional[Path] = None, schema_dir: Optional[Path] = None):
        """
        Initialize validator

        Args:
            config_dir: Path to config directory (defaults to formation_suite/config)
            schema_dir: Path to schema directory (defaults to <config_dir>/schemas)
        """
        if config_dir is None:
            config_dir = Path(__file__).parent.parent.parent / "config"
        if schema_dir is None:
            schema_dir = Path(config_dir) / "schemas"

        self.config_dir = Path(config_dir)
        self.schema_dir = Path(schema_dir)

        self._schema_cache: Dict[str, Dict[str, Any]] = {}

        logger.info(f"ConfigValidator initialized - config_dir: {self.config_dir}, schema_dir: {self.schema_dir}")

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Load JSON schema from schemas directory

        Args:
            schema_name: Name of schema file (without .schema.json extension)

        Returns:
            Schema dictionary

        Raises:
            FileNotFoundError: If schema file doesn't exist
            json.JSONDecodeError: If schema is invalid JSON
        """
        if schema_name in self._schema_cache:
            return self._schema_cache[schema_name]

        schema_path = self.schema_dir / f"{schema_name}.schema.json"

        if not schema_path.exists():
            raise FileNotFoundError(f"Schema file not found: {schema_path}")

        with open(schema_path, "r", encoding="utf-8") as f:
            schema = json.load(f)

        self._schema_cache[schema_name] = schema
        logger.debug(f"Loaded schema: {schema_name}")

        return schema

    def load_config(self, config_name: str) -> Dict[str, Any]:
        """
        Load configuration file

        Raises:
            FileNotFoundError: If config file doesn't exist
            json.JSONDecodeError: If config is invalid JSON
        """
        config_path = self.config_dir / f"{config_name}.json"

        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, "r", encoding="utf-8") as f:
            config = json.load(f)

        return config

    def validate_config_schema(self, config_name: str, schema_name: Optional[str] = None) -> ValidationResult:
        """
        Validate config file against its JSON schema

        Args:
            config_name: Name of config file to validate
            schema_name: Name of schema (defaults to config_name)

        Returns:
            ValidationResult with errors and warnings
        """
        if schema_name is None:
            schema_name = config_name

        result = _new_result(config_name)

        try:
            config = self.load_config(config_name)
            schema = self.load_schema(schema_name)

            validate(instance=config, schema=schema)

            logger.info(f"✓ Config '{config_name}' passed schema validation")

        except FileNotFoundError as e:
            result.add_error(f"File not found: {str(e)}")
        except json.JSONDecodeError as e:
            result.add_error(f"Invalid JSON: {str(e)}")
        except ValidationError as e:
            result.add_error(f"Schema validation failed: {e.message}")
            if e.path:
                result.add_error(f"  Path: {'.'.join(str(p) for p in e.path)}")
        except SchemaError as e:
            result.add_error(f"Invalid schema: {str(e)}")
        except Exception as e:
            result.add_error(f"Unexpected error: {str(e)}")

        return result

    def validate_jurisdiction_consistency(self) -> ValidationResult:
        """
        Validate the state-keyed tables against the StateCode enum

        Checks:
        - us_states lists every StateCode exactly once and nothing else
        - Every ZIP prefix maps to a known state code
        - Every profile key is a known state code
        - Every profile carries at least one special requirement
        - Every profiled state is reachable from at least one ZIP prefix (warning)
        """
        result = _new_result("jurisdiction_consistency")

        try:
            states = self.load_config("us_states").get("states", [])
            prefixes = self.load_config("zip_prefixes").get("prefixes", {})
            profiles = self.load_config("jurisdiction_profiles").get("profiles", {})

            valid_codes = {code.value for code in StateCode}

            # Check 1: state list matches the enum
            listed = [entry.get("code") for entry in states]
            for code in listed:
                if code not in valid_codes:
                    result.add_error(f"State '{code}' in us_states.json is not a known state code")
            duplicates = {code for code in listed if listed.count(code) > 1}
            for code in sorted(duplicates):
                result.add_error(f"State '{code}' listed more than once in us_states.json")
            for code in sorted(valid_codes - set(listed)):
                result.add_error(f"State code '{code}' missing from us_states.json")

            # Check 2: ZIP prefixes point at known states
            for prefix, code in prefixes.items():
                if code not in valid_codes:
                    result.add_error(f"ZIP prefix '{prefix}' maps to unknown state '{code}'")

            # Check 3 and 4: profiles keyed by known states with special requirements
            for code, profile in profiles.items():
                if code not in valid_codes:
                    result.add_error(f"Jurisdiction profile '{code}' is not a known state code")
                if not profile.get("special_requirements"):
                    result.add_error(f"Jurisdiction profile '{code}' has no special requirements")

            # Check 5: profiled states should be detectable
            detectable = set(prefixes.values())
            for code in profiles:
                if code not in detectable:
                    result.add_warning(
                        f"Jurisdiction profile '{code}' is not reachable from any ZIP prefix"
                    )

            if result.is_valid:
                logger.info("✓ Jurisdiction consistency validation passed")

        except Exception as e:
            result.add_error(f"Consistency check failed: {str(e)}")

        return result

    def validate_license_catalog(self) -> ValidationResult:
        """
        Validate business types against the BusinessType enum

        Checks:
        - Every BusinessType has an entry and no extra keys exist
        - The fallback category contains "Business License"
        """
        result = _new_result("license_catalog")

        try:
            business_types = self.load_config("business_types").get("business_types", {})
            valid_keys = {key.value for key in BusinessType}

            for key in business_types:
                if key not in valid_keys:
                    result.add_error(f"Business type '{key}' is not a known category")
            for key in sorted(valid_keys - set(business_types)):
                result.add_error(f"Business type '{key}' missing from business_types.json")

            fallback = business_types.get(BusinessType.OTHER.value, {})
            if "Business License" not in fallback.get("licenses", []):
                result.add_error("Fallback business type 'other' must include 'Business License'")

            if result.is_valid:
                logger.info("✓ License catalog validation passed")

        except Exception as e:
            result.add_error(f"License catalog check failed: {str(e)}")

        return result

    def validate_notification_catalog(self) -> ValidationResult:
        """
        Validate that every form event has a notification template

        Checks:
        - auth_required, saved and save_failed exist for every form kind
        - Detection and search notifications exist
        """
        result = _new_result("notification_catalog")

        try:
            notifications = self.load_config("notifications").get("notifications", {})

            required = list(_REQUIRED_EVENT_NOTIFICATIONS)
            for form_kind in FormKind:
                required.extend(f"{form_kind.value}.{event}" for event in _REQUIRED_FORM_NOTIFICATIONS)

            for key in required:
                if key not in notifications:
                    result.add_error(f"Notification '{key}' missing from notifications.json")

            if result.is_valid:
                logger.info("✓ Notification catalog validation passed")

        except Exception as e:
            result.add_error(f"Notification catalog check failed: {str(e)}")

        return result

    def validate_all(self) -> ValidationReport:
        """
        Run all validations and generate comprehensive report

        Returns:
            ValidationReport with all results
        """
        logger.info("Starting comprehensive configuration validation...")

        results = [self.validate_config_schema(name) for name in SCHEMA_CONFIGS]

        results.append(self.validate_jurisdiction_consistency())
        results.append(self.validate_license_catalog())
        results.append(self.validate_notification_catalog())

        report = ValidationReport.create(results)

        if report.overall_valid:
            logger.info("✅ All configuration validations passed")
        else:
            logger.error(f"❌ Configuration validation failed with {report.to_dict()['total_errors']} errors")

        return report

    def generate_validation_report(self) -> Dict[str, Any]:
        """Generate validation report as dictionary"""
        report = self.validate_all()
        return report.to_dict()


# Singleton instance
_validator: Optional[ConfigValidator] = None


def get_validator() -> ConfigValidator:
    """Get singleton validator instance"""
    global _validator
    if _validator is None:
        _validator = ConfigValidator()
    return _validator


def validate_configs_on_startup() -> Tuple[bool, Dict[str, Any]]:
    """
    Validate all configs on application startup

    Returns:
        Tuple of (is_valid, report_dict)

    Raises:
        RuntimeError: If validation itself crashes
    """
    try:
        validator = get_validator()
        report = validator.validate_all()

        if not report.overall_valid:
            logger.error("Configuration validation failed on startup")
            logger.error(f"Report: {json.dumps(report.to_dict(), indent=2)}")

        return report.overall_valid, report.to_dict()

    except Exception as e:
        logger.exception(f"Fatal error during startup validation: {e}")
        raise RuntimeError(f"Configuration validation failed: {str(e)}")
