"""
Configuration Service
Centralized configuration management with caching and validation
"""

import json
import os
from functools import lru_cache
from typing import Dict, List, Any, Optional
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class ConfigurationService:
    """
    Centralized service for loading and caching application configurations

    Loads the reference tables and tunables from JSON files in the config
    directory with:
    - LRU caching for performance
    - Error handling
    - Hot-reload capability
    """

    def __init__(self, config_dir: Optional[str] = None):
        """
        Initialize ConfigurationService

        Args:
            config_dir: Path to configuration directory. If None, uses the packaged formation_suite/config
        """
        if config_dir is None:
            self.config_dir = Path(__file__).parent.parent.parent / "config"
        else:
            self.config_dir = Path(config_dir)

        logger.info(f"ConfigurationService initialized with config_dir: {self.config_dir}")

    @lru_cache(maxsize=32)
    def load_config(self, config_name: str) -> Dict[str, Any]:
        """
        Load configuration from JSON file with caching

        Args:
            config_name: Name of config file (without .json extension)

        Returns:
            Dict containing configuration data

        Raises:
            FileNotFoundError: If config file not found
            json.JSONDecodeError: If config file is invalid JSON
        """
        try:
            config_path = self.config_dir / f"{config_name}.json"

            if not config_path.exists():
                raise FileNotFoundError(f"Config file not found: {config_path}")

            with open(config_path, "r", encoding="utf-8") as f:
                config = json.load(f)

            logger.info(f"Loaded config: {config_name} (version: {config.get('version', 'N/A')})")
            return config

        except FileNotFoundError:
            logger.error(f"Config file not found: {config_name}.json")
            raise
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in {config_name}.json: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to load config {config_name}: {e}")
            raise

    def reload_config(self, config_name: str) -> Dict[str, Any]:
        """
        Force reload of configuration (clears cache)

        Args:
            config_name: Name of config file to reload

        Returns:
            Freshly loaded configuration
        """
        self.load_config.cache_clear()
        logger.info(f"Cache cleared, reloading config: {config_name}")
        return self.load_config(config_name)

    def get_states(self) -> List[Dict[str, str]]:
        """Get the selectable states as code/name dicts"""
        return self.load_config("us_states").get("states", [])

    def get_zip_prefixes(self) -> Dict[str, str]:
        """Get the ZIP prefix → state code table"""
        return self.load_config("zip_prefixes").get("prefixes", {})

    def get_jurisdiction_profiles(self) -> Dict[str, Dict[str, Any]]:
        """Get raw jurisdiction profiles keyed by state code"""
        return self.load_config("jurisdiction_profiles").get("profiles", {})

    def get_business_types(self) -> Dict[str, Dict[str, Any]]:
        """Get business categories with their license lists"""
        return self.load_config("business_types").get("business_types", {})

    def get_state_registration(self) -> Dict[str, Any]:
        """Get state registration items, permit steps and the license link template"""
        return self.load_config("state_registration")

    def get_bank_catalog(self) -> List[Dict[str, Any]]:
        """Get the static bank catalog"""
        return self.load_config("bank_catalog").get("banks", [])

    def get_ein_options(self) -> Dict[str, Any]:
        return self.load_config("ein_options")

    def get_suite_modules(self) -> List[Dict[str, Any]]:
        return self.load_config("suite_modules").get("modules", [])

    def get_notification_templates(self) -> Dict[str, Dict[str, Any]]:
        """Get notification templates keyed by event name"""
        return self.load_config("notifications").get("notifications", {})

    def get_search_config(self) -> Dict[str, Any]:
        """Get search provider configuration"""
        return self.load_config("search_config")

    def get_provider_config(self, provider_key: str) -> Dict[str, Any]:
        """
        Get configuration for one search provider

        SEARCH_DELAY_SECONDS overrides the configured latency of every provider.

        Args:
            provider_key: "licenses" or "banking"

        Returns:
            Provider configuration dict (empty if not configured)
        """
        provider_config = dict(
            self.get_search_config().get("providers", {}).get(provider_key, {})
        )

        delay_override = os.getenv("SEARCH_DELAY_SECONDS")
        if delay_override:
            try:
                provider_config["latency_seconds"] = float(delay_override)
            except ValueError:
                logger.warning(f"Ignoring invalid SEARCH_DELAY_SECONDS value: {delay_override}")

        return provider_config

    def get_cache_config(self) -> Dict[str, Any]:
        """Get cache configuration"""
        return self.load_config("cache_config")

    def get_session_ttl(self) -> int:
        """Get draft session TTL in seconds"""
        config = self.get_cache_config()
        return config.get("redis_session", {}).get("default_ttl_seconds", 3600)

    def get_session_namespace(self) -> str:
        config = self.get_cache_config()
        return config.get("redis_session", {}).get("namespace", "formation:sessions")

    def validate_config(self, config_name: str) -> bool:
        """
        Validate configuration file

        Args:
            config_name: Name of config to validate

        Returns:
            True if valid, False otherwise
        """
        try:
            config = self.load_config(config_name)

            if "version" not in config:
                logger.warning(f"Config {config_name} missing version field")

            logger.info(f"Config {config_name} validated successfully")
            return True

        except Exception as e:
            logger.error(f"Config validation failed for {config_name}: {e}")
            return False


# Global singleton instance
_config_service: Optional[ConfigurationService] = None


def get_config_service() -> ConfigurationService:
    """
    Get global ConfigurationService singleton instance

    Returns:
        ConfigurationService instance
    """
    global _config_service
    if _config_service is None:
        _config_service = ConfigurationService()
    return _config_service


def init_config_service(config_dir: Optional[str] = None) -> ConfigurationService:
    """
    Initialize global ConfigurationService with custom config directory

    Args:
        config_dir: Path to configuration directory

    Returns:
        ConfigurationService instance
    """
    global _config_service
    _config_service = ConfigurationService(config_dir)
    logger.info("Global ConfigurationService initialized")
    return _config_service
