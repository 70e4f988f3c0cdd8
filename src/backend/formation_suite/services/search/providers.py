"""
Search Provider Interface

Defines the provider contract for the license and bank searches. A provider
either returns a result model or raises ProviderError; controllers turn the
failure into a notification.

The static providers answer from the reference tables after a configurable
latency, standing in for a real licensing or banking data source.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ...config.reference_loader import load_bank_catalog
from ...exceptions import ProviderError
from ...models.reference import BankOption
from ..resolver.requirement_resolver import (
    augment_with_state_registration,
    license_links_for,
    resolve_license_checklist,
    standard_permit_steps,
)

logger = logging.getLogger(__name__)


class LicenseSearchResult(BaseModel):
    """
    Result of a license search.

    Attributes:
        required_licenses: Category licenses followed by state registration items
        license_links: One link per required license
        permit_requirements: Generic permit steps
        provider_name: Name of the provider that produced the result
        metadata: Additional details (latency, inputs)
    """
    required_licenses: List[str] = Field(default_factory=list)
    license_links: List[str] = Field(default_factory=list)
    permit_requirements: List[str] = Field(default_factory=list)
    provider_name: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class BankSearchResult(BaseModel):
    banks: List[BankOption] = Field(default_factory=list)
    provider_name: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class SearchProvider(ABC):
    """Common configuration handling for search providers"""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize provider with configuration.

        Args:
            config: Provider configuration from search_config.json
        """
        self.config = config or {}
        self.latency_seconds = float(self.config.get("latency_seconds", 0.0))

    @abstractmethod
    def get_name(self) -> str:
        """Get provider name for logging and result metadata"""

    async def _simulate_latency(self):
        if self.latency_seconds > 0:
            await asyncio.sleep(self.latency_seconds)


class LicenseSearchProvider(SearchProvider):
    @abstractmethod
    async def search(
        self,
        business_type: str,
        state_code: str,
        zip_code: str = "",
    ) -> LicenseSearchResult:
        """
        Find the licenses and permits a business needs.

        Raises:
            ProviderError: If the source could not be queried
        """


class BankSearchProvider(SearchProvider):
    @abstractmethod
    async def search(self, zip_code: str) -> BankSearchResult:
        """
        Find business bank accounts near a ZIP code.

        Raises:
            ProviderError: If the source could not be queried
        """


class StaticLicenseSearchProvider(LicenseSearchProvider):
    """License search answered from the business type and state registration tables"""

    def get_name(self) -> str:
        return "static_licenses"

    async def search(
        self,
        business_type: str,
        state_code: str,
        zip_code: str = "",
    ) -> LicenseSearchResult:
        if not state_code:
            raise ProviderError(self.get_name(), "A business state is required")

        await self._simulate_latency()

        licenses = augment_with_state_registration(resolve_license_checklist(business_type))
        result = LicenseSearchResult(
            required_licenses=licenses,
            license_links=license_links_for(state_code, licenses),
            permit_requirements=standard_permit_steps(),
            provider_name=self.get_name(),
            metadata={
                "business_type": business_type,
                "state": state_code,
                "latency_seconds": self.latency_seconds,
            },
        )

        logger.info(
            f"License search for {business_type} in {state_code} returned "
            f"{len(result.required_licenses)} items"
        )
        return result


class StaticBankSearchProvider(BankSearchProvider):
    """Bank search answered from the static catalog; the ZIP code does not narrow it"""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self.max_results = int(self.config.get("max_results", 10))

    def get_name(self) -> str:
        return "static_banks"

    async def search(self, zip_code: str) -> BankSearchResult:
        await self._simulate_latency()

        banks = [bank.model_copy(deep=True) for bank in load_bank_catalog()[: self.max_results]]
        logger.info(f"Bank search near {zip_code} returned {len(banks)} options")

        return BankSearchResult(
            banks=banks,
            provider_name=self.get_name(),
            metadata={"zip_code": zip_code, "latency_seconds": self.latency_seconds},
        )


_PROVIDERS = {
    "licenses": {"static": StaticLicenseSearchProvider},
    "banking": {"static": StaticBankSearchProvider},
}


def create_provider(provider_key: str, config: Dict[str, Any]) -> SearchProvider:
    """
    Build a provider from its search_config.json entry.

    Args:
        provider_key: "licenses" or "banking"
        config: Provider configuration (the "provider" field selects the implementation)

    Raises:
        ValueError: If the provider is not registered
    """
    implementation = config.get("provider", "static")
    try:
        provider_class = _PROVIDERS[provider_key][implementation]
    except KeyError as e:
        raise ValueError(f"Unknown {provider_key} provider: {implementation}") from e

    provider = provider_class(config)
    logger.info(f"Created {provider.get_name()} provider (latency: {provider.latency_seconds}s)")
    return provider
