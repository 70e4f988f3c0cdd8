"""
Form Controller Registry

Builds one controller per worksheet around a shared application gateway and
the configured search providers.
"""

import logging
from typing import Dict, Optional

from ...database.application_store import ApplicationGateway, InMemoryApplicationGateway
from ...models.applications import FormKind
from ..config.configuration_service import get_config_service
from ..search.providers import BankSearchProvider, LicenseSearchProvider, create_provider
from .banking_form import BankingFormController
from .base import FormController
from .ein_form import EINFormController
from .license_form import LicenseFormController
from .llc_form import LLCFormController

logger = logging.getLogger(__name__)


class FormControllerRegistry:
    """Lookup of controllers by form kind"""

    def __init__(
        self,
        gateway: ApplicationGateway,
        license_provider: LicenseSearchProvider,
        bank_provider: BankSearchProvider,
    ):
        self.gateway = gateway
        self._controllers: Dict[FormKind, FormController] = {
            FormKind.EIN: EINFormController(gateway),
            FormKind.LLC: LLCFormController(gateway),
            FormKind.LICENSES: LicenseFormController(gateway, license_provider),
            FormKind.BANKING: BankingFormController(gateway, bank_provider),
        }

    def get(self, form_kind: FormKind) -> FormController:
        return self._controllers[FormKind(form_kind)]

    @property
    def llc(self) -> LLCFormController:
        return self._controllers[FormKind.LLC]

    @property
    def ein(self) -> EINFormController:
        return self._controllers[FormKind.EIN]

    @property
    def licenses(self) -> LicenseFormController:
        return self._controllers[FormKind.LICENSES]

    @property
    def banking(self) -> BankingFormController:
        return self._controllers[FormKind.BANKING]


# Global registry instance
_form_registry: Optional[FormControllerRegistry] = None


def init_form_registry(
    gateway: Optional[ApplicationGateway] = None,
    license_provider: Optional[LicenseSearchProvider] = None,
    bank_provider: Optional[BankSearchProvider] = None,
) -> FormControllerRegistry:
    """
    Initialize the global registry.

    Providers default to the ones configured in search_config.json and the
    gateway defaults to the in-memory store.
    """
    global _form_registry

    config_service = get_config_service()
    if license_provider is None:
        license_provider = create_provider("licenses", config_service.get_provider_config("licenses"))
    if bank_provider is None:
        bank_provider = create_provider("banking", config_service.get_provider_config("banking"))
    if gateway is None:
        gateway = InMemoryApplicationGateway()

    _form_registry = FormControllerRegistry(gateway, license_provider, bank_provider)
    logger.info(f"Form controllers initialized (gateway: {gateway.get_name()})")
    return _form_registry


def get_form_registry() -> FormControllerRegistry:
    """Get the global registry, initializing defaults on first use."""
    if _form_registry is None:
        return init_form_registry()
    return _form_registry


def clear_form_registry():
    global _form_registry
    _form_registry = None
