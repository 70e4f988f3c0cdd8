"""License and bank search providers."""

from .providers import (
    LicenseSearchResult,
    BankSearchResult,
    LicenseSearchProvider,
    BankSearchProvider,
    StaticLicenseSearchProvider,
    StaticBankSearchProvider,
    create_provider,
)

__all__ = [
    "LicenseSearchResult",
    "BankSearchResult",
    "LicenseSearchProvider",
    "BankSearchProvider",
    "StaticLicenseSearchProvider",
    "StaticBankSearchProvider",
    "create_provider",
]
