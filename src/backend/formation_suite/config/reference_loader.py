"""
Reference Loader for Static Lookup Tables
Loads the JSON reference tables into enum-keyed, typed mappings at first use

Every key is parsed into its closed enum (StateCode, BusinessType) and every
entry into its record model, so a typo in the data fails here instead of
surfacing as a silent miss at lookup time.
"""

import logging
from functools import lru_cache
from typing import Dict, List

from pydantic import ValidationError

from ..exceptions import ReferenceDataError
from ..models.notification import NotificationTemplate
from ..models.reference import (
    BankOption,
    BusinessType,
    BusinessTypeEntry,
    EINOptions,
    JurisdictionProfile,
    StateCode,
    StateInfo,
    StateRegistration,
    SuiteModule,
)
from ..services.config.configuration_service import get_config_service

logger = logging.getLogger(__name__)


def _state_code(value: str, table: str) -> StateCode:
    try:
        return StateCode(value)
    except ValueError as e:
        raise ReferenceDataError(f"Unknown state code '{value}' in {table}") from e


@lru_cache(maxsize=1)
def load_states() -> Dict[StateCode, StateInfo]:
    """
    Load the selectable states keyed by StateCode

    Raises:
        ReferenceDataError: If a code is unknown or a state is missing
    """
    try:
        states = {}
        for raw in get_config_service().get_states():
            info = StateInfo.model_validate(raw)
            states[info.code] = info
    except ValidationError as e:
        logger.error(f"Invalid state table: {e}")
        raise ReferenceDataError(f"Invalid state table: {e}") from e

    missing = set(StateCode) - set(states)
    if missing:
        raise ReferenceDataError(f"State table missing codes: {sorted(m.value for m in missing)}")

    logger.info(f"Loaded {len(states)} states")
    return states


@lru_cache(maxsize=1)
def load_zip_prefix_table() -> Dict[str, StateCode]:
    """Load ZIP prefix → StateCode table"""
    table = {}
    for prefix, code in get_config_service().get_zip_prefixes().items():
        if len(prefix) != 3:
            raise ReferenceDataError(f"ZIP prefix '{prefix}' must be exactly three characters")
        table[prefix] = _state_code(code, "zip_prefixes")

    logger.info(f"Loaded {len(table)} ZIP prefixes covering {len(set(table.values()))} states")
    return table


@lru_cache(maxsize=1)
def load_jurisdiction_profiles() -> Dict[StateCode, JurisdictionProfile]:
    """Load jurisdiction profiles keyed by StateCode"""
    profiles = {}
    for code, raw in get_config_service().get_jurisdiction_profiles().items():
        state_code = _state_code(code, "jurisdiction_profiles")
        try:
            profiles[state_code] = JurisdictionProfile(state_code=state_code, **raw)
        except ValidationError as e:
            logger.error(f"Invalid jurisdiction profile for {code}: {e}")
            raise ReferenceDataError(f"Invalid jurisdiction profile for {code}: {e}") from e

    logger.info(f"Loaded jurisdiction profiles for: {sorted(p.value for p in profiles)}")
    return profiles


@lru_cache(maxsize=1)
def load_business_types() -> Dict[BusinessType, BusinessTypeEntry]:
    """
    Load business categories keyed by BusinessType

    Raises:
        ReferenceDataError: If a key is not a known category or a category is missing
    """
    entries = {}
    for key, raw in get_config_service().get_business_types().items():
        try:
            business_type = BusinessType(key)
            entries[business_type] = BusinessTypeEntry(key=business_type, **raw)
        except ValueError as e:
            # ValidationError is a ValueError subclass
            logger.error(f"Invalid business type '{key}': {e}")
            raise ReferenceDataError(f"Invalid business type '{key}': {e}") from e

    missing = set(BusinessType) - set(entries)
    if missing:
        raise ReferenceDataError(f"Business type table missing: {sorted(m.value for m in missing)}")

    return entries


@lru_cache(maxsize=1)
def load_state_registration() -> StateRegistration:
    raw = get_config_service().get_state_registration()
    try:
        return StateRegistration(
            registration_items=raw.get("registration_items", []),
            permit_steps=raw.get("permit_steps", []),
            license_link_template=raw.get("license_link_template", ""),
        )
    except ValidationError as e:
        raise ReferenceDataError(f"Invalid state registration table: {e}") from e


@lru_cache(maxsize=1)
def load_bank_catalog() -> List[BankOption]:
    try:
        return [BankOption.model_validate(raw) for raw in get_config_service().get_bank_catalog()]
    except ValidationError as e:
        raise ReferenceDataError(f"Invalid bank catalog: {e}") from e


@lru_cache(maxsize=1)
def load_ein_options() -> EINOptions:
    raw = get_config_service().get_ein_options()
    try:
        return EINOptions(
            entity_types=raw.get("entity_types", []),
            irs_application_url=raw.get("irs_application_url", ""),
        )
    except ValidationError as e:
        raise ReferenceDataError(f"Invalid EIN options: {e}") from e


@lru_cache(maxsize=1)
def load_suite_modules() -> List[SuiteModule]:
    try:
        return [SuiteModule.model_validate(raw) for raw in get_config_service().get_suite_modules()]
    except ValidationError as e:
        raise ReferenceDataError(f"Invalid suite modules: {e}") from e


@lru_cache(maxsize=1)
def load_notification_templates() -> Dict[str, NotificationTemplate]:
    try:
        return {
            key: NotificationTemplate.model_validate(raw)
            for key, raw in get_config_service().get_notification_templates().items()
        }
    except ValidationError as e:
        raise ReferenceDataError(f"Invalid notification catalog: {e}") from e


def clear_reference_cache():
    """Drop every cached table (tests and config hot-reload)"""
    for loader in (
        load_states,
        load_zip_prefix_table,
        load_jurisdiction_profiles,
        load_business_types,
        load_state_registration,
        load_bank_catalog,
        load_ein_options,
        load_suite_modules,
        load_notification_templates,
    ):
        loader.cache_clear()
    logger.debug("Reference table cache cleared")
