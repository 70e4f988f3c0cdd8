"""Models package - reference tables, worksheet records and draft sessions"""

from .reference import (
    StateCode,
    BusinessType,
    JurisdictionProfile,
    BusinessTypeEntry,
    BankOption,
    StateRegistration,
    StateInfo,
    SuiteModule,
    EINOptions,
)

from .applications import (
    FormKind,
    ApplicationRecord,
    PartyRecord,
    JurisdictionSnapshot,
    LLCApplication,
    EINApplication,
    LicenseLookup,
    BankingLookup,
    parse_record,
)

from .notification import Notification, NotificationTemplate
from .form_session import FormSession, SESSION_SCHEMA_VERSION

__all__ = [
    "StateCode",
    "BusinessType",
    "JurisdictionProfile",
    "BusinessTypeEntry",
    "BankOption",
    "StateRegistration",
    "StateInfo",
    "SuiteModule",
    "EINOptions",
    "FormKind",
    "ApplicationRecord",
    "PartyRecord",
    "JurisdictionSnapshot",
    "LLCApplication",
    "EINApplication",
    "LicenseLookup",
    "BankingLookup",
    "parse_record",
    "Notification",
    "NotificationTemplate",
    "FormSession",
    "SESSION_SCHEMA_VERSION",
]
