"""
Application Record Models
The four worksheets of the formation suite plus the jurisdiction snapshot
copied onto an LLC application when its state is detected from the ZIP code
"""

from enum import Enum
from typing import Any, ClassVar, Dict, FrozenSet, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .reference import BankOption, JurisdictionProfile


class FormKind(str, Enum):
    """The four worksheets of the suite, in dashboard order"""

    EIN = "ein"
    LLC = "llc"
    LICENSES = "licenses"
    BANKING = "banking"


class ApplicationRecord(BaseModel):
    """
    Base class for editable worksheet records.

    READ_ONLY_FIELDS lists fields that are only written by dedicated form
    events (detection, member edits, searches) and never by a plain field edit.
    """

    model_config = ConfigDict(validate_assignment=True)

    READ_ONLY_FIELDS: ClassVar[FrozenSet[str]] = frozenset()

    @classmethod
    def editable_fields(cls) -> List[str]:
        return [name for name in cls.model_fields if name not in cls.READ_ONLY_FIELDS]


class PartyRecord(BaseModel):
    """Name and address of the registered agent or the organizer"""

    model_config = ConfigDict(validate_assignment=True)

    name: str = ""
    address: str = ""


class JurisdictionSnapshot(BaseModel):
    """Point-in-time copy of a jurisdiction profile taken at detection time"""

    detected_state: Optional[str] = None
    filing_fee: str = ""
    publication_required: bool = False
    operating_agreement_required: bool = False
    annual_report_required: bool = False
    franchise_tax_info: str = ""
    special_requirements: List[str] = Field(default_factory=list)

    @classmethod
    def from_profile(
        cls,
        detected_state: str,
        profile: Optional[JurisdictionProfile],
    ) -> "JurisdictionSnapshot":
        """
        Copy a profile for a detected state.

        A detected state without a profile yields a snapshot carrying only
        the state code, with every derived field at its empty value.
        """
        if profile is None:
            return cls(detected_state=detected_state)

        return cls(
            detected_state=detected_state,
            filing_fee=profile.filing_fee,
            publication_required=profile.publication_required,
            operating_agreement_required=profile.operating_agreement_required,
            annual_report_required=profile.annual_report_required,
            franchise_tax_info=profile.franchise_tax_info,
            special_requirements=list(profile.special_requirements),
        )

    @property
    def has_profile(self) -> bool:
        return bool(self.filing_fee or self.special_requirements)


class LLCApplication(ApplicationRecord):
    """LLC formation worksheet"""

    READ_ONLY_FIELDS: ClassVar[FrozenSet[str]] = frozenset({"member_names", "jurisdiction"})

    llc_name: str = ""
    business_purpose: str = ""
    business_address: str = ""
    business_city: str = ""
    business_state: str = ""
    business_zip: str = ""
    registered_agent: PartyRecord = Field(default_factory=PartyRecord)
    organizer: PartyRecord = Field(default_factory=PartyRecord)
    management_structure: str = "member-managed"
    member_names: List[str] = Field(default_factory=lambda: [""])
    duration: str = "perpetual"
    effective_date: str = ""
    jurisdiction: JurisdictionSnapshot = Field(default_factory=JurisdictionSnapshot)

    @field_validator("member_names", mode="before")
    @classmethod
    def _keep_one_member_entry(cls, value):
        """The editable member list always holds at least one entry."""
        if not value:
            return [""]
        return value


class EINApplication(ApplicationRecord):
    """EIN (SS-4) preparation worksheet"""

    business_name: str = ""
    business_type: str = ""
    responsible_party_name: str = ""
    responsible_party_ssn: str = ""
    business_address: str = ""
    business_city: str = ""
    business_state: str = ""
    business_zip: str = ""
    mailing_address: str = ""
    business_purpose: str = ""
    start_date: str = ""
    employees_expected: int = 0
    banking_info: str = ""
    federal_tax_deposits: str = ""
    business_activity_code: str = ""


class LicenseLookup(ApplicationRecord):
    """Business license and permit lookup worksheet"""

    READ_ONLY_FIELDS: ClassVar[FrozenSet[str]] = frozenset(
        {"required_licenses", "license_links", "permit_requirements"}
    )

    business_type: str = ""
    business_state: str = ""
    business_zip: str = ""
    required_licenses: List[str] = Field(default_factory=list)
    license_links: List[str] = Field(default_factory=list)
    permit_requirements: List[str] = Field(default_factory=list)


class BankingLookup(ApplicationRecord):
    """Business banking comparison worksheet"""

    READ_ONLY_FIELDS: ClassVar[FrozenSet[str]] = frozenset({"bank_results"})

    zip_code: str = ""
    bank_results: List[BankOption] = Field(default_factory=list)


RECORD_TYPES: Dict[FormKind, Type[ApplicationRecord]] = {
    FormKind.EIN: EINApplication,
    FormKind.LLC: LLCApplication,
    FormKind.LICENSES: LicenseLookup,
    FormKind.BANKING: BankingLookup,
}


def record_type_for(form_kind: FormKind) -> Type[ApplicationRecord]:
    return RECORD_TYPES[FormKind(form_kind)]


def parse_record(form_kind: FormKind, data: Any) -> ApplicationRecord:
    """Build the typed record for a form kind from a dict or an existing record."""
    record_type = record_type_for(form_kind)
    if isinstance(data, record_type):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump()
    return record_type.model_validate(data or {})
