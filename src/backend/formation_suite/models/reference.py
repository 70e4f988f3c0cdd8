"""
Reference Table Models
Closed key sets and record shapes for the static lookup tables in config/
"""

from enum import Enum
from typing import List, Tuple

from pydantic import BaseModel, ConfigDict, Field


class StateCode(str, Enum):
    """Two-letter codes of every state, DC and inhabited territory a business can be registered in"""

    AL = "AL"
    AK = "AK"
    AZ = "AZ"
    AR = "AR"
    CA = "CA"
    CO = "CO"
    CT = "CT"
    DE = "DE"
    DC = "DC"
    FL = "FL"
    GA = "GA"
    HI = "HI"
    ID = "ID"
    IL = "IL"
    IN = "IN"
    IA = "IA"
    KS = "KS"
    KY = "KY"
    LA = "LA"
    ME = "ME"
    MD = "MD"
    MA = "MA"
    MI = "MI"
    MN = "MN"
    MS = "MS"
    MO = "MO"
    MT = "MT"
    NE = "NE"
    NV = "NV"
    NH = "NH"
    NJ = "NJ"
    NM = "NM"
    NY = "NY"
    NC = "NC"
    ND = "ND"
    OH = "OH"
    OK = "OK"
    OR = "OR"
    PA = "PA"
    RI = "RI"
    SC = "SC"
    SD = "SD"
    TN = "TN"
    TX = "TX"
    UT = "UT"
    VT = "VT"
    VA = "VA"
    WA = "WA"
    WV = "WV"
    WI = "WI"
    WY = "WY"
    AS = "AS"
    GU = "GU"
    MP = "MP"
    PR = "PR"
    VI = "VI"


class BusinessType(str, Enum):
    """Business categories offered by the license lookup"""

    RESTAURANT = "restaurant"
    RETAIL = "retail"
    CONSULTING = "consulting"
    CONSTRUCTION = "construction"
    HEALTHCARE = "healthcare"
    AUTOMOTIVE = "automotive"
    BEAUTY = "beauty"
    CHILDCARE = "childcare"
    FITNESS = "fitness"
    TRANSPORTATION = "transportation"
    MANUFACTURING = "manufacturing"
    TECHNOLOGY = "technology"
    OTHER = "other"


class JurisdictionProfile(BaseModel):
    """
    State-specific LLC formation facts.

    Profiles are read-only once loaded; the LLC form copies the values it
    needs at detection time instead of holding a reference.
    """

    model_config = ConfigDict(frozen=True)

    state_code: StateCode
    filing_fee: str
    publication_required: bool = False
    operating_agreement_required: bool = False
    annual_report_required: bool = False
    franchise_tax_info: str = ""
    special_requirements: Tuple[str, ...] = Field(min_length=1)


class BusinessTypeEntry(BaseModel):
    """One business category and its license checklist"""

    model_config = ConfigDict(frozen=True)

    key: BusinessType
    label: str
    licenses: Tuple[str, ...] = Field(min_length=1)


class BankOption(BaseModel):
    """A business checking account returned by the bank search"""

    name: str
    website: str = ""
    application_link: str = ""
    min_deposit: str = ""
    monthly_fee: str = ""
    features: List[str] = Field(default_factory=list)
    rating: float = 0.0
    benefits: str = ""


class StateRegistration(BaseModel):
    """State-independent registration items and permit steps attached by a license search"""

    model_config = ConfigDict(frozen=True)

    registration_items: Tuple[str, ...]
    permit_steps: Tuple[str, ...]
    license_link_template: str


class StateInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: StateCode
    name: str


class SuiteModule(BaseModel):
    """Dashboard entry for one of the four formation worksheets"""

    model_config = ConfigDict(frozen=True)

    key: str
    title: str
    description: str
    path: str


class EINOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    entity_types: Tuple[str, ...]
    irs_application_url: str
