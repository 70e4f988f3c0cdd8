"""
Reference Table API Endpoints
Read-only access to the lookup tables that drive the worksheets
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from ...config.reference_loader import (
    load_business_types,
    load_ein_options,
    load_jurisdiction_profiles,
    load_states,
    load_suite_modules,
)
from ...models.reference import JurisdictionProfile, StateInfo, SuiteModule
from ...services.resolver import (
    resolve_jurisdiction_profile,
    resolve_license_checklist,
    resolve_state_from_zip,
    state_name,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/reference", tags=["reference"])


class BusinessTypeResponse(BaseModel):
    key: str
    label: str
    licenses: List[str]


class ZipResolutionResponse(BaseModel):
    """Result of probing state detection for a ZIP code"""

    zip_code: str
    state_code: Optional[str] = None
    state_name: Optional[str] = None
    profile: Optional[JurisdictionProfile] = None


@router.get("/states", response_model=List[StateInfo])
async def list_states():
    """States, DC and territories in display order"""
    return list(load_states().values())


@router.get("/business-types", response_model=List[BusinessTypeResponse])
async def list_business_types():
    return [
        BusinessTypeResponse(key=business_type.value, label=entry.label, licenses=list(entry.licenses))
        for business_type, entry in load_business_types().items()
    ]


@router.get("/business-types/{business_type}/licenses", response_model=List[str])
async def get_license_checklist(business_type: str):
    """License checklist for a category; unknown categories use "Other"."""
    return resolve_license_checklist(business_type)


@router.get("/ein-options")
async def get_ein_options() -> Dict[str, Any]:
    return load_ein_options().model_dump()


@router.get("/jurisdictions", response_model=List[JurisdictionProfile])
async def list_jurisdictions():
    """Every state that has a formation profile"""
    return list(load_jurisdiction_profiles().values())


@router.get("/jurisdictions/{state_code}", response_model=JurisdictionProfile)
async def get_jurisdiction(state_code: str):
    """
    Formation profile of one state.

    States without a profile return 404; that is not an error for the
    worksheets, which simply show no state-specific section.
    """
    profile = resolve_jurisdiction_profile(state_code)
    if profile is None:
        raise HTTPException(status_code=404, detail=f"No jurisdiction profile for '{state_code}'")
    return profile


@router.get("/zip/{zip_code}", response_model=ZipResolutionResponse)
async def resolve_zip(zip_code: str):
    """
    Run state detection for a ZIP code.

    An unknown prefix is a normal result: every field but zip_code is null.
    """
    detected = resolve_state_from_zip(zip_code)
    if detected is None:
        return ZipResolutionResponse(zip_code=zip_code)

    return ZipResolutionResponse(
        zip_code=zip_code,
        state_code=detected.value,
        state_name=state_name(detected),
        profile=resolve_jurisdiction_profile(detected),
    )


@router.get("/modules", response_model=List[SuiteModule])
async def list_modules():
    """Dashboard steps in order"""
    return load_suite_modules()
