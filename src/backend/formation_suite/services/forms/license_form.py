"""
Business License Lookup Controller

Selecting a business type fills the checklist immediately; search() asks the
license provider for the full requirement set for the chosen state.
"""

import logging
from typing import Any, Dict, List

from ...config.reference_loader import load_business_types
from ...database.application_store import ApplicationGateway
from ...exceptions import ProviderError
from ...models.applications import FormKind, LicenseLookup
from ...models.form_session import FormSession
from ..search.providers import LicenseSearchProvider
from . import reducers
from .base import FormController

logger = logging.getLogger(__name__)


class LicenseFormController(FormController):
    form_kind = FormKind.LICENSES

    def __init__(self, gateway: ApplicationGateway, provider: LicenseSearchProvider):
        super().__init__(gateway)
        self.provider = provider

    def set_field(self, session: FormSession, name: str, value: Any) -> FormSession:
        if name == "business_type":
            return self.on_business_type_changed(session, value)
        return super().set_field(session, name, value)

    def on_business_type_changed(self, session: FormSession, business_type: Any) -> FormSession:
        self._check_session(session)
        return self._apply(session, reducers.apply_business_type(session.record, business_type))

    async def search(self, session: FormSession) -> FormSession:
        """
        Run the license search for the selected business type and state.

        Missing inputs and provider failures become notifications; the record
        is only replaced when the provider returns a result.
        """
        self._check_session(session)
        record: LicenseLookup = session.record

        if not reducers.license_search_ready(record):
            session.notifications = [reducers.notify("licenses.missing_information")]
            return session

        try:
            result = await self.provider.search(
                record.business_type, record.business_state, record.business_zip
            )
        except ProviderError as e:
            logger.warning(f"License search failed for session {session.session_id}: {e}")
            session.notifications = [reducers.notify("search_failed", error=str(e))]
            return session

        return self._apply(session, reducers.apply_license_search(record, result))

    def to_payload(self, record: LicenseLookup) -> Dict[str, Any]:
        return {
            "business_type": record.business_type,
            "business_state": record.business_state,
            "business_zip": record.business_zip,
            "required_licenses": list(record.required_licenses),
            "license_links": list(record.license_links),
            "permit_requirements": list(record.permit_requirements),
        }

    def from_payload(self, payload: Dict[str, Any]) -> LicenseLookup:
        return LicenseLookup(
            business_type=payload.get("business_type") or "",
            business_state=payload.get("business_state") or "",
            business_zip=payload.get("business_zip") or "",
            required_licenses=list(payload.get("required_licenses") or []),
            license_links=list(payload.get("license_links") or []),
            permit_requirements=list(payload.get("permit_requirements") or []),
        )

    def project(self, record: LicenseLookup) -> Dict[str, Any]:
        labels = {business_type.value: entry.label for business_type, entry in load_business_types().items()}

        checklist: List[Dict[str, str]] = [
            {
                "license": license_name,
                "link": record.license_links[i] if i < len(record.license_links) else "",
            }
            for i, license_name in enumerate(record.required_licenses)
        ]
        return {
            "business_type_label": labels.get(record.business_type),
            "can_search": reducers.license_search_ready(record),
            "checklist": checklist,
            "show_permits": bool(record.permit_requirements),
        }
