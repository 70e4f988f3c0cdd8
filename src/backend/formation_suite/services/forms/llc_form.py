"""
LLC Formation Controller

ZIP-driven state detection, manual state selection and member list edits on
top of the shared field handling.
"""

import logging
from typing import Any, Dict, Optional

from ...models.applications import FormKind, JurisdictionSnapshot, LLCApplication, PartyRecord
from ...models.form_session import FormSession
from ..resolver.requirement_resolver import state_name
from . import reducers
from .base import FormController

logger = logging.getLogger(__name__)


class LLCFormController(FormController):
    form_kind = FormKind.LLC

    def set_field(self, session: FormSession, name: str, value: Any) -> FormSession:
        # ZIP and state edits are events of their own
        if name == "business_zip":
            return self.on_zip_changed(session, value)
        if name == "business_state":
            return self.on_state_selected(session, value)
        return super().set_field(session, name, value)

    def on_zip_changed(self, session: FormSession, zip_code: Any) -> FormSession:
        self._check_session(session)
        return self._apply(session, reducers.apply_zip_change(session.record, zip_code))

    def on_state_selected(self, session: FormSession, state_code: Any) -> FormSession:
        self._check_session(session)
        return self._apply(session, reducers.select_state(session.record, state_code))

    def add_member(self, session: FormSession) -> FormSession:
        self._check_session(session)
        return self._apply(session, reducers.add_member(session.record))

    def update_member(self, session: FormSession, index: int, name: Any) -> FormSession:
        """
        Raises:
            FormFieldError: If index is out of range
        """
        self._check_session(session)
        return self._apply(session, reducers.update_member(session.record, index, name))

    def remove_member(self, session: FormSession, index: int) -> FormSession:
        """
        Raises:
            FormFieldError: If index is out of range
        """
        self._check_session(session)
        return self._apply(session, reducers.remove_member(session.record, index))

    def to_payload(self, record: LLCApplication) -> Dict[str, Any]:
        """
        Flatten the worksheet into llc_applications columns.

        Blank member names are dropped and a blank effective date is stored as null.
        """
        jurisdiction: Optional[Dict[str, Any]] = None
        if record.jurisdiction.detected_state:
            jurisdiction = record.jurisdiction.model_dump()

        return {
            "llc_name": record.llc_name,
            "business_purpose": record.business_purpose,
            "business_address": record.business_address,
            "business_city": record.business_city,
            "business_state": record.business_state,
            "business_zip": record.business_zip,
            "registered_agent_name": record.registered_agent.name,
            "registered_agent_address": record.registered_agent.address,
            "organizer_name": record.organizer.name,
            "organizer_address": record.organizer.address,
            "management_structure": record.management_structure,
            "member_names": [name for name in record.member_names if name.strip()],
            "duration": record.duration,
            "effective_date": record.effective_date or None,
            "jurisdiction": jurisdiction,
        }

    def from_payload(self, payload: Dict[str, Any]) -> LLCApplication:
        defaults = LLCApplication()
        return LLCApplication(
            llc_name=payload.get("llc_name") or "",
            business_purpose=payload.get("business_purpose") or "",
            business_address=payload.get("business_address") or "",
            business_city=payload.get("business_city") or "",
            business_state=payload.get("business_state") or "",
            business_zip=payload.get("business_zip") or "",
            registered_agent=PartyRecord(
                name=payload.get("registered_agent_name") or "",
                address=payload.get("registered_agent_address") or "",
            ),
            organizer=PartyRecord(
                name=payload.get("organizer_name") or "",
                address=payload.get("organizer_address") or "",
            ),
            management_structure=payload.get("management_structure") or defaults.management_structure,
            member_names=list(payload.get("member_names") or []),
            duration=payload.get("duration") or defaults.duration,
            effective_date=payload.get("effective_date") or "",
            jurisdiction=JurisdictionSnapshot.model_validate(payload.get("jurisdiction") or {}),
        )

    def project(self, record: LLCApplication) -> Dict[str, Any]:
        snapshot = record.jurisdiction
        return {
            "detected_state": snapshot.detected_state,
            "detected_state_name": state_name(snapshot.detected_state),
            "show_jurisdiction": snapshot.has_profile,
            "show_publication_notice": snapshot.publication_required,
            "show_operating_agreement_notice": snapshot.operating_agreement_required,
            "show_annual_report_notice": snapshot.annual_report_required,
            "member_count": len([name for name in record.member_names if name.strip()]),
        }
