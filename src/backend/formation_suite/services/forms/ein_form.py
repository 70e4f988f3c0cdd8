"""EIN (SS-4) worksheet controller."""

from typing import Any, Dict

from ...config.reference_loader import load_ein_options
from ...models.applications import EINApplication, FormKind
from .base import FormController
from .reducers import coerce_int


class EINFormController(FormController):
    form_kind = FormKind.EIN

    _TEXT_COLUMNS = (
        "business_name",
        "business_type",
        "responsible_party_name",
        "responsible_party_ssn",
        "business_address",
        "business_city",
        "business_state",
        "business_zip",
        "mailing_address",
        "business_purpose",
        "banking_info",
        "federal_tax_deposits",
        "business_activity_code",
    )

    def to_payload(self, record: EINApplication) -> Dict[str, Any]:
        payload = {column: getattr(record, column) for column in self._TEXT_COLUMNS}
        payload["start_date"] = record.start_date or None
        payload["employees_expected"] = record.employees_expected
        return payload

    def from_payload(self, payload: Dict[str, Any]) -> EINApplication:
        values = {column: payload.get(column) or "" for column in self._TEXT_COLUMNS}
        return EINApplication(
            **values,
            start_date=payload.get("start_date") or "",
            employees_expected=coerce_int(payload.get("employees_expected")),
        )

    def project(self, record: EINApplication) -> Dict[str, Any]:
        options = load_ein_options()
        return {
            "entity_types": list(options.entity_types),
            "irs_application_url": options.irs_application_url,
            "business_type_known": record.business_type in options.entity_types,
        }
