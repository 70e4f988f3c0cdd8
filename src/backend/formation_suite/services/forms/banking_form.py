"""Business banking comparison controller."""

import logging
from typing import Any, Dict

from ...database.application_store import ApplicationGateway
from ...exceptions import ProviderError
from ...models.applications import BankingLookup, FormKind
from ...models.form_session import FormSession
from ...models.reference import BankOption
from ..search.providers import BankSearchProvider
from . import reducers
from .base import FormController

logger = logging.getLogger(__name__)


class BankingFormController(FormController):
    form_kind = FormKind.BANKING

    def __init__(self, gateway: ApplicationGateway, provider: BankSearchProvider):
        super().__init__(gateway)
        self.provider = provider

    def set_zip(self, session: FormSession, zip_code: Any) -> FormSession:
        return self.set_field(session, "zip_code", zip_code)

    async def search(self, session: FormSession) -> FormSession:
        """
        Search for banks near the entered ZIP code.

        The ZIP code must be exactly five characters; otherwise an
        "Invalid ZIP Code" notification is returned and the provider is not called.
        """
        self._check_session(session)
        record: BankingLookup = session.record

        if not reducers.bank_search_ready(record):
            session.notifications = [reducers.notify("banking.invalid_zip")]
            return session

        try:
            result = await self.provider.search(record.zip_code)
        except ProviderError as e:
            logger.warning(f"Bank search failed for session {session.session_id}: {e}")
            session.notifications = [reducers.notify("search_failed", error=str(e))]
            return session

        return self._apply(session, reducers.apply_bank_search(record, result))

    def to_payload(self, record: BankingLookup) -> Dict[str, Any]:
        return {
            "zip_code": record.zip_code,
            "bank_results": [bank.model_dump() for bank in record.bank_results],
        }

    def from_payload(self, payload: Dict[str, Any]) -> BankingLookup:
        return BankingLookup(
            zip_code=payload.get("zip_code") or "",
            bank_results=[BankOption.model_validate(bank) for bank in payload.get("bank_results") or []],
        )

    def project(self, record: BankingLookup) -> Dict[str, Any]:
        return {
            "can_search": reducers.bank_search_ready(record),
            "result_count": len(record.bank_results),
        }
