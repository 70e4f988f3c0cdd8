"""
Form Controller Base

A controller owns the record of a draft session: every event goes through a
pure reducer and the controller stores the resulting record and notifications
on the session. The application gateway is only touched by load() and save().
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, Optional

from ...database.application_store import ApplicationGateway
from ...exceptions import PersistenceError
from ...models.applications import ApplicationRecord, FormKind, record_type_for
from ...models.form_session import FormSession
from . import reducers
from .reducers import Transition

logger = logging.getLogger(__name__)


class FormController(ABC):
    """Shared event handling, persistence and projection for one worksheet"""

    form_kind: ClassVar[FormKind]

    def __init__(self, gateway: ApplicationGateway):
        self.gateway = gateway

    def new_record(self) -> ApplicationRecord:
        return record_type_for(self.form_kind)()

    def _check_session(self, session: FormSession):
        if session.form_kind != self.form_kind:
            raise ValueError(
                f"{self.__class__.__name__} cannot handle a {session.form_kind.value} session"
            )

    def _apply(self, session: FormSession, transition: Transition) -> FormSession:
        session.record = transition.record
        session.notifications = transition.notifications
        session.touch()
        return session

    # Events

    def set_field(self, session: FormSession, name: str, value: Any) -> FormSession:
        """
        Overwrite one field of the draft.

        Raises:
            FormFieldError: If the field is unknown or read-only
        """
        self._check_session(session)
        return self._apply(session, reducers.set_field(session.record, name, value))

    # Persistence

    @abstractmethod
    def to_payload(self, record: ApplicationRecord) -> Dict[str, Any]:
        """Build the column payload written by save()."""

    @abstractmethod
    def from_payload(self, payload: Dict[str, Any]) -> ApplicationRecord:
        """Rebuild a record from a saved payload."""

    async def load(self, session: FormSession, user_id: Optional[str]) -> bool:
        """
        Replace the draft record with the user's latest saved one.

        Returns:
            True if a saved record was found; otherwise the draft keeps its defaults
        """
        self._check_session(session)
        if not user_id:
            return False

        payload = await self.gateway.load_latest(self.form_kind, user_id)
        if payload is None:
            logger.debug(f"No saved {self.form_kind.value} application for user {user_id}")
            return False

        session.record = self.from_payload(payload)
        session.touch()
        logger.info(f"Loaded saved {self.form_kind.value} application for user {user_id}")
        return True

    async def save(self, session: FormSession, user_id: Optional[str]) -> bool:
        """
        Persist the draft for a user.

        Missing user and gateway failure are reported as notifications, not
        raised. The draft record is left unchanged in every case.

        Returns:
            True if the gateway accepted the payload
        """
        self._check_session(session)
        kind = self.form_kind.value

        if not user_id:
            session.notifications = [reducers.notify(f"{kind}.auth_required")]
            return False

        try:
            await self.gateway.upsert(self.form_kind, user_id, self.to_payload(session.record))
        except PersistenceError as e:
            logger.error(f"Saving {kind} session {session.session_id} failed: {e}")
            session.notifications = [reducers.notify(f"{kind}.save_failed", error=str(e))]
            return False

        session.notifications = [reducers.notify(f"{kind}.saved")]
        session.touch()
        return True

    # Views

    def project(self, record: ApplicationRecord) -> Dict[str, Any]:
        """Derived view state the client renders alongside the record."""
        return {}
