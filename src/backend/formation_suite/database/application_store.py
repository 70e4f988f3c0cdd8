"""
Application Store for Saved Worksheets.

One PostgreSQL table per form, keyed by user. Reads return the most recently
created row for the user; saves update that row or insert the first one.

Gateways exchange flat payload dicts whose keys are the table columns
(without id, user_id and timestamps). Controllers build and read them.
"""

import copy
import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Type

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text, select
from sqlalchemy.ext.asyncio import async_sessionmaker

from .database import Base
from ..exceptions import PersistenceError
from ..models.applications import FormKind

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class ApplicationRowMixin:
    """Columns shared by every worksheet table."""

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(Text, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utc_now, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utc_now, onupdate=_utc_now)


class EINApplicationRow(ApplicationRowMixin, Base):
    """Saved EIN worksheet"""

    __tablename__ = "ein_applications"

    business_name = Column(Text, nullable=False, default="")
    business_type = Column(Text, nullable=False, default="")
    responsible_party_name = Column(Text, nullable=False, default="")
    responsible_party_ssn = Column(Text, nullable=True)
    business_address = Column(Text, nullable=False, default="")
    business_city = Column(Text, nullable=False, default="")
    business_state = Column(Text, nullable=False, default="")
    business_zip = Column(Text, nullable=False, default="")
    mailing_address = Column(Text, nullable=True)
    business_purpose = Column(Text, nullable=False, default="")
    start_date = Column(Text, nullable=True)  # ISO date as entered
    employees_expected = Column(Integer, nullable=True)
    banking_info = Column(Text, nullable=True)
    federal_tax_deposits = Column(Text, nullable=True)
    business_activity_code = Column(Text, nullable=True)


class LLCApplicationRow(ApplicationRowMixin, Base):
    """Saved LLC formation worksheet"""

    __tablename__ = "llc_applications"

    llc_name = Column(Text, nullable=False, default="")
    business_purpose = Column(Text, nullable=False, default="")
    business_address = Column(Text, nullable=False, default="")
    business_city = Column(Text, nullable=False, default="")
    business_state = Column(Text, nullable=False, default="")
    business_zip = Column(Text, nullable=False, default="")
    registered_agent_name = Column(Text, nullable=False, default="")
    registered_agent_address = Column(Text, nullable=False, default="")
    organizer_name = Column(Text, nullable=False, default="")
    organizer_address = Column(Text, nullable=False, default="")
    management_structure = Column(Text, nullable=False, default="member-managed")
    member_names = Column(JSON, nullable=True)  # List of non-blank names
    duration = Column(Text, nullable=True)
    effective_date = Column(Text, nullable=True)  # ISO date as entered
    jurisdiction = Column(JSON, nullable=True)  # Snapshot taken at detection time


class BusinessLicenseRow(ApplicationRowMixin, Base):
    """Saved license lookup"""

    __tablename__ = "business_licenses"

    business_type = Column(Text, nullable=False, default="")
    business_state = Column(Text, nullable=False, default="")
    business_zip = Column(Text, nullable=False, default="")
    required_licenses = Column(JSON, nullable=True)
    license_links = Column(JSON, nullable=True)
    permit_requirements = Column(JSON, nullable=True)


class BankingOptionRow(ApplicationRowMixin, Base):
    """Saved banking comparison"""

    __tablename__ = "banking_options"

    zip_code = Column(Text, nullable=False, default="")
    bank_results = Column(JSON, nullable=False, default=list)


APPLICATION_TABLES: Dict[FormKind, Type[Base]] = {
    FormKind.EIN: EINApplicationRow,
    FormKind.LLC: LLCApplicationRow,
    FormKind.LICENSES: BusinessLicenseRow,
    FormKind.BANKING: BankingOptionRow,
}

_ROW_KEYS = ("id", "user_id", "created_at", "updated_at")


def payload_columns(form_kind: FormKind) -> List[str]:
    """Return the payload column names for a form table."""
    table = APPLICATION_TABLES[FormKind(form_kind)].__table__
    return [column.name for column in table.columns if column.name not in _ROW_KEYS]


def _filter_payload(form_kind: FormKind, payload: Dict[str, Any]) -> Dict[str, Any]:
    columns = payload_columns(form_kind)
    unknown = set(payload) - set(columns)
    if unknown:
        logger.warning(f"Ignoring unknown {FormKind(form_kind).value} columns: {sorted(unknown)}")
    return {key: payload[key] for key in columns if key in payload}


class ApplicationGateway(ABC):
    """
    Persistence contract for saved worksheets.

    upsert returns True on success and raises PersistenceError on failure.
    load_latest returns None when the user has no saved row (or on read failure).
    """

    @abstractmethod
    async def upsert(self, form_kind: FormKind, user_id: str, payload: Dict[str, Any]) -> bool:
        """Overwrite the user's latest row for the form, inserting one if none exists."""

    @abstractmethod
    async def load_latest(self, form_kind: FormKind, user_id: str) -> Optional[Dict[str, Any]]:
        """Return the payload of the user's most recently created row."""

    def get_name(self) -> str:
        return self.__class__.__name__


class SqlApplicationGateway(ApplicationGateway):
    """
    PostgreSQL gateway over SQLAlchemy async sessions.

    Provides:
    - Latest-row-per-user reads (ORDER BY created_at DESC LIMIT 1)
    - Update-or-insert saves with rollback on failure
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    @staticmethod
    def _latest_statement(row_type, user_id: str):
        return (
            select(row_type)
            .where(row_type.user_id == user_id)
            .order_by(row_type.created_at.desc())
            .limit(1)
        )

    async def upsert(self, form_kind: FormKind, user_id: str, payload: Dict[str, Any]) -> bool:
        """
        Save a worksheet payload for a user.

        Args:
            form_kind: Worksheet table to write
            user_id: Owner of the row
            payload: Column values (see payload_columns)

        Raises:
            PersistenceError: If the database write failed
        """
        form_kind = FormKind(form_kind)
        row_type = APPLICATION_TABLES[form_kind]
        values = _filter_payload(form_kind, payload)

        async with self.session_factory() as session:
            try:
                result = await session.execute(self._latest_statement(row_type, user_id))
                row = result.scalar_one_or_none()

                if row is None:
                    session.add(row_type(user_id=user_id, **values))
                    action = "Inserted"
                else:
                    for key, value in values.items():
                        setattr(row, key, value)
                    row.updated_at = _utc_now()
                    action = "Updated"

                await session.commit()
                logger.info(f"{action} {form_kind.value} application for user {user_id}")
                return True

            except Exception as e:
                logger.error(f"Failed to save {form_kind.value} application for user {user_id}: {e}")
                await session.rollback()
                raise PersistenceError(f"Could not save {form_kind.value} application: {e}") from e

    async def load_latest(self, form_kind: FormKind, user_id: str) -> Optional[Dict[str, Any]]:
        """
        Load the most recently created row for a user.

        Returns:
            Payload dict or None
        """
        form_kind = FormKind(form_kind)
        row_type = APPLICATION_TABLES[form_kind]

        try:
            async with self.session_factory() as session:
                result = await session.execute(self._latest_statement(row_type, user_id))
                row = result.scalar_one_or_none()
                if row is None:
                    return None
                return {key: getattr(row, key) for key in payload_columns(form_kind)}

        except Exception as e:
            logger.error(f"Failed to load {form_kind.value} application for user {user_id}: {e}")
            return None


class InMemoryApplicationGateway(ApplicationGateway):
    """
    In-process gateway used when PostgreSQL is disabled.

    Rows live for the lifetime of the process and follow the same
    latest-row-wins rules as the SQL gateway.
    """

    def __init__(self):
        self._rows: Dict[Tuple[FormKind, str], List[Dict[str, Any]]] = {}

    async def upsert(self, form_kind: FormKind, user_id: str, payload: Dict[str, Any]) -> bool:
        form_kind = FormKind(form_kind)
        values = copy.deepcopy(_filter_payload(form_kind, payload))
        rows = self._rows.setdefault((form_kind, user_id), [])
        now = _utc_now()

        if rows:
            latest = max(rows, key=lambda row: row["created_at"])
            latest["values"].update(values)
            latest["updated_at"] = now
        else:
            rows.append({"id": _new_id(), "created_at": now, "updated_at": now, "values": values})

        logger.debug(f"Saved {form_kind.value} application for user {user_id} in memory")
        return True

    async def load_latest(self, form_kind: FormKind, user_id: str) -> Optional[Dict[str, Any]]:
        rows = self._rows.get((FormKind(form_kind), user_id))
        if not rows:
            return None
        latest = max(rows, key=lambda row: row["created_at"])
        return copy.deepcopy(latest["values"])

    def row_count(self, form_kind: FormKind, user_id: str) -> int:
        return len(self._rows.get((FormKind(form_kind), user_id), []))


def create_application_gateway(
    session_factory: Optional[async_sessionmaker] = None,
) -> ApplicationGateway:
    """Build the SQL gateway when a session factory is available, else the in-memory one."""
    if session_factory is None:
        logger.info("PostgreSQL not configured; saved applications are kept in memory")
        return InMemoryApplicationGateway()
    return SqlApplicationGateway(session_factory)
