"""
Form Session Model
Server-held draft of one worksheet between HTTP requests
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .applications import (
    BankingLookup,
    EINApplication,
    FormKind,
    LicenseLookup,
    LLCApplication,
    parse_record,
)
from .notification import Notification

SESSION_SCHEMA_VERSION = 1


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FormSession(BaseModel):
    """
    Draft session for a single worksheet.

    The record is the explicit form state; controllers replace it with the
    result of a transition and store the notifications that transition produced.
    Nothing here is persisted to the application gateway until an explicit save.
    """

    model_config = ConfigDict(
        validate_assignment=True,
        json_schema_extra={
            "example": {
                "session_id": "550e8400-e29b-41d4-a716-446655440000",
                "form_kind": "llc",
                "owner_user_id": "user-42",
                "record": {
                    "llc_name": "Harbor Coffee LLC",
                    "business_state": "CA",
                    "business_zip": "94105",
                    "member_names": ["Dana Reyes"],
                    "jurisdiction": {
                        "detected_state": "CA",
                        "filing_fee": "$70 (Articles of Organization, Form LLC-1)",
                    },
                },
                "notifications": [
                    {
                        "title": "State Detected",
                        "description": "Detected California from ZIP code 94105. State-specific requirements have been applied.",
                        "variant": "default",
                    }
                ],
            }
        },
    )

    session_id: str
    form_kind: FormKind
    record: Union[LLCApplication, EINApplication, LicenseLookup, BankingLookup]

    owner_user_id: Optional[str] = None
    notifications: List[Notification] = Field(default_factory=list)

    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_utc_now)
    last_updated: datetime = Field(default_factory=_utc_now)
    schema_version: int = Field(default=SESSION_SCHEMA_VERSION)

    @model_validator(mode="before")
    @classmethod
    def _coerce_record(cls, data: Any) -> Any:
        """Parse the record into the model that matches form_kind."""
        if not isinstance(data, dict) or "form_kind" not in data:
            return data

        data = dict(data)
        data["record"] = parse_record(FormKind(data["form_kind"]), data.get("record"))
        return data

    @field_validator("owner_user_id", mode="before")
    @classmethod
    def _blank_owner_is_none(cls, value):
        if value is None or value == "":
            return None
        return str(value)

    def redis_key(self) -> str:
        """Return canonical Redis key for this session."""
        return f"formation:sessions:{self.session_id}"

    def touch(self):
        self.last_updated = _utc_now()
