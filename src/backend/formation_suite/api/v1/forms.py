"""
Form Session API Endpoints
FastAPI router for the four formation worksheets (EIN, LLC, licenses, banking)

Every event loads the draft session, hands it to the worksheet controller and
stores the result. Only the save endpoint writes to the application store.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Path
from pydantic import BaseModel, Field

from ...database.form_session_storage import FormSessionStorage, get_form_session_storage
from ...exceptions import FormationSuiteError, FormFieldError, SessionNotFoundError
from ...models.applications import FormKind
from ...models.form_session import FormSession
from ...models.notification import Notification
from ...services.forms import FormControllerRegistry
from ...utils.logging_context import bind_form_event_context, bind_session_context, log_performance

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/forms", tags=["forms"])

SESSION_ID_PATTERN = r"^[a-fA-F0-9-]{8,50}$"


# Dependency injection placeholder (overridden in main.py)
def get_form_registry_dep() -> FormControllerRegistry:
    """Dependency injection placeholder for form controllers - overridden in main.py"""
    raise RuntimeError("Form registry dependency not initialized")


def get_user_id(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    """Authenticated user from the X-User-Id header (blank means anonymous)."""
    if x_user_id is None or not x_user_id.strip():
        return None
    return x_user_id.strip()


class StartSessionRequest(BaseModel):
    """Request model for starting or resuming a draft"""

    session_id: Optional[str] = Field(default=None, pattern=SESSION_ID_PATTERN)
    reset: bool = False
    metadata: Dict[str, Any] = Field(default_factory=dict)


class FieldUpdateRequest(BaseModel):
    """Field edits applied in order; nested party fields use dotted names"""

    fields: Dict[str, Any] = Field(..., min_length=1)


class ZipRequest(BaseModel):
    zip_code: str = ""


class MemberRequest(BaseModel):
    name: str = ""


class BusinessTypeRequest(BaseModel):
    business_type: str


class BankSearchRequest(BaseModel):
    zip_code: Optional[str] = None


class FormSessionResponse(BaseModel):
    """Response model for every form event"""

    session_id: str
    form_kind: FormKind
    owner_user_id: Optional[str] = None
    record: Dict[str, Any]
    view: Dict[str, Any] = Field(default_factory=dict)
    notifications: List[Notification] = Field(default_factory=list)
    created_at: str
    last_updated: str


class SaveResponse(FormSessionResponse):
    saved: bool


def _to_http_exception(exc: FormationSuiteError) -> HTTPException:
    if isinstance(exc, SessionNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, FormFieldError):
        return HTTPException(
            status_code=422, detail={"message": str(exc), "field": exc.field_name}
        )
    return HTTPException(status_code=500, detail=str(exc))


def _session_response(session: FormSession, registry: FormControllerRegistry) -> Dict[str, Any]:
    controller = registry.get(session.form_kind)
    return {
        "session_id": session.session_id,
        "form_kind": session.form_kind,
        "owner_user_id": session.owner_user_id,
        "record": session.record.model_dump(),
        "view": controller.project(session.record),
        "notifications": session.notifications,
        "created_at": session.created_at.isoformat(),
        "last_updated": session.last_updated.isoformat(),
    }


async def _select_latest_session_for_user(
    storage: FormSessionStorage,
    user_id: str,
    form_kind: FormKind,
) -> Optional[FormSession]:
    """
    Retrieve the most recently updated draft of one worksheet for a user.
    Uses batch retrieval to avoid one round-trip per session.
    """
    session_ids = await storage.get_sessions_for_user(user_id)
    if not session_ids:
        return None

    sessions = await storage.get_sessions_batch(session_ids)

    candidates = [
        candidate
        for candidate in sessions.values()
        if candidate is not None and candidate.form_kind == form_kind
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda candidate: candidate.last_updated)


async def get_or_create_session(
    form_kind: FormKind,
    registry: FormControllerRegistry,
    *,
    session_id: Optional[str] = None,
    reset: bool = False,
    user_id: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> FormSession:
    """
    Resume a draft or start a new one.

    Resolution order: the explicit session id, then the user's latest draft of
    this worksheet, then a new draft seeded from the user's latest saved record.
    With reset, the draft starts from defaults and keeps the given session id.

    Raises:
        SessionNotFoundError: If session_id names a draft of another worksheet
    """
    storage = get_form_session_storage()
    controller = registry.get(form_kind)

    if session_id:
        existing = await storage.get_session(session_id)
        if existing is not None and existing.form_kind != form_kind:
            raise SessionNotFoundError(session_id)

        if existing is not None and not reset:
            if user_id and not existing.owner_user_id:
                existing.owner_user_id = user_id
                await storage.save_session(existing, metadata=metadata)
            logger.info(f"Resumed {form_kind.value} session {session_id}")
            return existing

    if user_id and not reset:
        existing = await _select_latest_session_for_user(storage, user_id, form_kind)
        if existing is not None:
            logger.info(f"Reused {form_kind.value} session {existing.session_id} for user {user_id}")
            return existing

    form_session = FormSession(
        session_id=session_id or str(uuid.uuid4()),
        form_kind=form_kind,
        record=controller.new_record(),
        owner_user_id=user_id,
        metadata=metadata or {},
    )

    if not reset:
        await controller.load(form_session, user_id)

    await storage.save_session(form_session)
    logger.info(f"Created {form_kind.value} session {form_session.session_id} (owner: {user_id})")
    return form_session


async def load_form_session(form_kind: FormKind, session_id: str) -> FormSession:
    """
    Load a draft and check it belongs to the worksheet in the path.

    Raises:
        SessionNotFoundError: If the draft does not exist or is of another kind
    """
    form_session = await get_form_session_storage().get_session(session_id)
    if form_session is None or form_session.form_kind != form_kind:
        raise SessionNotFoundError(session_id)

    bind_session_context(session_id=session_id, form_kind=form_kind.value)
    return form_session


async def store_form_session(form_session: FormSession):
    await get_form_session_storage().save_session(form_session)


_ERROR_RESPONSES = {
    404: {
        "description": "Draft session not found for this worksheet",
        "content": {
            "application/json": {
                "example": {"detail": "Form session not found: 550e8400-e29b-41d4-a716-446655440000"}
            }
        },
    },
    422: {
        "description": "Unknown or read-only field, or member index out of range",
        "content": {
            "application/json": {
                "example": {"detail": {"message": "Unknown field 'llc_nmae' for LLCApplication", "field": "llc_nmae"}}
            }
        },
    },
    500: {"description": "Internal Server Error"},
}


@router.post(
    "/{form_kind}/sessions",
    response_model=FormSessionResponse,
    summary="Start or resume a worksheet draft",
    description="""
Start a draft for one worksheet, or resume an existing one.

**Resolution order:**
1. `session_id` in the body, if that draft exists for this worksheet
2. The most recently updated draft of this worksheet for `X-User-Id`
3. A new draft, pre-filled from the user's latest saved record when there is one

Set `reset=true` to discard the draft contents and start from defaults.
Anonymous drafts (no `X-User-Id`) work for every event except save.
    """,
    responses=_ERROR_RESPONSES,
)
async def start_session(
    form_kind: FormKind,
    request: Optional[StartSessionRequest] = None,
    user_id: Optional[str] = Depends(get_user_id),
    registry: FormControllerRegistry = Depends(get_form_registry_dep),
):
    """Start or resume a draft"""
    request = request or StartSessionRequest()
    try:
        form_session = await get_or_create_session(
            form_kind,
            registry,
            session_id=request.session_id,
            reset=request.reset,
            user_id=user_id,
            metadata=request.metadata,
        )
        return _session_response(form_session, registry)

    except FormationSuiteError as e:
        raise _to_http_exception(e)
    except Exception as e:
        logger.error(f"Error starting {form_kind.value} session: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@router.get(
    "/{form_kind}/sessions/{session_id}",
    response_model=FormSessionResponse,
    summary="Get the current draft",
    responses=_ERROR_RESPONSES,
)
async def get_session(
    form_kind: FormKind,
    session_id: str,
    registry: FormControllerRegistry = Depends(get_form_registry_dep),
):
    try:
        form_session = await load_form_session(form_kind, session_id)
        return _session_response(form_session, registry)

    except FormationSuiteError as e:
        raise _to_http_exception(e)
    except Exception as e:
        logger.error(f"Error getting session {session_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@router.delete(
    "/{form_kind}/sessions/{session_id}",
    summary="Discard a draft",
    description="""
Delete a draft session. Saved records in the application store are not affected.
    """,
    responses=_ERROR_RESPONSES,
)
async def delete_session(form_kind: FormKind, session_id: str):
    try:
        await load_form_session(form_kind, session_id)
        await get_form_session_storage().delete_session(session_id)
        logger.info(f"Deleted {form_kind.value} session {session_id}")
        return {"message": "Session deleted", "session_id": session_id}

    except FormationSuiteError as e:
        raise _to_http_exception(e)
    except Exception as e:
        logger.error(f"Error deleting session {session_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@router.patch(
    "/{form_kind}/sessions/{session_id}/fields",
    response_model=FormSessionResponse,
    summary="Edit draft fields",
    description="""
Apply field edits in the order given. Values are coerced to the field type
(`employees_expected` falls back to 0 when it does not parse).

On the LLC worksheet `business_zip` runs state detection and `business_state`
is a manual state selection. On the license worksheet `business_type`
resets the checklist.

Read-only fields (member list, jurisdiction snapshot, search results) are
changed through their own endpoints and are rejected here.
    """,
    responses=_ERROR_RESPONSES,
)
async def update_fields(
    form_kind: FormKind,
    session_id: str,
    request: FieldUpdateRequest,
    registry: FormControllerRegistry = Depends(get_form_registry_dep),
):
    try:
        form_session = await load_form_session(form_kind, session_id)
        controller = registry.get(form_kind)

        notifications: List[Notification] = []
        for name, value in request.fields.items():
            bind_form_event_context("field_set", field_name=name)
            form_session = controller.set_field(form_session, name, value)
            notifications.extend(form_session.notifications)
        form_session.notifications = notifications

        await store_form_session(form_session)
        return _session_response(form_session, registry)

    except FormationSuiteError as e:
        raise _to_http_exception(e)
    except Exception as e:
        logger.error(f"Error updating fields of session {session_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@router.post(
    "/{form_kind}/sessions/{session_id}/save",
    response_model=SaveResponse,
    summary="Save the draft for the current user",
    description="""
Persist the draft to the application store for `X-User-Id`, overwriting the
user's latest saved record for this worksheet.

Missing authentication and store failures are not HTTP errors: the response
has `saved=false` and a notification, and the draft is kept as it was.
    """,
    responses=_ERROR_RESPONSES,
)
async def save_session(
    form_kind: FormKind,
    session_id: str,
    user_id: Optional[str] = Depends(get_user_id),
    registry: FormControllerRegistry = Depends(get_form_registry_dep),
):
    try:
        form_session = await load_form_session(form_kind, session_id)
        bind_form_event_context("save")

        saved = await registry.get(form_kind).save(form_session, user_id)
        if saved and not form_session.owner_user_id:
            form_session.owner_user_id = user_id

        await store_form_session(form_session)
        return {**_session_response(form_session, registry), "saved": saved}

    except FormationSuiteError as e:
        raise _to_http_exception(e)
    except Exception as e:
        logger.error(f"Error saving session {session_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


# LLC


@router.post(
    "/llc/sessions/{session_id}/zip",
    response_model=FormSessionResponse,
    summary="Change the LLC business ZIP code",
    description="""
Write the ZIP code and detect the state from its first three characters.

A newly detected state overwrites the business state and the jurisdiction
snapshot (filing fee, publication, operating agreement and annual report
requirements, franchise tax, special requirements) and returns a
"State Detected" notification. An unknown prefix, or the state already
detected, leaves the snapshot untouched with no notification.
    """,
    responses=_ERROR_RESPONSES,
)
async def change_llc_zip(
    session_id: str,
    request: ZipRequest,
    registry: FormControllerRegistry = Depends(get_form_registry_dep),
):
    try:
        form_session = await load_form_session(FormKind.LLC, session_id)
        bind_form_event_context("zip_changed")
        form_session = registry.llc.on_zip_changed(form_session, request.zip_code)
        await store_form_session(form_session)
        return _session_response(form_session, registry)

    except FormationSuiteError as e:
        raise _to_http_exception(e)
    except Exception as e:
        logger.error(f"Error changing ZIP of session {session_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@router.post(
    "/llc/sessions/{session_id}/members",
    response_model=FormSessionResponse,
    summary="Add an LLC member entry",
    responses=_ERROR_RESPONSES,
)
async def add_llc_member(
    session_id: str,
    request: Optional[MemberRequest] = None,
    registry: FormControllerRegistry = Depends(get_form_registry_dep),
):
    """Append a member entry, optionally filled with a name"""
    try:
        form_session = await load_form_session(FormKind.LLC, session_id)
        bind_form_event_context("member_added")

        form_session = registry.llc.add_member(form_session)
        if request and request.name:
            last_index = len(form_session.record.member_names) - 1
            form_session = registry.llc.update_member(form_session, last_index, request.name)

        await store_form_session(form_session)
        return _session_response(form_session, registry)

    except FormationSuiteError as e:
        raise _to_http_exception(e)
    except Exception as e:
        logger.error(f"Error adding member to session {session_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@router.put(
    "/llc/sessions/{session_id}/members/{index}",
    response_model=FormSessionResponse,
    summary="Rename an LLC member entry",
    responses=_ERROR_RESPONSES,
)
async def update_llc_member(
    session_id: str,
    request: MemberRequest,
    index: int = Path(..., ge=0),
    registry: FormControllerRegistry = Depends(get_form_registry_dep),
):
    try:
        form_session = await load_form_session(FormKind.LLC, session_id)
        bind_form_event_context("member_updated", member_index=index)
        form_session = registry.llc.update_member(form_session, index, request.name)
        await store_form_session(form_session)
        return _session_response(form_session, registry)

    except FormationSuiteError as e:
        raise _to_http_exception(e)
    except Exception as e:
        logger.error(f"Error updating member {index} of session {session_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@router.delete(
    "/llc/sessions/{session_id}/members/{index}",
    response_model=FormSessionResponse,
    summary="Remove an LLC member entry",
    description="Remaining entries keep their order; removing the only entry leaves one blank entry.",
    responses=_ERROR_RESPONSES,
)
async def remove_llc_member(
    session_id: str,
    index: int = Path(..., ge=0),
    registry: FormControllerRegistry = Depends(get_form_registry_dep),
):
    try:
        form_session = await load_form_session(FormKind.LLC, session_id)
        bind_form_event_context("member_removed", member_index=index)
        form_session = registry.llc.remove_member(form_session, index)
        await store_form_session(form_session)
        return _session_response(form_session, registry)

    except FormationSuiteError as e:
        raise _to_http_exception(e)
    except Exception as e:
        logger.error(f"Error removing member {index} of session {session_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


# Licenses


@router.post(
    "/licenses/sessions/{session_id}/business-type",
    response_model=FormSessionResponse,
    summary="Select the business category",
    description="""
Fill the license checklist for the category (unknown categories use "Other"),
reset every portal link to blank and clear the permit steps.
    """,
    responses=_ERROR_RESPONSES,
)
async def select_business_type(
    session_id: str,
    request: BusinessTypeRequest,
    registry: FormControllerRegistry = Depends(get_form_registry_dep),
):
    try:
        form_session = await load_form_session(FormKind.LICENSES, session_id)
        bind_form_event_context("business_type_changed", business_type=request.business_type)
        form_session = registry.licenses.on_business_type_changed(form_session, request.business_type)
        await store_form_session(form_session)
        return _session_response(form_session, registry)

    except FormationSuiteError as e:
        raise _to_http_exception(e)
    except Exception as e:
        logger.error(f"Error selecting business type for session {session_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@router.post(
    "/licenses/sessions/{session_id}/search",
    response_model=FormSessionResponse,
    summary="Search required licenses and permits",
    description="""
Requires a business type and a business state; otherwise returns a
"Missing Information" notification. The result is the category checklist
followed by the state registration items, one state portal link per item,
and the standard permit steps.
    """,
    responses=_ERROR_RESPONSES,
)
async def search_licenses(
    session_id: str,
    registry: FormControllerRegistry = Depends(get_form_registry_dep),
):
    try:
        form_session = await load_form_session(FormKind.LICENSES, session_id)
        bind_form_event_context("license_search")
        with log_performance("license_search"):
            form_session = await registry.licenses.search(form_session)
        await store_form_session(form_session)
        return _session_response(form_session, registry)

    except FormationSuiteError as e:
        raise _to_http_exception(e)
    except Exception as e:
        logger.error(f"Error searching licenses for session {session_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


# Banking


@router.post(
    "/banking/sessions/{session_id}/search",
    response_model=FormSessionResponse,
    summary="Search business bank accounts",
    description="""
Optionally sets `zip_code` first. The ZIP code must be exactly five characters;
otherwise an "Invalid ZIP Code" notification is returned.
    """,
    responses=_ERROR_RESPONSES,
)
async def search_banks(
    session_id: str,
    request: Optional[BankSearchRequest] = None,
    registry: FormControllerRegistry = Depends(get_form_registry_dep),
):
    try:
        form_session = await load_form_session(FormKind.BANKING, session_id)
        bind_form_event_context("bank_search")

        if request and request.zip_code is not None:
            form_session = registry.banking.set_zip(form_session, request.zip_code)

        with log_performance("bank_search"):
            form_session = await registry.banking.search(form_session)
        await store_form_session(form_session)
        return _session_response(form_session, registry)

    except FormationSuiteError as e:
        raise _to_http_exception(e)
    except Exception as e:
        logger.error(f"Error searching banks for session {session_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))
