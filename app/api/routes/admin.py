from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, ValidationError

from api.dependencies.rate_limits import get_limiter
from infrastructure.logging import get_module_logger
from infrastructure.services import EngineDep
from modules.bot_engine.admin import AllowlistModeError, DashboardStats, EventPage
from modules.bot_engine.models import (
    AllowedUser,
    DuplicateRecordError,
    PersistenceError,
    RecordNotFoundError,
    Subscription,
)

logger = get_module_logger()
limiter = get_limiter()


def require_admin_enabled(engine: EngineDep) -> None:
    """Hide the administrative routes entirely when the admin surface is off."""
    if not engine.config.admin_enabled:
        raise HTTPException(status_code=404, detail="Not Found")


router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(require_admin_enabled)],
)


class AllowedUserCreate(BaseModel):
    username: str
    note: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


def _store_unavailable(e: PersistenceError) -> HTTPException:
    logger.error("admin_store_unavailable", error=str(e))
    return HTTPException(status_code=503, detail="Storage backend unavailable")


@router.get("/dashboard", response_model=DashboardStats)
@limiter.limit("60/minute")
def dashboard(request: Request, engine: EngineDep):  # pylint: disable=unused-argument
    try:
        return engine.admin.dashboard()
    except PersistenceError as e:
        raise _store_unavailable(e) from e


@router.get("/allowlist", response_model=List[AllowedUser])
@limiter.limit("60/minute")
def list_allowlist(request: Request, engine: EngineDep):  # pylint: disable=unused-argument
    try:
        return engine.admin.list_allowed_users()
    except AllowlistModeError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except PersistenceError as e:
        raise _store_unavailable(e) from e


@router.post("/allowlist", response_model=AllowedUser, status_code=201)
@limiter.limit("60/minute")
def add_to_allowlist(
    request: Request,  # pylint: disable=unused-argument
    payload: AllowedUserCreate,
    engine: EngineDep,
):
    try:
        return engine.admin.add_allowed_user(payload.username, payload.note)
    except AllowlistModeError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except ValidationError as e:
        raise HTTPException(
            status_code=422,
            detail=e.errors(
                include_url=False, include_context=False, include_input=False
            ),
        ) from e
    except DuplicateRecordError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except PersistenceError as e:
        raise _store_unavailable(e) from e


@router.delete("/allowlist/{username}", response_model=MessageResponse)
@limiter.limit("60/minute")
def remove_from_allowlist(
    request: Request, username: str, engine: EngineDep
):  # pylint: disable=unused-argument
    try:
        engine.admin.remove_allowed_user(username)
    except AllowlistModeError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except PersistenceError as e:
        raise _store_unavailable(e) from e
    return MessageResponse(message="Username removed from allowlist.")


@router.get("/subscriptions", response_model=List[Subscription])
@limiter.limit("60/minute")
def list_subscriptions(request: Request, engine: EngineDep):  # pylint: disable=unused-argument
    try:
        return engine.admin.list_subscriptions()
    except PersistenceError as e:
        raise _store_unavailable(e) from e


@router.post("/subscriptions/{chat_id}/toggle", response_model=Subscription)
@limiter.limit("60/minute")
def toggle_subscription(
    request: Request, chat_id: int, engine: EngineDep
):  # pylint: disable=unused-argument
    try:
        return engine.admin.toggle_subscription(chat_id)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except PersistenceError as e:
        raise _store_unavailable(e) from e


@router.delete("/subscriptions/{chat_id}", response_model=MessageResponse)
@limiter.limit("60/minute")
def delete_subscription(
    request: Request, chat_id: int, engine: EngineDep
):  # pylint: disable=unused-argument
    try:
        engine.admin.delete_subscription(chat_id)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except PersistenceError as e:
        raise _store_unavailable(e) from e
    return MessageResponse(message="Subscription deleted.")


@router.get("/events", response_model=EventPage)
@limiter.limit("60/minute")
def list_events(
    request: Request,  # pylint: disable=unused-argument
    engine: EngineDep,
    event_type: Optional[str] = Query(default=None, alias="type"),
    action: Optional[str] = Query(default=None),
    chat_id: Optional[int] = Query(default=None),
    page: int = Query(default=1),
):
    try:
        return engine.admin.list_events(
            event_type=event_type, action=action, chat_id=chat_id, page=page
        )
    except PersistenceError as e:
        raise _store_unavailable(e) from e
