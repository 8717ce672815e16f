import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from timely.config import Settings
from timely.deps import AuthenticatedUser, get_settings, get_store
from timely.services import account_service
from timely.services.streak import today_in
from timely.services.user_store import UserStore

router = APIRouter(prefix="/api/sessions", tags=["sessions"])

logger = logging.getLogger("timely.sessions")


class CompletedItem(BaseModel):
    text: str = Field(max_length=500)
    duration: int = Field(ge=0)


class PlaybackSettings(BaseModel):
    vibrations: Optional[int] = Field(default=None, ge=0)
    sound: Optional[str] = None
    duration: Optional[int] = Field(default=None, ge=0)


class CompleteSessionIn(BaseModel):
    stack_id: Optional[str] = Field(default=None, max_length=64)
    total_duration: int = Field(ge=0)
    completed_items: List[CompletedItem] = []
    settings: Optional[PlaybackSettings] = None


@router.post("", status_code=status.HTTP_201_CREATED)
async def complete_session(
    payload: CompleteSessionIn,
    current_user: AuthenticatedUser,
    store: UserStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    record = await account_service.complete_session(
        store,
        current_user,
        total_duration=payload.total_duration,
        completed_items=[item.model_dump() for item in payload.completed_items],
        today=today_in(settings.streak_timezone),
        stack_id=payload.stack_id,
        settings=payload.settings.model_dump() if payload.settings else None,
    )
    return {
        "message": "Session saved successfully",
        "session_id": str(record.id),
        "streak": current_user.streak_dict(),
        "stats": current_user.stats_dict(),
    }


@router.get("/history")
async def session_history(
    current_user: AuthenticatedUser,
    limit: int = Query(20, ge=1, le=100),
    page: int = Query(1, ge=1),
    store: UserStore = Depends(get_store),
):
    sessions = await store.list_sessions(current_user, limit=limit, page=page)
    return {"sessions": [s.to_dict() for s in sessions], "page": page, "limit": limit}
