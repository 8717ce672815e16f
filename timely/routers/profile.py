# timely/routers/profile.py
import logging
import re

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator

from timely.deps import AuthenticatedUser, get_store
from timely.models.user import AVATARS
from timely.services.user_store import UserStore

router = APIRouter(prefix="/api/user", tags=["profile"])

logger = logging.getLogger("timely.profile")

_USERNAME_RE = re.compile(r"^[a-zA-Z0-9_\- ]+$")
_SHORTCUT_KEY_RE = re.compile(r"^[A-Z]{1,3}$")


class UpdateProfile(BaseModel):
    username: str | None = None
    avatar: str | None = None

    @field_validator("username")
    @classmethod
    def valid_username(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not 2 <= len(v) <= 30:
            raise ValueError("Username must be between 2 and 30 characters")
        if not _USERNAME_RE.match(v):
            raise ValueError("Username can only contain letters, numbers, spaces, hyphens and underscores")
        return v

    @field_validator("avatar")
    @classmethod
    def valid_avatar(cls, v):
        if v is not None and v not in AVATARS:
            raise ValueError("Invalid avatar selection")
        return v


class ShortcutIn(BaseModel):
    key: str
    text: str

    @field_validator("key")
    @classmethod
    def valid_key(cls, v):
        v = v.strip().upper()
        if not _SHORTCUT_KEY_RE.match(v):
            raise ValueError("Shortcut key must be 1-3 letters")
        return v

    @field_validator("text")
    @classmethod
    def valid_text(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Text is required")
        if len(v) > 200:
            raise ValueError("Text cannot exceed 200 characters")
        return v


@router.patch("/profile")
async def update_profile(
    payload: UpdateProfile,
    current_user: AuthenticatedUser,
    store: UserStore = Depends(get_store),
):
    user = await store.update_profile(current_user, username=payload.username, avatar=payload.avatar)
    return {
        "message": "Profile updated successfully",
        "user": {"id": str(user.id), "username": user.username, "avatar": user.avatar},
    }


@router.get("/profile/stats")
async def get_stats(current_user: AuthenticatedUser):
    # safe projection only (no secret hash or prefix)
    return {
        "streak": current_user.streak_dict(),
        "stats": current_user.stats_dict(),
        "username": current_user.username,
        "avatar": current_user.avatar,
    }


@router.get("/shortcuts")
async def get_shortcuts(current_user: AuthenticatedUser):
    return {"shortcuts": [{"key": s.key, "text": s.text} for s in current_user.shortcuts]}


@router.post("/shortcuts", status_code=status.HTTP_201_CREATED)
async def add_shortcut(
    payload: ShortcutIn,
    current_user: AuthenticatedUser,
    store: UserStore = Depends(get_store),
):
    shortcut = await store.add_shortcut(current_user, payload.key, payload.text)
    logger.info(f"Shortcut {shortcut.key} added for user {current_user.id}.")
    return {"message": "Shortcut added successfully", "shortcut": {"key": shortcut.key, "text": shortcut.text}}


@router.delete("/shortcuts/{key}")
async def delete_shortcut(
    key: str,
    current_user: AuthenticatedUser,
    store: UserStore = Depends(get_store),
):
    await store.remove_shortcut(current_user, key)
    return {"message": "Shortcut deleted successfully"}
