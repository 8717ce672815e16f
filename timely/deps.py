# timely/deps.py
import logging
from typing import Annotated, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from timely.config import Settings
from timely.errors import MissingSessionError, SessionError, UserGoneError
from timely.models.user import User
from timely.services.auth_service import decode_session_token
from timely.services.user_store import UserStore
from timely.utils.database import get_db

logger = logging.getLogger("timely.deps")


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(db: AsyncSession = Depends(get_db), settings: Settings = Depends(get_settings)) -> UserStore:
    return UserStore(db, bcrypt_rounds=settings.bcrypt_rounds)


async def _resolve_session(request: Request, store: UserStore, settings: Settings) -> User:
    token = request.cookies.get(settings.cookie_name)
    if not token:
        raise MissingSessionError()
    user_id = decode_session_token(token, settings)
    user = await store.get_by_id(user_id)
    if user is None:
        raise UserGoneError()
    return user


async def get_current_user(
    request: Request,
    store: UserStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> User:
    """
    Expect the session cookie.
    Returns User instance or raises a SessionError (401, cookie cleared).
    """
    return await _resolve_session(request, store, settings)


async def get_optional_user(
    request: Request,
    store: UserStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> Optional[User]:
    """Like get_current_user, but any failure means anonymous."""
    try:
        return await _resolve_session(request, store, settings)
    except SessionError as e:
        logger.debug(f"Optional auth failed: {type(e).__name__}")
        return None


AuthenticatedUser = Annotated[User, Depends(get_current_user)]
