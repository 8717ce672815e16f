import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from timely.config import Settings
from timely.deps import AuthenticatedUser, get_optional_user, get_settings, get_store
from timely.models.user import User
from timely.services import account_service
from timely.services.auth_service import create_session_token
from timely.services.rate_limit import client_key, limit
from timely.services.streak import today_in
from timely.services.user_store import UserStore
from timely.utils.cookies import clear_session_cookie, session_cookie_flags

router = APIRouter(prefix="/api/auth", tags=["auth"])

logger = logging.getLogger("timely.auth")


# ---------------------- MODELS ----------------------
class LoginIn(BaseModel):
    token: Optional[str] = None


# ---------------------- HELPERS ----------------------
def set_session_cookie(response: Response, user_id, settings: Settings) -> None:
    response.set_cookie(
        value=create_session_token(user_id, settings),
        max_age=settings.session_ttl_seconds,
        **session_cookie_flags(settings),
    )


def user_summary(user: User) -> dict:
    return {
        "id": str(user.id),
        "username": user.username,
        "avatar": user.avatar,
        "streak": user.streak_current,
        "has_profile": user.has_profile,
    }


# ---------------------- ROUTES ----------------------
@router.post("/register", status_code=status.HTTP_201_CREATED, dependencies=[Depends(limit("register"))])
async def register(
    response: Response,
    store: UserStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    user, raw_secret = await account_service.register(store)
    set_session_cookie(response, user.id, settings)
    return {
        "message": "Account created successfully!",
        "token": raw_secret,
        "user_id": str(user.id),
        "warning": "Save this token securely! You will need it to log in.",
    }


@router.post("/login", dependencies=[Depends(limit("login"))])
async def login(
    payload: LoginIn,
    request: Request,
    response: Response,
    store: UserStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    user = await account_service.login(store, payload.token, today_in(settings.streak_timezone))
    # successful logins do not count against the limit
    request.app.state.limiters["login"].forgive(client_key(request))
    set_session_cookie(response, user.id, settings)
    return {"message": "Login successful!", "user": user_summary(user)}


@router.post("/logout")
async def logout(
    current_user: AuthenticatedUser,
    settings: Settings = Depends(get_settings),
):
    logger.info(f"User {current_user.id} logged out.")
    resp = JSONResponse({"message": "Logged out successfully"})
    clear_session_cookie(resp, settings)
    return resp


@router.get("/check")
async def check(current_user: Optional[User] = Depends(get_optional_user)):
    if current_user is None:
        return JSONResponse({"authenticated": False}, status_code=status.HTTP_401_UNAUTHORIZED)
    return {
        "authenticated": True,
        "user": {
            "id": str(current_user.id),
            "username": current_user.username,
            "avatar": current_user.avatar,
            "streak": current_user.streak_current,
            "stats": current_user.stats_dict(),
        },
    }
