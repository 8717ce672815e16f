from fastapi import Response

from timely.config import Settings


def session_cookie_flags(settings: Settings) -> dict:
    """Attributes shared by setting and clearing the session cookie."""
    return {
        "key": settings.cookie_name,
        "httponly": True,
        "secure": settings.cookie_secure,
        # cross-site frontends need SameSite=None, which browsers only accept with Secure
        "samesite": "none" if settings.cookie_secure else "lax",
        "path": "/",
    }


def clear_session_cookie(response: Response, settings: Settings) -> None:
    # browsers drop SameSite=None cookies that lack Secure, so the clearing
    # header has to repeat the attributes it was set with
    response.delete_cookie(**session_cookie_flags(settings))
