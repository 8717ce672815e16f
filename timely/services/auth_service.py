import base64
import hashlib
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from functools import lru_cache

import bcrypt
import jwt

from timely.config import Settings
from timely.errors import ExpiredSessionError, InvalidSignatureError


# ---------------- SECRET HASHING ----------------

def _bcrypt_input(raw_secret: str) -> bytes:
    # bcrypt only reads 72 bytes; digest first so every character of the secret counts
    return base64.b64encode(hashlib.sha256(raw_secret.encode("utf-8")).digest())


def hash_secret(raw_secret: str, rounds: int = 12) -> str:
    """Hash a raw secret using bcrypt."""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(_bcrypt_input(raw_secret), salt).decode("utf-8")


def verify_secret(raw_secret: str, hashed_secret: str) -> bool:
    """Verify a raw secret against its bcrypt hash."""
    try:
        return bcrypt.checkpw(_bcrypt_input(raw_secret), hashed_secret.encode("utf-8"))
    except ValueError:
        return False


@lru_cache(maxsize=None)
def dummy_hash(rounds: int) -> str:
    """A hash of a throwaway secret, compared against when a login has no candidate user."""
    return hash_secret(secrets.token_hex(64), rounds)


# ---------------- SESSION TOKENS ----------------

def create_session_token(user_id, settings: Settings, now: datetime | None = None) -> str:
    """Generate a signed session JWT for a user."""
    issued_at = now or datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "iat": issued_at,
        "exp": issued_at + timedelta(days=settings.session_ttl_days),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_session_token(token: str, settings: Settings) -> uuid.UUID:
    """Check signature and expiry, return the user id the token was issued for."""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise ExpiredSessionError() from e
    except jwt.InvalidTokenError as e:
        raise InvalidSignatureError() from e

    try:
        return uuid.UUID(payload["sub"])
    except (TypeError, ValueError) as e:
        raise InvalidSignatureError() from e
