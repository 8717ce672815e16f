# timely/config.py
import logging
import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

# load .env file automatically
load_dotenv()

logger = logging.getLogger("timely.config")

DEV_JWT_SECRET = "supersecretkey"
DEFAULT_ORIGINS = [
    "http://localhost:5173",
    "http://localhost:7173",
    "http://127.0.0.1:5173",
]


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration. Built once at startup and handed to the app."""

    database_url: str = "sqlite+aiosqlite:///./timely.db"
    jwt_secret: str = DEV_JWT_SECRET
    jwt_algorithm: str = "HS256"
    session_ttl_days: int = 7
    cookie_name: str = "token"
    cookie_secure: bool = False
    bcrypt_rounds: int = 12
    streak_timezone: str = "UTC"
    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_ORIGINS))
    rate_limit_enabled: bool = True
    log_level: str = "INFO"

    @property
    def session_ttl_seconds(self) -> int:
        return self.session_ttl_days * 24 * 60 * 60

    @classmethod
    def from_env(cls) -> "Settings":
        origins = [o.strip() for o in os.getenv("CORS_ORIGINS", ",".join(DEFAULT_ORIGINS)).split(",") if o.strip()]
        frontend_url = os.getenv("FRONTEND_URL")
        if frontend_url:
            origins.append(frontend_url)

        jwt_secret = os.getenv("JWT_SECRET", DEV_JWT_SECRET)
        if jwt_secret == DEV_JWT_SECRET:
            logger.warning("JWT_SECRET not set; using the development signing key.")

        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            jwt_secret=jwt_secret,
            jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
            session_ttl_days=int(os.getenv("SESSION_TTL_DAYS", "7")),
            cookie_name=os.getenv("COOKIE_NAME", "token"),
            cookie_secure=_env_bool("COOKIE_SECURE", False),
            bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", "12")),
            streak_timezone=os.getenv("STREAK_TIMEZONE", "UTC"),
            cors_origins=origins,
            rate_limit_enabled=_env_bool("RATE_LIMIT_ENABLED", True),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
