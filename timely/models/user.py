# timely/models/user.py
import uuid
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy.orm import relationship

from timely.utils.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


AVATARS = tuple(f"avatar{i}" for i in range(1, 13))
DEFAULT_AVATAR = AVATARS[0]


class User(Base):
    __tablename__ = "users"

    id = sa.Column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    # bcrypt hash of the raw secret; the raw secret itself is never stored
    secret_hash = sa.Column(sa.String(128), nullable=False)
    # leading slice of the raw secret, used only to narrow login lookups
    secret_prefix = sa.Column(sa.String(16), unique=True, nullable=False, index=True)

    username = sa.Column(sa.String(30), nullable=True)
    avatar = sa.Column(sa.String(16), nullable=False, default=DEFAULT_AVATAR)

    streak_current = sa.Column(sa.Integer, nullable=False, default=0)
    streak_longest = sa.Column(sa.Integer, nullable=False, default=0)
    streak_last_active = sa.Column(sa.Date, nullable=True)

    total_sessions = sa.Column(sa.Integer, nullable=False, default=0)
    total_time = sa.Column(sa.Integer, nullable=False, default=0)  # seconds
    total_items = sa.Column(sa.Integer, nullable=False, default=0)

    created_at = sa.Column(sa.DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = sa.Column(sa.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    shortcuts = relationship(
        "Shortcut",
        back_populates="user",
        order_by="Shortcut.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def has_profile(self) -> bool:
        return bool(self.username)

    def stats_dict(self) -> dict:
        return {
            "total_sessions": self.total_sessions,
            "total_time": self.total_time,
            "total_items": self.total_items,
        }

    def streak_dict(self) -> dict:
        return {
            "current": self.streak_current,
            "longest": self.streak_longest,
            "last_active": self.streak_last_active.isoformat() if self.streak_last_active else None,
        }


class Shortcut(Base):
    __tablename__ = "shortcuts"
    __table_args__ = (sa.UniqueConstraint("user_id", "key", name="uq_shortcuts_user_key"),)

    id = sa.Column(sa.Integer, primary_key=True, autoincrement=True)
    user_id = sa.Column(sa.Uuid, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    key = sa.Column(sa.String(3), nullable=False)
    text = sa.Column(sa.String(200), nullable=False)
    position = sa.Column(sa.Integer, nullable=False, default=0)

    user = relationship("User", back_populates="shortcuts")
