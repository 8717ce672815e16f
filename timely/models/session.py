# timely/models/session.py
import uuid
from datetime import datetime, timezone

import sqlalchemy as sa

from timely.utils.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class PracticeSession(Base):
    """One completed play-through of a stack."""

    __tablename__ = "practice_sessions"
    __table_args__ = (sa.Index("ix_practice_sessions_user_completed", "user_id", "completed_at"),)

    id = sa.Column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    user_id = sa.Column(sa.Uuid, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    # stacks live outside this service; keep only their identifier
    stack_id = sa.Column(sa.String(64), nullable=True)
    total_duration = sa.Column(sa.Integer, nullable=False)
    item_count = sa.Column(sa.Integer, nullable=False, default=0)
    completed_items = sa.Column(sa.JSON, nullable=False, default=list)
    settings = sa.Column(sa.JSON, nullable=True)
    completed_at = sa.Column(sa.DateTime(timezone=True), default=_utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "stack_id": self.stack_id,
            "total_duration": self.total_duration,
            "item_count": self.item_count,
            "completed_items": self.completed_items or [],
            "settings": self.settings,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }
