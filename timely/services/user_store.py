"""
Persistence for users, their shortcuts and completed sessions.

Counters and streak are written with single UPDATE statements keyed on the
user id so two requests for the same user cannot overwrite each other's
increments.
"""

import asyncio
import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from timely.errors import ConflictError, NotFoundError
from timely.models.session import PracticeSession
from timely.models.user import DEFAULT_AVATAR, Shortcut, User
from timely.services.auth_service import dummy_hash, hash_secret, verify_secret
from timely.services.streak import advance_streak
from timely.services.token_service import secret_prefix

logger = logging.getLogger("timely.store")

STREAK_WRITE_ATTEMPTS = 3


class UserStore:
    def __init__(self, db: AsyncSession, bcrypt_rounds: int = 12):
        self.db = db
        self.bcrypt_rounds = bcrypt_rounds

    # ---------------- CREDENTIALS ----------------

    async def create(self, raw_secret: str) -> User:
        """Persist a new user for `raw_secret`. Raises ConflictError if the prefix is taken."""
        hashed = await asyncio.to_thread(hash_secret, raw_secret, self.bcrypt_rounds)
        user = User(
            secret_hash=hashed,
            secret_prefix=secret_prefix(raw_secret),
            avatar=DEFAULT_AVATAR,
            streak_current=0,
            streak_longest=0,
            streak_last_active=None,
            total_sessions=0,
            total_time=0,
            total_items=0,
            shortcuts=[],
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning("Secret prefix collision on registration.")
            raise ConflictError("Token conflict. Please try again.") from e
        return user

    async def find_candidates_by_prefix(self, raw_secret: str) -> List[User]:
        q = await self.db.execute(select(User).where(User.secret_prefix == secret_prefix(raw_secret)))
        return list(q.scalars().all())

    async def verify(self, user: User, raw_secret: str) -> bool:
        return await asyncio.to_thread(verify_secret, raw_secret, user.secret_hash)

    async def verify_dummy(self, raw_secret: str) -> None:
        """Spend one hash comparison without a user, keeping misses as slow as wrong secrets."""
        await asyncio.to_thread(verify_secret, raw_secret, dummy_hash(self.bcrypt_rounds))

    async def get_by_id(self, user_id) -> Optional[User]:
        return await self.db.get(User, user_id)

    # ---------------- STREAK & STATS ----------------

    async def apply_streak(self, user: User, today: date) -> User:
        """Run the streak rules for `today` and store the result if anything changed."""
        if await self._write_streak(user, today):
            await self.db.commit()
            await self.db.refresh(user)
        return user

    async def _write_streak(self, user: User, today: date) -> bool:
        """
        Stage the streak UPDATE in the open transaction without committing.
        Returns True if a row was written.
        """
        for _ in range(STREAK_WRITE_ATTEMPTS):
            prior = user.streak_last_active
            state = advance_streak(today, prior, user.streak_current, user.streak_longest)
            if state == (user.streak_current, user.streak_longest, prior):
                return False

            unchanged_since_read = User.streak_last_active.is_(None) if prior is None else User.streak_last_active == prior
            result = await self.db.execute(
                update(User)
                .where(User.id == user.id, unchanged_since_read)
                .values(
                    streak_current=state.current,
                    streak_longest=state.longest,
                    streak_last_active=state.last_active,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                return True
            logger.info(f"Streak for user {user.id} changed concurrently; re-evaluating.")
            await self.db.refresh(user)
        return False

    async def record_completion(
        self,
        user: User,
        total_duration: int,
        completed_items: list,
        today: date,
        stack_id: Optional[str] = None,
        settings: Optional[dict] = None,
    ) -> PracticeSession:
        """Store the record, bump the counters and credit the streak in one transaction."""
        item_count = len(completed_items)
        await self.db.execute(
            update(User)
            .where(User.id == user.id)
            .values(
                total_sessions=User.total_sessions + 1,
                total_time=User.total_time + total_duration,
                total_items=User.total_items + item_count,
            )
            .execution_options(synchronize_session=False)
        )
        record = PracticeSession(
            user_id=user.id,
            stack_id=stack_id,
            total_duration=total_duration,
            item_count=item_count,
            completed_items=completed_items,
            settings=settings,
        )
        self.db.add(record)
        await self._write_streak(user, today)
        await self.db.commit()
        await self.db.refresh(user)
        return record

    async def list_sessions(self, user: User, limit: int = 20, page: int = 1) -> List[PracticeSession]:
        q = await self.db.execute(
            select(PracticeSession)
            .where(PracticeSession.user_id == user.id)
            .order_by(PracticeSession.completed_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(q.scalars().all())

    # ---------------- PROFILE ----------------

    async def update_profile(self, user: User, username: Optional[str] = None, avatar: Optional[str] = None) -> User:
        if username is not None:
            user.username = username
        if avatar is not None:
            user.avatar = avatar
        self.db.add(user)
        await self.db.commit()
        return user

    async def add_shortcut(self, user: User, key: str, text: str) -> Shortcut:
        key = key.upper()
        if any(s.key == key for s in user.shortcuts):
            raise ConflictError(f"Shortcut '{key}' already exists")

        position = max((s.position for s in user.shortcuts), default=-1) + 1
        shortcut = Shortcut(key=key, text=text, position=position)
        user.shortcuts.append(shortcut)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictError(f"Shortcut '{key}' already exists") from e
        return shortcut

    async def remove_shortcut(self, user: User, key: str) -> None:
        key = key.upper()
        match = next((s for s in user.shortcuts if s.key == key), None)
        if match is None:
            raise NotFoundError(f"Shortcut '{key}' not found")
        user.shortcuts.remove(match)
        await self.db.commit()
