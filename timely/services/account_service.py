import logging
from datetime import date
from typing import Callable, Optional, Tuple

from timely.errors import ConflictError, InvalidCredentialError, MalformedInputError
from timely.models.session import PracticeSession
from timely.models.user import User
from timely.services.token_service import generate_secret, is_well_formed_secret
from timely.services.user_store import UserStore

logger = logging.getLogger("timely.accounts")

REGISTER_ATTEMPTS = 3


async def register(store: UserStore, generate: Callable[[], str] = generate_secret) -> Tuple[User, str]:
    """Create a user with a fresh secret. Returns the user and the raw secret, which must be shown exactly once."""
    for attempt in range(1, REGISTER_ATTEMPTS + 1):
        raw_secret = generate()
        try:
            user = await store.create(raw_secret)
        except ConflictError:
            logger.warning(f"Registration attempt {attempt}/{REGISTER_ATTEMPTS} hit a prefix collision.")
            if attempt == REGISTER_ATTEMPTS:
                raise
            continue
        logger.info(f"✅ User registered: {user.id}")
        return user, raw_secret
    raise ConflictError("Token conflict. Please try again.")


async def authenticate_secret(store: UserStore, raw_secret) -> User:
    """Find the user whose hash matches `raw_secret`."""
    if not is_well_formed_secret(raw_secret):
        raise MalformedInputError()
    raw_secret = raw_secret.lower()

    candidates = await store.find_candidates_by_prefix(raw_secret)
    if not candidates:
        await store.verify_dummy(raw_secret)
        raise InvalidCredentialError()

    for candidate in candidates:
        if await store.verify(candidate, raw_secret):
            return candidate
    raise InvalidCredentialError()


async def login(store: UserStore, raw_secret, today: date) -> User:
    """Verify the secret and credit today's streak."""
    user = await authenticate_secret(store, raw_secret)
    user = await store.apply_streak(user, today)
    logger.info(f"✅ User logged in: {user.id}")
    return user


async def complete_session(
    store: UserStore,
    user: User,
    total_duration: int,
    completed_items: list,
    today: date,
    stack_id: Optional[str] = None,
    settings: Optional[dict] = None,
) -> PracticeSession:
    record = await store.record_completion(
        user,
        total_duration=total_duration,
        completed_items=completed_items,
        today=today,
        stack_id=stack_id,
        settings=settings,
    )
    logger.info(f"Session {record.id} recorded for user {user.id} ({record.item_count} items, {total_duration}s).")
    return record
