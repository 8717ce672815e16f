"""
Daily streak bookkeeping.

Days are compared as calendar dates in one configured timezone, never as
elapsed milliseconds, so DST transitions do not shorten or stretch a day.
"""

from datetime import date, datetime, timedelta, timezone
from typing import NamedTuple, Optional
from zoneinfo import ZoneInfo


class StreakState(NamedTuple):
    current: int
    longest: int
    last_active: Optional[date]


def advance_streak(today: date, last_active: Optional[date], current: int, longest: int) -> StreakState:
    """
    Credit activity on `today`.

    - never active, or last active before yesterday: streak restarts at 1
    - already active today: nothing changes
    - active yesterday: streak grows by one
    Longest is raised to the new current when exceeded.
    """
    if last_active is not None and last_active >= today:
        # already credited (a future date means clock skew; treat the same)
        return StreakState(current, longest, last_active)

    if last_active is None or last_active < today - timedelta(days=1):
        new_current = 1
    else:
        new_current = current + 1

    return StreakState(new_current, max(longest, new_current), today)


def today_in(tz_name: str = "UTC", now: Optional[datetime] = None) -> date:
    """Current calendar date in the given IANA timezone."""
    tz = timezone.utc if tz_name.upper() == "UTC" else ZoneInfo(tz_name)
    moment = now.astimezone(tz) if now is not None else datetime.now(tz)
    return moment.date()
