"""Consecutive-day study streaks derived from daily stats."""

from collections.abc import Callable, Iterable
from datetime import date, datetime

from pydantic import BaseModel

from vocab_card_tracker.storage.store import ProgressStore


class StreakSummary(BaseModel):
    current: int = 0
    longest: int = 0


def _sorted_days(dates: Iterable[str]) -> list[date]:
    # ISO YYYY-MM-DD strings sort chronologically
    return [date.fromisoformat(d) for d in sorted(set(dates), reverse=True)]


def current_streak(days_desc: list[date], today: date) -> int:
    """Length of the run ending today; 0 when today has no activity."""
    if not days_desc or days_desc[0] != today:
        return 0
    streak = 1
    for newer, older in zip(days_desc, days_desc[1:]):
        if (newer - older).days != 1:
            break
        streak += 1
    return streak


def longest_streak(days_desc: list[date]) -> int:
    """Longest run of consecutive days anywhere in the history."""
    if not days_desc:
        return 0
    longest = run = 1
    for newer, older in zip(days_desc, days_desc[1:]):
        if (newer - older).days == 1:
            run += 1
        else:
            run = 1
        longest = max(longest, run)
    return longest


def calculate_streak(dates: Iterable[str], today: date) -> StreakSummary:
    """Compute current and longest streaks from ISO date strings.

    Args:
        dates: Days with recorded activity (``YYYY-MM-DD``).
        today: The local calendar day treated as "today".
    """
    days = _sorted_days(dates)
    return StreakSummary(current=current_streak(days, today), longest=longest_streak(days))


class StreakCalculator:
    """Reads a user's daily stats and derives their streaks.

    Args:
        store: Opened progress store.
        clock: Returns the current local time.
    """

    def __init__(self, store: ProgressStore, clock: Callable[[], datetime] = datetime.now):
        self.store = store
        self.clock = clock

    async def streak(self, user_id: str) -> StreakSummary:
        stats = await self.store.daily_stats.get_all_from_index("by_user_id", user_id)
        return calculate_streak((s.date for s in stats), self.clock().date())
