"""Read-side queries over recorded progress."""

from collections import Counter
from collections.abc import Callable
from datetime import datetime

from pydantic import BaseModel

from vocab_card_tracker.models.progress import (
    DailyStats,
    LearningHistory,
    ProficiencyLevel,
    WordProgress,
    progress_key,
)
from vocab_card_tracker.storage.store import ProgressStore


class LearningStats(BaseModel):
    """Aggregate progress across every word a user has attempted."""

    total_words: int = 0
    new: int = 0
    learning: int = 0
    familiar: int = 0
    mastered: int = 0
    total_attempts: int = 0
    correct_answers: int = 0
    incorrect_answers: int = 0
    average_accuracy: float = 0.0  # percent


class LevelProgress(BaseModel):
    level: int
    total_words: int = 0
    learned_words: int = 0
    new_count: int = 0
    learning_count: int = 0
    familiar_count: int = 0
    mastered_count: int = 0
    progress_percentage: float = 0.0


def _review_priority(progress: WordProgress) -> tuple[bool, datetime]:
    # New words first, then whichever fell due earliest
    return (progress.proficiency_level != ProficiencyLevel.NEW, progress.next_review_at)


class ProgressQueries:
    """Due-for-review and statistics queries for one store.

    Args:
        store: Opened progress store.
        clock: Returns the current local time.
    """

    def __init__(self, store: ProgressStore, clock: Callable[[], datetime] = datetime.now):
        self.store = store
        self.clock = clock

    async def get_word_progress(
        self, user_id: str, word_id: str, level: int
    ) -> WordProgress | None:
        return await self.store.word_progress.get(progress_key(user_id, level, word_id))

    async def get_user_progress(self, user_id: str) -> list[WordProgress]:
        return await self.store.word_progress.get_all_from_index("by_user_id", user_id)

    async def get_words_for_review(
        self,
        user_id: str,
        limit: int = 20,
        now: datetime | None = None,
    ) -> list[WordProgress]:
        """Words whose next review time has passed, highest priority first."""
        if now is None:
            now = self.clock()
        all_progress = await self.get_user_progress(user_id)
        due = [p for p in all_progress if p.next_review_at <= now]
        due.sort(key=_review_priority)
        return due[:limit]

    async def get_learning_stats(self, user_id: str) -> LearningStats:
        all_progress = await self.get_user_progress(user_id)
        tiers = Counter(p.proficiency_level for p in all_progress)

        stats = LearningStats(
            total_words=len(all_progress),
            new=tiers[ProficiencyLevel.NEW],
            learning=tiers[ProficiencyLevel.LEARNING],
            familiar=tiers[ProficiencyLevel.FAMILIAR],
            mastered=tiers[ProficiencyLevel.MASTERED],
            total_attempts=sum(p.total_attempts for p in all_progress),
            correct_answers=sum(p.correct_count for p in all_progress),
            incorrect_answers=sum(p.incorrect_count for p in all_progress),
        )
        if stats.total_attempts > 0:
            stats.average_accuracy = stats.correct_answers / stats.total_attempts * 100
        return stats

    async def get_level_progress(
        self, user_id: str, level: int, total_words: int = 0
    ) -> LevelProgress:
        """Tier breakdown for one level.

        Args:
            user_id: Learner profile id.
            level: Vocabulary level.
            total_words: Size of the level from its manifest (0 if unknown).
        """
        rows = await self.store.word_progress.get_all_from_index(
            "by_user_id_level", (user_id, level)
        )
        tiers = Counter(p.proficiency_level for p in rows)
        return LevelProgress(
            level=level,
            total_words=total_words,
            learned_words=len(rows),
            new_count=tiers[ProficiencyLevel.NEW],
            learning_count=tiers[ProficiencyLevel.LEARNING],
            familiar_count=tiers[ProficiencyLevel.FAMILIAR],
            mastered_count=tiers[ProficiencyLevel.MASTERED],
            progress_percentage=len(rows) / total_words * 100 if total_words > 0 else 0.0,
        )

    async def get_history(
        self,
        user_id: str,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[LearningHistory]:
        """Attempts for a user in chronological order, optionally bounded."""
        lower = (user_id, since or datetime.min)
        upper = (user_id, until or datetime.max)
        return await self.store.learning_history.get_range_from_index(
            "by_user_id_timestamp", lower, upper
        )

    async def get_daily_stats(self, user_id: str) -> list[DailyStats]:
        stats = await self.store.daily_stats.get_all_from_index("by_user_id", user_id)
        return sorted(stats, key=lambda s: s.date)
