"""Attempt recording: the write path of the progress engine."""

import asyncio
from collections import Counter
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import datetime

import structlog

from vocab_card_tracker.exceptions import StorageError
from vocab_card_tracker.learning.proficiency import determine_proficiency
from vocab_card_tracker.learning.scheduler import calculate_next_review
from vocab_card_tracker.learning.streak import StreakCalculator
from vocab_card_tracker.models.progress import (
    DailyStats,
    InputMethod,
    LearningHistory,
    ProficiencyLevel,
    WordProgress,
    daily_stats_key,
    history_key,
    progress_key,
)
from vocab_card_tracker.storage.store import ProgressStore

logger = structlog.get_logger()


class KeyedLocks:
    """One asyncio.Lock per key, dropped once nobody holds or waits on it."""

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: Counter[str] = Counter()

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]


class AttemptRecorder:
    """Applies answer attempts to word progress and user aggregates.

    Attempts on the same word are serialized by a per-progress-key lock,
    and the daily-stats/profile snapshot step by a per-user lock, so a
    double submission is applied twice in order rather than racing on
    stale counters. Replaying the same attempt still counts it twice.

    Args:
        store: Opened progress store.
        clock: Returns the current local time.
    """

    def __init__(self, store: ProgressStore, clock: Callable[[], datetime] = datetime.now):
        self.store = store
        self.clock = clock
        self.streaks = StreakCalculator(store, clock)
        self._word_locks = KeyedLocks()
        self._user_locks = KeyedLocks()

    async def record_attempt(
        self,
        user_id: str,
        word_id: str,
        word: str,
        level: int,
        is_correct: bool,
        input_method: InputMethod | str,
        response_time_ms: float | None = None,
    ) -> WordProgress:
        """Record one answer attempt and return the updated progress.

        Args:
            user_id: Learner profile id.
            word_id: Word id within its level.
            word: The target word (denormalized for history/display).
            level: Vocabulary level of the word.
            is_correct: Whether the answer was accepted.
            input_method: "speech" or "keyboard".
            response_time_ms: Optional time taken to answer.

        Returns:
            The WordProgress as persisted.

        Raises:
            StorageError: Any persistence step failed; later steps are skipped.
        """
        method = InputMethod(input_method)
        key = progress_key(user_id, level, word_id)

        try:
            async with self._word_locks.hold(key):
                now = self.clock()
                progress = await self.store.word_progress.get(key)
                is_new_word = progress is None
                if progress is None:
                    progress = self._new_progress(key, user_id, word_id, word, level, now)

                progress.apply_attempt(is_correct, method)
                progress.last_reviewed_at = now
                progress.proficiency_level = determine_proficiency(
                    progress.correct_count,
                    progress.incorrect_count,
                    progress.correct_streak,
                )
                progress.next_review_at = calculate_next_review(
                    progress.proficiency_level, progress.correct_streak, now
                )

                await self.store.word_progress.put(progress)
                await self._append_history(progress, is_correct, method, now, response_time_ms)

            async with self._user_locks.hold(user_id):
                await self._update_daily_stats(user_id, level, is_correct, is_new_word, now)
                await self._update_user_snapshot(user_id, now)
        except StorageError as e:
            logger.error(
                "attempt_record_failed",
                user_id=user_id,
                progress_id=key,
                error=str(e),
            )
            raise

        logger.info(
            "attempt_recorded",
            user_id=user_id,
            progress_id=key,
            is_correct=is_correct,
            input_method=method.value,
            proficiency=progress.proficiency_level.value,
            correct_streak=progress.correct_streak,
        )
        return progress

    @staticmethod
    def _new_progress(
        key: str, user_id: str, word_id: str, word: str, level: int, now: datetime
    ) -> WordProgress:
        return WordProgress(
            id=key,
            user_id=user_id,
            word_id=str(word_id),
            word=word,
            level=level,
            proficiency_level=ProficiencyLevel.NEW,
            first_learned_at=now,
            last_reviewed_at=now,
            next_review_at=calculate_next_review(ProficiencyLevel.NEW, 0, now),
        )

    async def _append_history(
        self,
        progress: WordProgress,
        is_correct: bool,
        method: InputMethod,
        now: datetime,
        response_time_ms: float | None,
    ) -> None:
        entry_id = history_key(progress.id, now)
        suffix = 1
        # Same-millisecond attempts on one word get a distinct id
        while await self.store.learning_history.contains(entry_id):
            entry_id = f"{history_key(progress.id, now)}-{suffix}"
            suffix += 1

        await self.store.learning_history.add(
            LearningHistory(
                id=entry_id,
                user_id=progress.user_id,
                word_id=progress.word_id,
                word=progress.word,
                level=progress.level,
                timestamp=now,
                is_correct=is_correct,
                input_method=method,
                response_time_ms=response_time_ms,
            )
        )

    async def _update_daily_stats(
        self,
        user_id: str,
        level: int,
        is_correct: bool,
        is_new_word: bool,
        now: datetime,
    ) -> DailyStats:
        today = now.date()
        stats_id = daily_stats_key(user_id, today)
        stats = await self.store.daily_stats.get(stats_id)
        if stats is None:
            stats = DailyStats(id=stats_id, user_id=user_id, date=today.isoformat())

        stats.total_words += 1
        if is_new_word:
            stats.new_words += 1
        else:
            stats.review_words += 1
        if is_correct:
            stats.correct_count += 1
        else:
            stats.incorrect_count += 1
        if level not in stats.levels:
            stats.levels = sorted([*stats.levels, level])

        await self.store.daily_stats.put(stats)
        return stats

    async def _update_user_snapshot(self, user_id: str, now: datetime) -> None:
        profile = await self.store.user_profiles.get(user_id)
        if profile is None:
            logger.warning("profile_snapshot_skipped", user_id=user_id)
            return

        # Full rescan; per-user word counts stay in the hundreds
        all_progress = await self.store.word_progress.get_all_from_index("by_user_id", user_id)
        streak = await self.streaks.streak(user_id)

        profile.total_words_learned = sum(1 for p in all_progress if p.correct_count > 0)
        profile.current_streak = streak.current
        profile.longest_streak = max(profile.longest_streak, streak.longest)
        profile.last_active_at = now
        await self.store.user_profiles.put(profile)
