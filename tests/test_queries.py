"""Tests for progress queries."""

from datetime import datetime, timedelta

import pytest

from vocab_card_tracker.learning.queries import ProgressQueries
from vocab_card_tracker.learning.recorder import AttemptRecorder
from vocab_card_tracker.models.progress import ProficiencyLevel, WordProgress


@pytest.fixture
def queries(store, clock):
    return ProgressQueries(store, clock=clock)


def _row(word_id: str, level: int, proficiency: ProficiencyLevel, due: datetime, **counts):
    return WordProgress(
        id=f"u1_{level}_{word_id}",
        user_id="u1",
        word_id=word_id,
        word=word_id,
        level=level,
        proficiency_level=proficiency,
        next_review_at=due,
        **counts,
    )


class TestWordsForReview:
    async def test_only_due_words_new_first(self, store, queries, clock):
        now = clock.now
        rows = [
            _row("a", 1, ProficiencyLevel.LEARNING, now - timedelta(hours=3)),
            _row("b", 1, ProficiencyLevel.NEW, now - timedelta(minutes=1)),
            _row("c", 1, ProficiencyLevel.FAMILIAR, now - timedelta(hours=5)),
            _row("d", 1, ProficiencyLevel.MASTERED, now + timedelta(days=7)),
            _row("e", 1, ProficiencyLevel.NEW, now - timedelta(minutes=30)),
        ]
        for row in rows:
            await store.word_progress.put(row)

        due = await queries.get_words_for_review("u1")
        assert [p.word_id for p in due] == ["e", "b", "c", "a"]

    async def test_limit(self, store, queries, clock):
        for i in range(5):
            await store.word_progress.put(
                _row(str(i), 1, ProficiencyLevel.LEARNING, clock.now - timedelta(hours=i))
            )
        due = await queries.get_words_for_review("u1", limit=2)
        assert [p.word_id for p in due] == ["4", "3"]

    async def test_fresh_attempt_not_due_until_an_hour_later(self, store, queries, clock):
        await AttemptRecorder(store, clock=clock).record_attempt("u1", "1", "one", 1, True, "speech")
        assert await queries.get_words_for_review("u1") == []
        later = clock.now + timedelta(hours=1)
        assert len(await queries.get_words_for_review("u1", now=later)) == 1


class TestLearningStats:
    async def test_empty(self, queries):
        stats = await queries.get_learning_stats("u1")
        assert stats.total_words == 0
        assert stats.average_accuracy == 0.0

    async def test_aggregates(self, store, queries, clock):
        await store.word_progress.put(
            _row("a", 1, ProficiencyLevel.MASTERED, clock.now,
                 total_attempts=10, correct_count=10, incorrect_count=0)
        )
        await store.word_progress.put(
            _row("b", 2, ProficiencyLevel.LEARNING, clock.now,
                 total_attempts=6, correct_count=2, incorrect_count=4)
        )
        stats = await queries.get_learning_stats("u1")
        assert stats.total_words == 2
        assert stats.mastered == 1
        assert stats.learning == 1
        assert stats.new == 0
        assert stats.total_attempts == 16
        assert stats.correct_answers == 12
        assert stats.incorrect_answers == 4
        assert stats.average_accuracy == pytest.approx(75.0)


class TestLevelProgress:
    async def test_counts_only_the_level(self, store, queries, clock):
        await store.word_progress.put(_row("a", 1, ProficiencyLevel.NEW, clock.now))
        await store.word_progress.put(_row("b", 1, ProficiencyLevel.FAMILIAR, clock.now))
        await store.word_progress.put(_row("c", 2, ProficiencyLevel.MASTERED, clock.now))

        progress = await queries.get_level_progress("u1", 1, total_words=8)
        assert progress.learned_words == 2
        assert progress.new_count == 1
        assert progress.familiar_count == 1
        assert progress.mastered_count == 0
        assert progress.progress_percentage == pytest.approx(25.0)

    async def test_unknown_total_gives_zero_percent(self, queries):
        progress = await queries.get_level_progress("u1", 5)
        assert progress.progress_percentage == 0.0


class TestHistory:
    async def test_bounded_by_time(self, store, queries, clock):
        recorder = AttemptRecorder(store, clock=clock)
        start = clock.now
        for _ in range(3):
            await recorder.record_attempt("u1", "1", "one", 1, True, "keyboard")
            clock.advance(hours=1)
        await recorder.record_attempt("u2", "1", "one", 1, True, "keyboard")

        everything = await queries.get_history("u1")
        assert len(everything) == 3
        recent = await queries.get_history("u1", since=start + timedelta(minutes=30))
        assert len(recent) == 2
        early = await queries.get_history("u1", until=start)
        assert len(early) == 1
