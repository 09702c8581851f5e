"""Spaced-repetition review scheduling."""

from datetime import datetime, timedelta

from vocab_card_tracker.models.progress import ProficiencyLevel

# (base hours, extra hours per consecutive correct answer)
REVIEW_BACKOFF_HOURS: dict[ProficiencyLevel, tuple[int, int]] = {
    ProficiencyLevel.NEW: (1, 0),
    ProficiencyLevel.LEARNING: (4, 2),
    ProficiencyLevel.FAMILIAR: (24, 12),
    ProficiencyLevel.MASTERED: (168, 168),
}


def review_delay(proficiency: ProficiencyLevel, correct_streak: int) -> timedelta:
    """Delay until the next review for a tier and within-tier streak."""
    base, per_streak = REVIEW_BACKOFF_HOURS[proficiency]
    return timedelta(hours=base + per_streak * max(correct_streak, 0))


def calculate_next_review(
    proficiency: ProficiencyLevel,
    correct_streak: int,
    now: datetime | None = None,
) -> datetime:
    """Return the timestamp when the word should next be reviewed.

    Args:
        proficiency: Current tier of the word.
        correct_streak: Current consecutive-correct count.
        now: Reference time (defaults to the current local time).
    """
    if now is None:
        now = datetime.now()
    return now + review_delay(proficiency, correct_streak)
