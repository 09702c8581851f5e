"""Proficiency tier classification from attempt counters."""

from typing import NamedTuple

from vocab_card_tracker.models.progress import ProficiencyLevel


class TierThreshold(NamedTuple):
    level: ProficiencyLevel
    min_accuracy: float
    min_streak: int
    min_attempts: int


# Checked top-down; first match wins
TIER_THRESHOLDS: tuple[TierThreshold, ...] = (
    TierThreshold(ProficiencyLevel.MASTERED, min_accuracy=0.90, min_streak=5, min_attempts=10),
    TierThreshold(ProficiencyLevel.FAMILIAR, min_accuracy=0.75, min_streak=3, min_attempts=6),
    TierThreshold(ProficiencyLevel.LEARNING, min_accuracy=0.0, min_streak=0, min_attempts=2),
)


def determine_proficiency(
    correct_count: int,
    incorrect_count: int,
    correct_streak: int,
) -> ProficiencyLevel:
    """Classify a word from its counters.

    Pure and memoryless: the result depends only on the three inputs, so
    an incorrect answer that zeroes the streak can demote a word.

    Args:
        correct_count: Cumulative correct answers.
        incorrect_count: Cumulative incorrect answers.
        correct_streak: Consecutive correct answers since the last miss.

    Returns:
        The highest tier whose thresholds are all met.
    """
    total_attempts = correct_count + incorrect_count
    accuracy = correct_count / total_attempts if total_attempts > 0 else 0.0

    for tier in TIER_THRESHOLDS:
        if (
            accuracy >= tier.min_accuracy
            and correct_streak >= tier.min_streak
            and total_attempts >= tier.min_attempts
        ):
            return tier.level
    return ProficiencyLevel.NEW
