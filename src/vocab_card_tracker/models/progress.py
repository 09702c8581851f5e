"""Word progress, learning history and daily aggregate models."""

from datetime import date, datetime
from enum import StrEnum

from pydantic import BaseModel, Field

KEY_SEPARATOR = "_"


class ProficiencyLevel(StrEnum):
    """Coarse mastery tiers, ordered from least to most mastered."""

    NEW = "new"
    LEARNING = "learning"
    FAMILIAR = "familiar"
    MASTERED = "mastered"


class InputMethod(StrEnum):
    SPEECH = "speech"
    KEYBOARD = "keyboard"


def progress_key(user_id: str, level: int, word_id: str) -> str:
    """Composite WordProgress id: ``user_level_word``."""
    return KEY_SEPARATOR.join((user_id, str(level), str(word_id)))


def history_key(progress_id: str, timestamp: datetime) -> str:
    """Composite LearningHistory id: progress id plus epoch milliseconds."""
    return f"{progress_id}{KEY_SEPARATOR}{int(timestamp.timestamp() * 1000)}"


def daily_stats_key(user_id: str, day: date) -> str:
    """Composite DailyStats id: ``user_YYYY-MM-DD``."""
    return f"{user_id}{KEY_SEPARATOR}{day.isoformat()}"


class MethodCounts(BaseModel):
    """Correct/incorrect counters for one input method."""

    correct: int = 0
    incorrect: int = 0


class InputMethodStats(BaseModel):
    """Per-input-method sub-counters; the method set is closed."""

    model_config = {"extra": "forbid"}

    speech: MethodCounts = Field(default_factory=MethodCounts)
    keyboard: MethodCounts = Field(default_factory=MethodCounts)

    def for_method(self, method: InputMethod) -> MethodCounts:
        if method == InputMethod.SPEECH:
            return self.speech
        return self.keyboard


class WordProgress(BaseModel):
    """Proficiency state for one (user, level, word) triple."""

    id: str
    user_id: str
    word_id: str
    word: str
    level: int
    total_attempts: int = 0
    correct_count: int = 0
    incorrect_count: int = 0
    proficiency_level: ProficiencyLevel = ProficiencyLevel.NEW
    correct_streak: int = 0
    first_learned_at: datetime = Field(default_factory=datetime.now)
    last_reviewed_at: datetime = Field(default_factory=datetime.now)
    next_review_at: datetime = Field(default_factory=datetime.now)
    input_methods: InputMethodStats = Field(default_factory=InputMethodStats)

    @property
    def accuracy(self) -> float:
        """Fraction of attempts answered correctly (0 when unattempted)."""
        if self.total_attempts == 0:
            return 0.0
        return self.correct_count / self.total_attempts

    def apply_attempt(self, is_correct: bool, input_method: InputMethod) -> None:
        """Advance the counters for one answer attempt.

        Proficiency and scheduling are left to the caller.
        """
        self.total_attempts += 1
        counts = self.input_methods.for_method(input_method)
        if is_correct:
            self.correct_count += 1
            self.correct_streak += 1
            counts.correct += 1
        else:
            self.incorrect_count += 1
            self.correct_streak = 0
            counts.incorrect += 1


class LearningHistory(BaseModel):
    """Immutable record of a single answer attempt."""

    model_config = {"frozen": True}

    id: str
    user_id: str
    word_id: str
    word: str
    level: int
    timestamp: datetime
    is_correct: bool
    input_method: InputMethod
    response_time_ms: float | None = None


class DailyStats(BaseModel):
    """Per-user aggregate for one calendar day."""

    id: str
    user_id: str
    date: str  # YYYY-MM-DD
    total_words: int = 0
    new_words: int = 0
    review_words: int = 0
    correct_count: int = 0
    incorrect_count: int = 0
    study_time: float = 0.0
    levels: list[int] = Field(default_factory=list)
