"""Learner profile and settings models."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

SCHEMA_VERSION = 2
APP_SETTINGS_ID = "app"


class UserProfile(BaseModel):
    user_id: str
    name: str
    avatar: str
    theme_color: str
    created_at: datetime = Field(default_factory=datetime.now)
    last_active_at: datetime = Field(default_factory=datetime.now)
    # Snapshot recomputed after every recorded attempt
    total_words_learned: int = 0
    current_streak: int = 0
    longest_streak: int = 0


class UserSettings(BaseModel):
    user_id: str
    start_date: datetime = Field(default_factory=datetime.now)
    total_study_time: float = 0.0
    enable_reminders: bool = True
    daily_goal: int = 10


class AppSettings(BaseModel):
    """Singleton record shared by all local profiles."""

    id: Literal["app"] = APP_SETTINGS_ID
    last_active_user_id: str | None = None
    show_profile_selector: bool = True
    version: int = SCHEMA_VERSION
