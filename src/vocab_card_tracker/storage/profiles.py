"""Local learner profiles, per-user settings and the app settings singleton."""

import uuid
from datetime import datetime
from typing import Any

import structlog

from vocab_card_tracker.exceptions import ProfileNotFoundError, ProfileValidationError
from vocab_card_tracker.models.user_profile import (
    APP_SETTINGS_ID,
    AppSettings,
    UserProfile,
    UserSettings,
)
from vocab_card_tracker.storage.store import ProgressStore

logger = structlog.get_logger()

IMMUTABLE_PROFILE_FIELDS = frozenset({"user_id", "created_at"})


class ProfileService:
    """CRUD for profiles and settings over a ProgressStore.

    Args:
        store: Opened progress store.
        name_max_length: Longest accepted display name (after trimming).
        default_daily_goal: Daily goal for newly created profiles.
    """

    def __init__(
        self,
        store: ProgressStore,
        name_max_length: int = 10,
        default_daily_goal: int = 10,
    ):
        self.store = store
        self.name_max_length = name_max_length
        self.default_daily_goal = default_daily_goal

    def validate_name(self, name: str) -> str:
        trimmed = name.strip()
        if not trimmed:
            raise ProfileValidationError("Profile name must not be empty")
        if len(trimmed) > self.name_max_length:
            raise ProfileValidationError(
                f"Profile name must be at most {self.name_max_length} characters"
            )
        return trimmed

    async def create_profile(self, name: str, avatar: str, theme_color: str) -> UserProfile:
        """Create a profile plus its default settings."""
        trimmed = self.validate_name(name)
        now = datetime.now()
        profile = UserProfile(
            user_id=str(uuid.uuid4()),
            name=trimmed,
            avatar=avatar,
            theme_color=theme_color,
            created_at=now,
            last_active_at=now,
        )
        await self.store.user_profiles.put(profile)
        await self.store.user_settings.put(
            UserSettings(
                user_id=profile.user_id,
                start_date=now,
                daily_goal=self.default_daily_goal,
            )
        )
        logger.info("profile_created", user_id=profile.user_id)
        return profile

    async def get_profile(self, user_id: str) -> UserProfile | None:
        return await self.store.user_profiles.get(user_id)

    async def get_all_profiles(self) -> list[UserProfile]:
        """All profiles, most recently active first."""
        profiles = await self.store.user_profiles.get_range_from_index("by_last_active")
        return list(reversed(profiles))

    async def update_profile(self, user_id: str, **updates: Any) -> UserProfile:
        profile = await self.store.user_profiles.get(user_id)
        if profile is None:
            raise ProfileNotFoundError(user_id)
        if "name" in updates:
            updates["name"] = self.validate_name(updates["name"])
        for key, value in updates.items():
            if key in IMMUTABLE_PROFILE_FIELDS:
                continue
            if key not in UserProfile.model_fields:
                raise ProfileValidationError(f"Unknown profile field: {key}")
            setattr(profile, key, value)
        await self.store.user_profiles.put(profile)
        return profile

    async def update_last_active(self, user_id: str) -> UserProfile:
        return await self.update_profile(user_id, last_active_at=datetime.now())

    async def delete_profile(self, user_id: str) -> None:
        """Delete a profile and every row owned by it.

        The profile row goes first, so a sweep that fails part-way never
        leaves a listed profile over partially deleted data. Calling again
        for the same id finishes removing the orphaned rows.
        """
        owned_tables = (
            self.store.word_progress,
            self.store.learning_history,
            self.store.daily_stats,
        )
        owned_keys = {
            table.name: await table.get_all_keys_from_index("by_user_id", user_id)
            for table in owned_tables
        }
        has_profile = await self.store.user_profiles.contains(user_id)
        has_settings = await self.store.user_settings.contains(user_id)
        if not (has_profile or has_settings or any(owned_keys.values())):
            raise ProfileNotFoundError(user_id)

        await self.store.user_profiles.delete(user_id)
        app_settings = await self.get_app_settings()
        if app_settings.last_active_user_id == user_id:
            await self.update_app_settings(last_active_user_id=None)

        removed: dict[str, int] = {}
        for table in owned_tables:
            removed[table.name] = await table.delete_many(owned_keys[table.name])
        await self.store.user_settings.delete(user_id)

        logger.info("profile_deleted", user_id=user_id, orphan_cleanup=not has_profile, **removed)

    async def get_user_settings(self, user_id: str) -> UserSettings:
        """Per-user settings, falling back to defaults when none are stored."""
        settings = await self.store.user_settings.get(user_id)
        if settings is None:
            return UserSettings(user_id=user_id, daily_goal=self.default_daily_goal)
        return settings

    async def update_user_settings(self, user_id: str, **updates: Any) -> UserSettings:
        settings = await self.get_user_settings(user_id)
        for key, value in updates.items():
            if key == "user_id":
                continue
            if key not in UserSettings.model_fields:
                raise ProfileValidationError(f"Unknown settings field: {key}")
            setattr(settings, key, value)
        await self.store.user_settings.put(settings)
        return settings

    async def get_app_settings(self) -> AppSettings:
        settings = await self.store.app_settings.get(APP_SETTINGS_ID)
        if settings is None:
            settings = AppSettings()
            await self.store.app_settings.put(settings)
        return settings

    async def update_app_settings(self, **updates: Any) -> AppSettings:
        settings = await self.get_app_settings()
        for key, value in updates.items():
            if key == "id":
                continue
            if key not in AppSettings.model_fields:
                raise ProfileValidationError(f"Unknown app settings field: {key}")
            setattr(settings, key, value)
        await self.store.app_settings.put(settings)
        return settings

    async def set_last_active_user(self, user_id: str | None) -> None:
        await self.update_app_settings(last_active_user_id=user_id)

    async def get_last_active_user_id(self) -> str | None:
        settings = await self.get_app_settings()
        return settings.last_active_user_id
