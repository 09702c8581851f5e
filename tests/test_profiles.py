"""Tests for profile and settings management."""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest

from vocab_card_tracker.exceptions import (
    ProfileNotFoundError,
    ProfileValidationError,
    StorageError,
)
from vocab_card_tracker.learning.recorder import AttemptRecorder
from vocab_card_tracker.models.user_profile import SCHEMA_VERSION
from vocab_card_tracker.storage.profiles import ProfileService


@pytest.fixture
def profiles(store):
    return ProfileService(store, name_max_length=10, default_daily_goal=15)


class TestCreateProfile:
    async def test_creates_profile_and_default_settings(self, profiles, store):
        profile = await profiles.create_profile("  Mia  ", "🐱", "#ff8800")
        assert profile.name == "Mia"
        assert profile.total_words_learned == 0
        assert profile.current_streak == 0

        stored = await store.user_profiles.get(profile.user_id)
        assert stored == profile
        settings = await store.user_settings.get(profile.user_id)
        assert settings.daily_goal == 15
        assert settings.enable_reminders is True

    @pytest.mark.parametrize("name", ["", "   ", "ElevenChars"])
    async def test_invalid_name_writes_nothing(self, profiles, store, name):
        with pytest.raises(ProfileValidationError):
            await profiles.create_profile(name, "🐱", "#ff8800")
        assert await store.user_profiles.get_all() == []
        assert await store.user_settings.get_all() == []

    async def test_name_at_limit_accepted(self, profiles):
        profile = await profiles.create_profile("TenLetters", "🐶", "#000000")
        assert profile.name == "TenLetters"


class TestQueries:
    async def test_all_profiles_most_recent_first(self, profiles):
        first = await profiles.create_profile("First", "a", "#111111")
        second = await profiles.create_profile("Second", "b", "#222222")
        await profiles.update_profile(
            first.user_id, last_active_at=datetime.now() + timedelta(minutes=5)
        )
        ordered = await profiles.get_all_profiles()
        assert [p.user_id for p in ordered] == [first.user_id, second.user_id]

    async def test_get_missing_profile(self, profiles):
        assert await profiles.get_profile("missing") is None


class TestUpdateProfile:
    async def test_update_fields(self, profiles):
        profile = await profiles.create_profile("Mia", "a", "#111111")
        updated = await profiles.update_profile(profile.user_id, avatar="b", name=" Leo ")
        assert updated.avatar == "b"
        assert updated.name == "Leo"

    async def test_identity_fields_ignored(self, profiles):
        profile = await profiles.create_profile("Mia", "a", "#111111")
        updated = await profiles.update_profile(profile.user_id, user_id="other")
        assert updated.user_id == profile.user_id

    async def test_missing_profile_raises(self, profiles):
        with pytest.raises(ProfileNotFoundError):
            await profiles.update_profile("missing", avatar="x")

    async def test_update_last_active(self, profiles):
        profile = await profiles.create_profile("Mia", "a", "#111111")
        updated = await profiles.update_last_active(profile.user_id)
        assert updated.last_active_at >= profile.last_active_at


class TestDeleteProfile:
    async def test_sweeps_all_owned_rows(self, profiles, store, clock):
        keep = await profiles.create_profile("Keep", "a", "#111111")
        gone = await profiles.create_profile("Gone", "b", "#222222")
        recorder = AttemptRecorder(store, clock=clock)
        for user in (keep, gone):
            await recorder.record_attempt(user.user_id, "1", "one", 1, True, "speech")
            clock.advance(seconds=1)
        await profiles.set_last_active_user(gone.user_id)

        await profiles.delete_profile(gone.user_id)

        assert await profiles.get_profile(gone.user_id) is None
        assert await store.user_settings.get(gone.user_id) is None
        for table in (store.word_progress, store.learning_history, store.daily_stats):
            assert await table.get_all_from_index("by_user_id", gone.user_id) == []
            assert len(await table.get_all_from_index("by_user_id", keep.user_id)) == 1
        assert await profiles.get_last_active_user_id() is None

    async def test_missing_profile_raises(self, profiles):
        with pytest.raises(ProfileNotFoundError):
            await profiles.delete_profile("missing")

    async def test_failed_sweep_hides_profile_and_retry_finishes(self, profiles, store, clock):
        profile = await profiles.create_profile("Mia", "a", "#111111")
        recorder = AttemptRecorder(store, clock=clock)
        await recorder.record_attempt(profile.user_id, "1", "one", 1, True, "speech")

        failing = AsyncMock(side_effect=StorageError("disk full"))
        with patch.object(store.word_progress, "delete_many", failing):
            with pytest.raises(StorageError):
                await profiles.delete_profile(profile.user_id)

        assert await profiles.get_profile(profile.user_id) is None
        assert await profiles.get_all_profiles() == []
        assert len(await store.word_progress.get_all_from_index("by_user_id", profile.user_id)) == 1

        await profiles.delete_profile(profile.user_id)

        assert await store.user_settings.get(profile.user_id) is None
        for table in (store.word_progress, store.learning_history, store.daily_stats):
            assert await table.get_all_from_index("by_user_id", profile.user_id) == []
        with pytest.raises(ProfileNotFoundError):
            await profiles.delete_profile(profile.user_id)

    async def test_settings_delete_failure_leaves_no_profile(self, profiles, store, clock):
        profile = await profiles.create_profile("Mia", "a", "#111111")
        recorder = AttemptRecorder(store, clock=clock)
        await recorder.record_attempt(profile.user_id, "1", "one", 1, True, "speech")

        failing = AsyncMock(side_effect=StorageError("disk full"))
        with patch.object(store.user_settings, "delete", failing):
            with pytest.raises(StorageError):
                await profiles.delete_profile(profile.user_id)

        assert await profiles.get_profile(profile.user_id) is None
        assert await store.word_progress.get_all_from_index("by_user_id", profile.user_id) == []

        await profiles.delete_profile(profile.user_id)
        assert await store.user_settings.get(profile.user_id) is None


class TestSettings:
    async def test_user_settings_default_when_absent(self, profiles):
        settings = await profiles.get_user_settings("ghost")
        assert settings.daily_goal == 15

    async def test_update_user_settings(self, profiles):
        profile = await profiles.create_profile("Mia", "a", "#111111")
        settings = await profiles.update_user_settings(profile.user_id, daily_goal=30)
        assert settings.daily_goal == 30
        assert (await profiles.get_user_settings(profile.user_id)).daily_goal == 30

    async def test_update_user_settings_rejects_unknown_field(self, profiles):
        with pytest.raises(ProfileValidationError):
            await profiles.update_user_settings("u1", colour="red")

    async def test_app_settings_created_on_first_read(self, profiles, store):
        settings = await profiles.get_app_settings()
        assert settings.last_active_user_id is None
        assert settings.show_profile_selector is True
        assert settings.version == SCHEMA_VERSION
        assert await store.app_settings.get("app") is not None

    async def test_last_active_user_round_trip(self, profiles):
        await profiles.set_last_active_user("u42")
        assert await profiles.get_last_active_user_id() == "u42"
        await profiles.set_last_active_user(None)
        assert await profiles.get_last_active_user_id() is None

    async def test_update_app_settings_rejects_unknown_field(self, profiles):
        with pytest.raises(ProfileValidationError):
            await profiles.update_app_settings(last_user="u1")
        assert not hasattr(await profiles.get_app_settings(), "last_user")
