"""REST API routes for profiles, attempts and progress queries."""

from dataclasses import dataclass

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from pydantic import BaseModel, Field

from vocab_card_tracker.audio.speech import check_spoken_answer, check_typed_answer
from vocab_card_tracker.config import Settings
from vocab_card_tracker.content.loader import (
    load_all_levels_metadata,
    load_level_flash_cards,
    load_level_manifest,
)
from vocab_card_tracker.exceptions import (
    ManifestError,
    ManifestLoadError,
    ManifestNotFoundError,
    ProfileNotFoundError,
    ProfileValidationError,
)
from vocab_card_tracker.learning.queries import LearningStats, LevelProgress, ProgressQueries
from vocab_card_tracker.learning.recorder import AttemptRecorder
from vocab_card_tracker.learning.streak import StreakCalculator, StreakSummary
from vocab_card_tracker.models.progress import DailyStats, InputMethod, WordProgress
from vocab_card_tracker.models.user_profile import AppSettings, UserProfile, UserSettings
from vocab_card_tracker.models.vocabulary import FlashCard, LevelMetadata
from vocab_card_tracker.storage.profiles import ProfileService
from vocab_card_tracker.storage.store import ProgressStore

logger = structlog.get_logger()
router = APIRouter(prefix="/api")


@dataclass
class Services:
    """Everything the routes need, built once per app around one store."""

    settings: Settings
    store: ProgressStore
    profiles: ProfileService
    recorder: AttemptRecorder
    queries: ProgressQueries
    streaks: StreakCalculator

    @classmethod
    def build(cls, settings: Settings, store: ProgressStore) -> "Services":
        return cls(
            settings=settings,
            store=store,
            profiles=ProfileService(
                store,
                name_max_length=settings.profile_name_max_length,
                default_daily_goal=settings.default_daily_goal,
            ),
            recorder=AttemptRecorder(store),
            queries=ProgressQueries(store),
            streaks=StreakCalculator(store),
        )


def get_services(request: Request) -> Services:
    return request.app.state.services


class ProfileCreate(BaseModel):
    name: str
    avatar: str
    theme_color: str


class ProfileUpdate(BaseModel):
    name: str | None = None
    avatar: str | None = None
    theme_color: str | None = None


class SettingsUpdate(BaseModel):
    enable_reminders: bool | None = None
    daily_goal: int | None = Field(default=None, ge=1)


class AttemptIn(BaseModel):
    word_id: str
    word: str
    level: int
    is_correct: bool
    input_method: InputMethod
    response_time_ms: float | None = None


class AnswerCheckIn(BaseModel):
    target: str
    input_method: InputMethod
    answer: str | None = None
    transcripts: list[str] = Field(default_factory=list)


class AnswerCheckOut(BaseModel):
    correct: bool


async def _require_profile(services: Services, user_id: str) -> UserProfile:
    profile = await services.profiles.get_profile(user_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}


@router.get("/profiles")
async def list_profiles(services: Services = Depends(get_services)) -> list[UserProfile]:
    """List profiles, most recently active first."""
    return await services.profiles.get_all_profiles()


@router.post("/profiles", status_code=201)
async def create_profile(
    body: ProfileCreate, services: Services = Depends(get_services)
) -> UserProfile:
    try:
        return await services.profiles.create_profile(body.name, body.avatar, body.theme_color)
    except ProfileValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/profiles/{user_id}")
async def get_profile(user_id: str, services: Services = Depends(get_services)) -> UserProfile:
    return await _require_profile(services, user_id)


@router.patch("/profiles/{user_id}")
async def update_profile(
    user_id: str, body: ProfileUpdate, services: Services = Depends(get_services)
) -> UserProfile:
    try:
        return await services.profiles.update_profile(
            user_id, **body.model_dump(exclude_none=True)
        )
    except ProfileNotFoundError:
        raise HTTPException(status_code=404, detail="Profile not found")
    except ProfileValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/profiles/{user_id}", status_code=204)
async def delete_profile(user_id: str, services: Services = Depends(get_services)) -> Response:
    try:
        await services.profiles.delete_profile(user_id)
    except ProfileNotFoundError:
        raise HTTPException(status_code=404, detail="Profile not found")
    return Response(status_code=204)


@router.post("/profiles/{user_id}/activate")
async def activate_profile(
    user_id: str, services: Services = Depends(get_services)
) -> UserProfile:
    """Mark a profile as the current learner."""
    try:
        profile = await services.profiles.update_last_active(user_id)
    except ProfileNotFoundError:
        raise HTTPException(status_code=404, detail="Profile not found")
    await services.profiles.set_last_active_user(user_id)
    return profile


@router.get("/profiles/{user_id}/settings")
async def get_user_settings(
    user_id: str, services: Services = Depends(get_services)
) -> UserSettings:
    await _require_profile(services, user_id)
    return await services.profiles.get_user_settings(user_id)


@router.patch("/profiles/{user_id}/settings")
async def update_user_settings(
    user_id: str, body: SettingsUpdate, services: Services = Depends(get_services)
) -> UserSettings:
    await _require_profile(services, user_id)
    return await services.profiles.update_user_settings(
        user_id, **body.model_dump(exclude_none=True)
    )


@router.post("/profiles/{user_id}/attempts")
async def record_attempt(
    user_id: str, body: AttemptIn, services: Services = Depends(get_services)
) -> WordProgress:
    await _require_profile(services, user_id)
    return await services.recorder.record_attempt(
        user_id=user_id,
        word_id=body.word_id,
        word=body.word,
        level=body.level,
        is_correct=body.is_correct,
        input_method=body.input_method,
        response_time_ms=body.response_time_ms,
    )


@router.get("/profiles/{user_id}/progress")
async def list_progress(
    user_id: str,
    level: int | None = None,
    services: Services = Depends(get_services),
) -> list[WordProgress]:
    rows = await services.queries.get_user_progress(user_id)
    if level is not None:
        rows = [p for p in rows if p.level == level]
    return sorted(rows, key=lambda p: p.id)


@router.get("/profiles/{user_id}/progress/{level}/{word_id}")
async def get_word_progress(
    user_id: str, level: int, word_id: str, services: Services = Depends(get_services)
) -> WordProgress:
    progress = await services.queries.get_word_progress(user_id, word_id, level)
    if progress is None:
        raise HTTPException(status_code=404, detail="No progress for this word")
    return progress


@router.get("/profiles/{user_id}/review")
async def words_for_review(
    user_id: str,
    limit: int | None = Query(default=None, ge=1),
    services: Services = Depends(get_services),
) -> list[WordProgress]:
    """Words due for review, new words first."""
    return await services.queries.get_words_for_review(
        user_id, limit=limit or services.settings.review_batch_limit
    )


@router.get("/profiles/{user_id}/stats")
async def learning_stats(
    user_id: str, services: Services = Depends(get_services)
) -> LearningStats:
    return await services.queries.get_learning_stats(user_id)


@router.get("/profiles/{user_id}/streak")
async def streak(user_id: str, services: Services = Depends(get_services)) -> StreakSummary:
    return await services.streaks.streak(user_id)


@router.get("/profiles/{user_id}/daily-stats")
async def daily_stats(
    user_id: str, services: Services = Depends(get_services)
) -> list[DailyStats]:
    return await services.queries.get_daily_stats(user_id)


@router.get("/profiles/{user_id}/levels/{level}")
async def level_progress(
    user_id: str, level: int, services: Services = Depends(get_services)
) -> LevelProgress:
    total_words = 0
    try:
        total_words = load_level_manifest(services.settings.vocabulary_dir, level).total_words
    except ManifestError as e:
        logger.warning("level_manifest_unavailable", level=level, error=str(e))
    return await services.queries.get_level_progress(user_id, level, total_words)


@router.get("/levels")
async def list_levels(services: Services = Depends(get_services)) -> list[LevelMetadata]:
    return load_all_levels_metadata(
        services.settings.vocabulary_dir, services.settings.level_count
    )


@router.get("/levels/{level}/cards")
async def level_cards(level: int, services: Services = Depends(get_services)) -> list[FlashCard]:
    try:
        return load_level_flash_cards(services.settings.vocabulary_dir, level)
    except ManifestNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ManifestLoadError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/answers/check")
async def check_answer(body: AnswerCheckIn) -> AnswerCheckOut:
    """Judge an answer: loose matching for speech, exact for typing."""
    if body.input_method == InputMethod.SPEECH:
        candidates = body.transcripts or ([body.answer] if body.answer is not None else [])
        return AnswerCheckOut(correct=check_spoken_answer(candidates, body.target))
    return AnswerCheckOut(correct=check_typed_answer(body.answer or "", body.target))


@router.get("/app-settings")
async def app_settings(services: Services = Depends(get_services)) -> AppSettings:
    return await services.profiles.get_app_settings()
