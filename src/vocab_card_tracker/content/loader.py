"""Level manifest loading for the read-only vocabulary content."""

import json
from pathlib import Path

import structlog
from pydantic import ValidationError

from vocab_card_tracker.exceptions import ManifestError, ManifestLoadError, ManifestNotFoundError
from vocab_card_tracker.models.vocabulary import (
    FlashCard,
    LevelManifest,
    LevelMetadata,
    VocabularyWord,
)

logger = structlog.get_logger()


def get_manifest_path(content_dir: Path, level: int) -> Path:
    return content_dir / f"level_{level}_manifest.json"


def load_level_manifest(content_dir: Path, level: int) -> LevelManifest:
    """Load the manifest for one level.

    Raises:
        ManifestNotFoundError: The file is missing.
        ManifestLoadError: The file exists but cannot be parsed.
    """
    path = get_manifest_path(content_dir, level)
    if not path.exists():
        raise ManifestNotFoundError(level)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return LevelManifest.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as e:
        logger.error("manifest_parse_error", level=level, path=str(path), error=str(e))
        raise ManifestLoadError(level, str(e)) from e


def load_all_levels_metadata(content_dir: Path, level_count: int = 18) -> list[LevelMetadata]:
    """Metadata for every level that loads; failing levels are skipped."""
    levels = []
    for level in range(1, level_count + 1):
        try:
            levels.append(load_level_manifest(content_dir, level).metadata)
        except ManifestError as e:
            logger.warning("level_metadata_unavailable", level=level, error=str(e))
    return levels


def to_flash_card(word: VocabularyWord) -> FlashCard:
    return FlashCard(
        id=word.id,
        word=word.word,
        meaning=word.meaning,
        level=word.level,
        image_path=word.image_path or f"level_{word.level}/{word.filename}",
        examples=word.examples,
    )


def load_level_flash_cards(content_dir: Path, level: int) -> list[FlashCard]:
    manifest = load_level_manifest(content_dir, level)
    return [to_flash_card(word) for word in manifest.results]
