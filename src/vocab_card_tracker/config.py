"""Application configuration using pydantic-settings."""

import functools
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

# settings.yaml section -> Settings fields read from it
YAML_SECTIONS: dict[str, tuple[str, ...]] = {
    "server": ("host", "port"),
    "storage": ("data_dir",),
    "content": ("content_dir", "level_count"),
    "learning": (
        "review_batch_limit",
        "default_daily_goal",
        "profile_name_max_length",
        "speech_language",
    ),
}


def _find_project_root() -> Path:
    here = Path(__file__).resolve()
    for candidate in (here, *here.parents):
        if (candidate / "pyproject.toml").exists():
            return candidate
    return here.parents[2]


def flatten_sections(data: dict[str, Any]) -> dict[str, Any]:
    """Pull known keys out of settings.yaml sections; nulls mean "use the default"."""
    values: dict[str, Any] = {}
    for section, fields in YAML_SECTIONS.items():
        block = data.get(section) or {}
        for field in fields:
            if block.get(field) is not None:
                values[field] = block[field]
    return values


class YamlSettingsSource(PydanticBaseSettingsSource):
    """Reads config/settings.yaml under the project root, if present."""

    def get_field_value(self, field_name: str) -> tuple[Any, str, bool]:
        return None, "", False

    def __call__(self) -> dict[str, Any]:
        yaml_path = _find_project_root() / "config" / "settings.yaml"
        if not yaml_path.exists():
            return {}
        with open(yaml_path, encoding="utf-8") as f:
            return flatten_sections(yaml.safe_load(f) or {})


class Settings(BaseSettings):
    """Tracker settings: init args, then env/.env, then settings.yaml."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000)

    # Storage / content (None means "under project_root/data")
    data_dir: Path | None = Field(default=None)
    content_dir: Path | None = Field(default=None)
    level_count: int = Field(default=18)

    # Learning
    review_batch_limit: int = Field(default=20)
    default_daily_goal: int = Field(default=10)
    profile_name_max_length: int = Field(default=10)
    speech_language: str = Field(default="en-US")

    project_root: Path = Field(default_factory=_find_project_root)

    @property
    def progress_dir(self) -> Path:
        d = self.data_dir or self.project_root / "data" / "progress"
        d.mkdir(parents=True, exist_ok=True)
        return d

    @property
    def vocabulary_dir(self) -> Path:
        return self.content_dir or self.project_root / "data" / "vocabulary"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlSettingsSource(settings_cls),
            file_secret_settings,
        )


@functools.lru_cache
def get_settings() -> Settings:
    return Settings()
