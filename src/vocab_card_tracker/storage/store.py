"""Progress store (JSON tables + fcntl.flock + atomic write).

Each entity type lives in its own JSON document keyed by a composite id.
Secondary indexes are emulated by key functions evaluated over the
in-memory rows, so joins such as "all progress for a user at a level"
need no query planner.
"""

import asyncio
import fcntl
import json
import os
import tempfile
from collections.abc import Callable, Hashable
from pathlib import Path
from typing import Any, Generic, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from vocab_card_tracker.exceptions import StorageError, StoreNotOpenError
from vocab_card_tracker.models.progress import DailyStats, LearningHistory, WordProgress
from vocab_card_tracker.models.user_profile import AppSettings, UserProfile, UserSettings

logger = structlog.get_logger()

ModelT = TypeVar("ModelT", bound=BaseModel)
IndexFn = Callable[[Any], Hashable]


class Table(Generic[ModelT]):
    """One persisted entity collection with point and index lookups.

    Writes are last-write-wins per key. Index lookups return every
    matching row in insertion order; callers sort when order matters.

    Args:
        name: Table name, also the JSON file stem.
        model: Pydantic model for rows.
        path: JSON document backing the table.
        key_field: Attribute holding the primary key.
        indexes: Index name to key function.
    """

    def __init__(
        self,
        name: str,
        model: type[ModelT],
        path: Path,
        key_field: str,
        indexes: dict[str, IndexFn] | None = None,
    ):
        self.name = name
        self.model = model
        self.path = path
        self.key_field = key_field
        self.indexes = indexes or {}
        self._rows: dict[str, ModelT] = {}

    def load(self) -> None:
        if not self.path.exists():
            self._rows = {}
            return
        try:
            with open(self.path, encoding="utf-8") as f:
                fcntl.flock(f, fcntl.LOCK_SH)
                data = json.load(f)
                fcntl.flock(f, fcntl.LOCK_UN)
            self._rows = {key: self.model.model_validate(row) for key, row in data.items()}
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.error("storage_read_failed", table=self.name, error=str(e))
            raise StorageError(f"Failed to load table {self.name}: {e}") from e

    def _flush(self) -> None:
        payload = {key: row.model_dump(mode="json") for key, row in self._rows.items()}
        lock_path = self.path.with_suffix(".lock")
        try:
            with open(lock_path, "w") as lock_file:
                fcntl.flock(lock_file, fcntl.LOCK_EX)
                with tempfile.NamedTemporaryFile(
                    "w", dir=self.path.parent, delete=False, suffix=".json", encoding="utf-8"
                ) as tmp:
                    json.dump(payload, tmp, indent=2)
                os.replace(tmp.name, self.path)
        except OSError as e:
            logger.error("storage_write_failed", table=self.name, error=str(e))
            raise StorageError(f"Failed to write table {self.name}: {e}") from e

    def _key_of(self, row: ModelT) -> str:
        return getattr(row, self.key_field)

    def _index(self, index_name: str) -> IndexFn:
        try:
            return self.indexes[index_name]
        except KeyError:
            raise StorageError(f"Unknown index {index_name!r} on table {self.name}") from None

    async def get(self, key: str) -> ModelT | None:
        row = self._rows.get(key)
        return row.model_copy(deep=True) if row is not None else None

    async def put(self, row: ModelT) -> ModelT:
        """Insert or replace a row, rolling back memory if the write fails."""
        key = self._key_of(row)
        previous = self._rows.get(key)
        self._rows[key] = row.model_copy(deep=True)
        try:
            self._flush()
        except StorageError:
            if previous is None:
                del self._rows[key]
            else:
                self._rows[key] = previous
            raise
        return row

    async def add(self, row: ModelT) -> ModelT:
        """Insert a new row; an existing key is an error."""
        key = self._key_of(row)
        if key in self._rows:
            raise StorageError(f"Key already exists in {self.name}: {key}")
        return await self.put(row)

    async def delete(self, key: str) -> None:
        previous = self._rows.pop(key, None)
        if previous is None:
            return
        try:
            self._flush()
        except StorageError:
            self._rows[key] = previous
            raise

    async def delete_many(self, keys: list[str]) -> int:
        """Delete several rows with a single write."""
        removed = {key: self._rows.pop(key) for key in keys if key in self._rows}
        if not removed:
            return 0
        try:
            self._flush()
        except StorageError:
            self._rows.update(removed)
            raise
        return len(removed)

    async def contains(self, key: str) -> bool:
        return key in self._rows

    async def get_all(self) -> list[ModelT]:
        return [row.model_copy(deep=True) for row in self._rows.values()]

    async def get_all_from_index(self, index_name: str, value: Hashable) -> list[ModelT]:
        index_fn = self._index(index_name)
        return [
            row.model_copy(deep=True)
            for row in self._rows.values()
            if index_fn(row) == value
        ]

    async def get_all_keys_from_index(self, index_name: str, value: Hashable) -> list[str]:
        index_fn = self._index(index_name)
        return [key for key, row in self._rows.items() if index_fn(row) == value]

    async def get_range_from_index(
        self,
        index_name: str,
        lower: Any = None,
        upper: Any = None,
    ) -> list[ModelT]:
        """Rows whose index value lies in [lower, upper], sorted by that value.

        A None bound is open.
        """
        index_fn = self._index(index_name)
        matches = []
        for row in self._rows.values():
            value = index_fn(row)
            if lower is not None and value < lower:
                continue
            if upper is not None and value > upper:
                continue
            matches.append((value, row))
        matches.sort(key=lambda item: item[0])
        return [row.model_copy(deep=True) for _, row in matches]


class ProgressStore:
    """Process-wide handle over all persisted tables.

    Constructed explicitly and injected into services. ``open()`` is
    idempotent: concurrent or repeated calls load the tables once and
    return the same handle.

    Args:
        data_dir: Directory holding the table documents.
    """

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        self._open_lock = asyncio.Lock()
        self._is_open = False
        self._tables: dict[str, Table] = {}

    @property
    def is_open(self) -> bool:
        return self._is_open

    def _build_tables(self) -> dict[str, Table]:
        d = self.data_dir
        return {
            "user_profiles": Table(
                "user_profiles", UserProfile, d / "user_profiles.json", "user_id",
                indexes={"by_last_active": lambda p: p.last_active_at},
            ),
            "word_progress": Table(
                "word_progress", WordProgress, d / "word_progress.json", "id",
                indexes={
                    "by_user_id": lambda p: p.user_id,
                    "by_user_id_level": lambda p: (p.user_id, p.level),
                },
            ),
            "learning_history": Table(
                "learning_history", LearningHistory, d / "learning_history.json", "id",
                indexes={
                    "by_user_id": lambda h: h.user_id,
                    "by_user_id_timestamp": lambda h: (h.user_id, h.timestamp),
                },
            ),
            "daily_stats": Table(
                "daily_stats", DailyStats, d / "daily_stats.json", "id",
                indexes={"by_user_id": lambda s: s.user_id},
            ),
            "user_settings": Table(
                "user_settings", UserSettings, d / "user_settings.json", "user_id",
            ),
            "app_settings": Table(
                "app_settings", AppSettings, d / "app_settings.json", "id",
            ),
        }

    async def open(self) -> "ProgressStore":
        """Load all tables once; later calls return the same handle."""
        async with self._open_lock:
            if self._is_open:
                return self
            try:
                self.data_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                logger.error("storage_open_failed", data_dir=str(self.data_dir), error=str(e))
                raise StorageError(f"Cannot create data directory {self.data_dir}: {e}") from e
            tables = self._build_tables()
            for table in tables.values():
                table.load()
            self._tables = tables
            self._is_open = True
            logger.info("progress_store_opened", data_dir=str(self.data_dir))
        return self

    async def close(self) -> None:
        async with self._open_lock:
            if not self._is_open:
                return
            self._tables = {}
            self._is_open = False
            logger.info("progress_store_closed", data_dir=str(self.data_dir))

    def _table(self, name: str) -> Table:
        if not self._is_open:
            raise StoreNotOpenError("Progress store is not open")
        return self._tables[name]

    @property
    def user_profiles(self) -> Table[UserProfile]:
        return self._table("user_profiles")

    @property
    def word_progress(self) -> Table[WordProgress]:
        return self._table("word_progress")

    @property
    def learning_history(self) -> Table[LearningHistory]:
        return self._table("learning_history")

    @property
    def daily_stats(self) -> Table[DailyStats]:
        return self._table("daily_stats")

    @property
    def user_settings(self) -> Table[UserSettings]:
        return self._table("user_settings")

    @property
    def app_settings(self) -> Table[AppSettings]:
        return self._table("app_settings")
