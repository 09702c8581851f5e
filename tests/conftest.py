"""Shared fixtures: a temp-dir progress store and a controllable clock."""

from datetime import datetime, timedelta

import pytest

from vocab_card_tracker.storage.store import ProgressStore


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 1, 1, 9, 0, 0))


@pytest.fixture
async def store(tmp_path):
    progress_store = ProgressStore(tmp_path / "progress")
    await progress_store.open()
    yield progress_store
    await progress_store.close()
