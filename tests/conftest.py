"""Shared fixtures: a fake record store that counts remote calls."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta

import pytest

from mindtrack.cache import CacheStore
from mindtrack.models import DateRange, JournalEntry, MoodEntry

AS_OF = datetime(2025, 3, 14, 18, 0)


class FakeClock:
    """Monotonic clock the tests can move forward by hand."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRecordStore:
    """In-memory RecordStoreClient with call counters and failure switches."""

    def __init__(self) -> None:
        self.moods: list[MoodEntry] = []
        self.journals: list[JournalEntry] = []
        self.mood_selects = 0
        self.journal_selects = 0
        self.fail_reads = False
        self.fail_writes = False
        self.gate: asyncio.Event | None = None

    async def _pause(self) -> None:
        await asyncio.sleep(0)
        if self.gate is not None:
            await self.gate.wait()

    @staticmethod
    def _select(rows, user_id, date_range, limit):
        matches = [
            row
            for row in rows
            if row.user_id == user_id
            and (date_range is None or date_range.contains(row.created_at))
        ]
        matches.sort(key=lambda row: row.created_at, reverse=True)
        return matches[:limit] if limit is not None else matches

    async def select_mood_entries(self, user_id, date_range: DateRange | None = None, limit=None):
        self.mood_selects += 1
        await self._pause()
        if self.fail_reads:
            raise ConnectionError("backend unavailable")
        return self._select(self.moods, user_id, date_range, limit)

    async def select_journal_entries(self, user_id, date_range: DateRange | None = None, limit=None):
        self.journal_selects += 1
        await self._pause()
        if self.fail_reads:
            raise ConnectionError("backend unavailable")
        return self._select(self.journals, user_id, date_range, limit)

    async def insert_mood_entry(self, entry: MoodEntry) -> None:
        await asyncio.sleep(0)
        if self.fail_writes:
            raise ConnectionError("backend unavailable")
        self.moods.append(entry)

    async def insert_journal_entry(self, entry: JournalEntry) -> None:
        await asyncio.sleep(0)
        if self.fail_writes:
            raise ConnectionError("backend unavailable")
        self.journals.append(entry)

    async def delete_user_entries(self, user_id: str) -> int:
        await asyncio.sleep(0)
        if self.fail_writes:
            raise ConnectionError("backend unavailable")
        before = len(self.moods) + len(self.journals)
        self.moods = [row for row in self.moods if row.user_id != user_id]
        self.journals = [row for row in self.journals if row.user_id != user_id]
        return before - len(self.moods) - len(self.journals)


def make_mood(
    mood: str = "good",
    days_ago: int = 0,
    user_id: str = "user-1",
    energy_level: int = 5,
    as_of: datetime = AS_OF,
) -> MoodEntry:
    return MoodEntry.create(
        user_id=user_id,
        mood=mood,
        energy_level=energy_level,
        created_at=as_of - timedelta(days=days_ago, hours=1),
    )


def make_journal(
    title: str = "Morning pages",
    tags: list[str] | None = None,
    days_ago: int = 0,
    user_id: str = "user-1",
) -> JournalEntry:
    return JournalEntry.create(
        user_id=user_id,
        title=title,
        content="Wrote a few lines.",
        created_at=AS_OF - timedelta(days=days_ago, hours=2),
        tags=tags,
    )


@pytest.fixture
def store() -> FakeRecordStore:
    return FakeRecordStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> CacheStore:
    return CacheStore(clock=clock)
