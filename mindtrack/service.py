"""Write path with cache invalidation, and the per-process tracker session."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from mindtrack.cache import CacheStore
from mindtrack.constants import DATABASE_PATH, INSIGHTS_TTL_SECONDS, USER_DATA_TTL_SECONDS
from mindtrack.errors import WriteFailed
from mindtrack.fetcher import DataFetcher
from mindtrack.insights import InsightGenerator
from mindtrack.models import JournalEntry, Mood, MoodEntry
from mindtrack.storage import RecordStoreClient, SQLiteRecordStore, initialize_storage
from mindtrack.utils import PerformanceMonitor, local_now


class EntryService:
    """Creates mood and journal entries and keeps the cache honest.

    After the store confirms a write, the user's cached views are dropped
    before control returns, with no ``await`` in between, so the very next
    read goes back to the store. Failed writes leave the cache untouched.
    """

    def __init__(
        self,
        client: RecordStoreClient,
        fetcher: DataFetcher,
        clock: Callable[[], datetime] = local_now,
    ) -> None:
        self.client = client
        self.fetcher = fetcher
        self.clock = clock

    async def record_mood(
        self,
        user_id: str,
        mood: Mood | str,
        energy_level: int,
        notes: str | None = None,
        activities: list[str] | None = None,
    ) -> MoodEntry:
        entry = MoodEntry.create(
            user_id=user_id,
            mood=mood,
            energy_level=energy_level,
            created_at=self.clock(),
            notes=notes,
            activities=activities,
        )
        try:
            await self.client.insert_mood_entry(entry)
        except Exception as exc:
            raise WriteFailed(user_id, "add mood entry") from exc
        self.fetcher.invalidate_user(user_id)
        logging.info("Mood entry %s created for user %s", entry.id, user_id)
        return entry

    async def record_journal(
        self,
        user_id: str,
        title: str,
        content: str,
        mood: Mood | str | None = None,
        tags: list[str] | None = None,
    ) -> JournalEntry:
        entry = JournalEntry.create(
            user_id=user_id,
            title=title,
            content=content,
            created_at=self.clock(),
            mood=mood,
            tags=tags,
        )
        try:
            await self.client.insert_journal_entry(entry)
        except Exception as exc:
            raise WriteFailed(user_id, "save journal entry") from exc
        self.fetcher.invalidate_user(user_id)
        logging.info("Journal entry %s created for user %s", entry.id, user_id)
        return entry

    async def delete_all_data(self, user_id: str) -> int:
        """Remove every entry of ``user_id`` and return how many rows went."""
        try:
            removed = await self.client.delete_user_entries(user_id)
        except Exception as exc:
            raise WriteFailed(user_id, "delete data") from exc
        self.fetcher.invalidate_user(user_id)
        return removed


@dataclass
class TrackerSession:
    """One cache, fetcher, insight generator and writer sharing a store.

    Create one per process (or per test) and pass it to the consuming layer.
    """

    client: RecordStoreClient
    cache: CacheStore = field(default_factory=CacheStore)
    monitor: PerformanceMonitor = field(default_factory=PerformanceMonitor)
    user_data_ttl: float = USER_DATA_TTL_SECONDS
    insights_ttl: float = INSIGHTS_TTL_SECONDS
    clock: Callable[[], datetime] = local_now

    def __post_init__(self) -> None:
        self.fetcher = DataFetcher(
            self.client, self.cache, ttl=self.user_data_ttl, monitor=self.monitor
        )
        self.insights = InsightGenerator(
            self.fetcher, self.cache, ttl=self.insights_ttl, clock=self.clock
        )
        self.entries = EntryService(self.client, self.fetcher, clock=self.clock)

    @classmethod
    def open(cls, db_path: Path = DATABASE_PATH, **options: Any) -> TrackerSession:
        """Initialize SQLite storage at ``db_path`` and build a session on it."""
        initialize_storage(db_path)
        return cls(SQLiteRecordStore(db_path), **options)

    async def export_csv(self, user_id: str, csv_path: Path) -> int:
        """Write the user's entries to ``csv_path``; return the number of rows.

        Only SQLite-backed sessions can export.
        """
        if not isinstance(self.client, SQLiteRecordStore):
            raise TypeError("CSV export needs a SQLite-backed session")
        return await self.client.export_csv(user_id, csv_path)

    def clear_cache(self) -> None:
        """Drop every cached entry for every user."""
        self.cache.clear()
