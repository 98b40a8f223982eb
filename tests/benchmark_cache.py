#!/usr/bin/env python3
"""Performance comparison demo: repeated reads with and without the fetcher cache."""

import asyncio
import shutil
import tempfile
import time
from datetime import datetime, timedelta
from pathlib import Path

from mindtrack.cache import CacheStore
from mindtrack.fetcher import DataFetcher
from mindtrack.models import JournalEntry, MoodEntry
from mindtrack.storage import (
    SQLiteRecordStore,
    append_journal_entry,
    append_mood_entry,
    delete_user_entries,
    initialize_storage,
)

USER_ID = "bench-user"


async def benchmark_without_cache(store: SQLiteRecordStore, num_refreshes: int) -> float:
    """Every refresh goes to SQLite."""
    start = time.perf_counter()
    for _ in range(num_refreshes):
        await asyncio.gather(
            store.select_mood_entries(USER_ID, limit=100),
            store.select_journal_entries(USER_ID, limit=100),
        )
    return time.perf_counter() - start


async def benchmark_with_cache(store: SQLiteRecordStore, num_refreshes: int) -> float:
    """First refresh loads from SQLite, the rest are served from memory."""
    fetcher = DataFetcher(store, CacheStore())
    await fetcher.fetch_user_data(USER_ID)

    start = time.perf_counter()
    for _ in range(num_refreshes):
        await fetcher.fetch_user_data(USER_ID)
    return time.perf_counter() - start


def populate(db_path: Path, num_records: int) -> None:
    delete_user_entries(db_path, USER_ID)
    now = datetime.now().astimezone()
    for i in range(num_records):
        created_at = now - timedelta(hours=i)
        append_mood_entry(
            db_path, MoodEntry.create(USER_ID, "good", 1 + i % 10, created_at)
        )
        append_journal_entry(
            db_path,
            JournalEntry.create(USER_ID, f"Entry {i + 1}", "Benchmark text", created_at),
        )


def main():
    print("=" * 70)
    print("MindTrack Fetcher Cache Benchmark")
    print("=" * 70)
    print()

    tmpdir = tempfile.mkdtemp()
    try:
        db_path = Path(tmpdir) / "bench.db"
        initialize_storage(db_path)
        store = SQLiteRecordStore(db_path)

        test_cases = [100, 500, 1000, 2000]
        num_refreshes = 100

        print("Performance Test Configuration:")
        print(f"   - Each test case includes {num_refreshes} fetch_user_data() calls")
        print()

        for num_records in test_cases:
            print(f"Generating {num_records} mood and journal records...", end="", flush=True)
            populate(db_path, num_records)
            print(" OK")

            print(f"\nTest Case: {num_records} records")
            print("   " + "-" * 52)

            elapsed_no_cache = asyncio.run(benchmark_without_cache(store, num_refreshes))
            per_call_no_cache = elapsed_no_cache / num_refreshes * 1000
            print(
                f"   NO CACHE:  {elapsed_no_cache:.4f}s total "
                f"({per_call_no_cache:.3f}ms per call)"
            )

            elapsed_with_cache = asyncio.run(benchmark_with_cache(store, num_refreshes))
            per_call_with_cache = elapsed_with_cache / num_refreshes * 1000
            print(
                f"   WITH CACHE: {elapsed_with_cache:.6f}s total "
                f"({per_call_with_cache:.6f}ms per call)"
            )

            speedup = per_call_no_cache / max(per_call_with_cache, 0.000001)
            print(f"   SPEEDUP: {speedup:.0f}x")

        print()
        print("=" * 70)
        print("Summary:")
        print("   - First fetch: loads from SQLite through the executor")
        print("   - Later fetches within the TTL: served from the cache store")
        print("=" * 70)

    finally:
        shutil.rmtree(tmpdir, ignore_errors=True)


if __name__ == "__main__":
    main()
