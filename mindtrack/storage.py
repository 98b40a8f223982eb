"""Record store contract and its SQLite implementation."""

from __future__ import annotations

import asyncio
import csv
import functools
import json
import logging
import sqlite3
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Protocol, TypeVar

from mindtrack.models import DateRange, JournalEntry, MoodEntry
from mindtrack.utils import parse_storage_timestamp, to_storage_timestamp

T = TypeVar("T")


class RecordStoreClient(Protocol):
    """Narrow read/write gateway to wherever mood and journal rows live.

    Implementations keep no per-user state. Any exception they raise is
    treated as a transport or backend failure by the callers.
    """

    async def select_mood_entries(
        self, user_id: str, date_range: DateRange | None = None, limit: int | None = None
    ) -> Sequence[MoodEntry]: ...

    async def select_journal_entries(
        self, user_id: str, date_range: DateRange | None = None, limit: int | None = None
    ) -> Sequence[JournalEntry]: ...

    async def insert_mood_entry(self, entry: MoodEntry) -> None: ...

    async def insert_journal_entry(self, entry: JournalEntry) -> None: ...

    async def delete_user_entries(self, user_id: str) -> int: ...


def apply_sqlite_pragmas(conn: sqlite3.Connection) -> None:
    """Apply WAL and sync/temp_store settings to an open connection."""
    try:
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=NORMAL;")
        conn.execute("PRAGMA temp_store=MEMORY;")
    except sqlite3.DatabaseError:
        logging.exception("Failed to apply SQLite PRAGMA settings.")


def initialize_storage(db_path: Path) -> None:
    """Ensure the SQLite schema exists."""
    db_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with sqlite3.connect(db_path) as conn:
            apply_sqlite_pragmas(conn)
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS mood_entries (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    mood TEXT NOT NULL,
                    energy_level INTEGER NOT NULL,
                    notes TEXT,
                    activities TEXT NOT NULL DEFAULT '[]',
                    created_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS journal_entries (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    content TEXT NOT NULL,
                    mood TEXT,
                    tags TEXT NOT NULL DEFAULT '[]',
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_mood_user_created "
                "ON mood_entries(user_id, created_at)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_journal_user_created "
                "ON journal_entries(user_id, created_at)"
            )
    except sqlite3.DatabaseError:
        logging.exception("Failed to initialize tracker database at %s", db_path)
        raise


def append_mood_entry(db_path: Path, entry: MoodEntry) -> None:
    """Insert one mood entry; activities are stored as JSON text."""
    try:
        with sqlite3.connect(db_path) as conn:
            apply_sqlite_pragmas(conn)
            conn.execute(
                """
                INSERT INTO mood_entries (
                    id, user_id, mood, energy_level, notes, activities, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.id,
                    entry.user_id,
                    entry.mood,
                    entry.energy_level,
                    entry.notes,
                    json.dumps(list(entry.activities)),
                    to_storage_timestamp(entry.created_at),
                ),
            )
    except sqlite3.DatabaseError:
        logging.exception("Failed to append mood entry to database.")
        raise


def append_journal_entry(db_path: Path, entry: JournalEntry) -> None:
    """Insert one journal entry; tags are stored as JSON text."""
    try:
        with sqlite3.connect(db_path) as conn:
            apply_sqlite_pragmas(conn)
            conn.execute(
                """
                INSERT INTO journal_entries (
                    id, user_id, title, content, mood, tags, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.id,
                    entry.user_id,
                    entry.title,
                    entry.content,
                    entry.mood,
                    json.dumps(list(entry.tags)),
                    to_storage_timestamp(entry.created_at),
                    to_storage_timestamp(entry.updated_at),
                ),
            )
    except sqlite3.DatabaseError:
        logging.exception("Failed to append journal entry to database.")
        raise


def _scoped_query(
    columns: str,
    table: str,
    user_id: str,
    date_range: DateRange | None,
    limit: int | None,
) -> tuple[str, list[object]]:
    """Build the per-user SELECT with optional date range and limit, newest first."""
    sql = f"SELECT {columns} FROM {table} WHERE user_id = ?"
    params: list[object] = [user_id]
    if date_range is not None:
        sql += " AND created_at >= ? AND created_at < ?"
        params += [
            to_storage_timestamp(date_range.start),
            to_storage_timestamp(date_range.end),
        ]
    sql += " ORDER BY created_at DESC, id DESC"
    if limit is not None:
        sql += " LIMIT ?"
        params.append(limit)
    return sql, params


def _decode_tags(raw: object) -> tuple[str, ...]:
    """Decode a JSON tag list. Raises ValueError on malformed JSON."""
    if not raw:
        return ()
    decoded = json.loads(str(raw))
    if not isinstance(decoded, list):
        return ()
    return tuple(str(tag) for tag in decoded)


def _fetch_rows(db_path: Path, sql: str, params: list[object]) -> list[sqlite3.Row]:
    """Run one query on a fresh connection and return every row."""
    with sqlite3.connect(db_path) as conn:
        apply_sqlite_pragmas(conn)
        conn.row_factory = sqlite3.Row
        return conn.execute(sql, params).fetchall()


def load_mood_entries(
    db_path: Path,
    user_id: str,
    date_range: DateRange | None = None,
    limit: int | None = None,
) -> list[MoodEntry]:
    """Load one user's mood entries, newest first."""
    sql, params = _scoped_query(
        "id, user_id, mood, energy_level, notes, activities, created_at",
        "mood_entries",
        user_id,
        date_range,
        limit,
    )
    try:
        rows = _fetch_rows(db_path, sql, params)
    except sqlite3.DatabaseError:
        logging.exception("Failed to load mood entries from SQLite.")
        raise

    entries: list[MoodEntry] = []
    for row in rows:
        try:
            entries.append(
                MoodEntry(
                    id=str(row["id"]),
                    user_id=str(row["user_id"]),
                    mood=str(row["mood"]),
                    energy_level=int(row["energy_level"]),
                    notes=row["notes"],
                    activities=_decode_tags(row["activities"]),
                    created_at=parse_storage_timestamp(row["created_at"]),
                )
            )
        except (TypeError, ValueError):
            logging.exception("Skipping malformed mood row: %s", dict(row))
            continue
    return entries


def load_journal_entries(
    db_path: Path,
    user_id: str,
    date_range: DateRange | None = None,
    limit: int | None = None,
) -> list[JournalEntry]:
    """Load one user's journal entries, newest first."""
    sql, params = _scoped_query(
        "id, user_id, title, content, mood, tags, created_at, updated_at",
        "journal_entries",
        user_id,
        date_range,
        limit,
    )
    try:
        rows = _fetch_rows(db_path, sql, params)
    except sqlite3.DatabaseError:
        logging.exception("Failed to load journal entries from SQLite.")
        raise

    entries: list[JournalEntry] = []
    for row in rows:
        try:
            entries.append(
                JournalEntry(
                    id=str(row["id"]),
                    user_id=str(row["user_id"]),
                    title=str(row["title"]),
                    content=str(row["content"]),
                    mood=row["mood"],
                    tags=_decode_tags(row["tags"]),
                    created_at=parse_storage_timestamp(row["created_at"]),
                    updated_at=parse_storage_timestamp(row["updated_at"]),
                )
            )
        except (TypeError, ValueError):
            logging.exception("Skipping malformed journal row: %s", dict(row))
            continue
    return entries


def delete_user_entries(db_path: Path, user_id: str) -> int:
    """Delete every mood and journal row for ``user_id``; return the row count."""
    try:
        with sqlite3.connect(db_path) as conn:
            apply_sqlite_pragmas(conn)
            moods = conn.execute("DELETE FROM mood_entries WHERE user_id = ?", (user_id,))
            journals = conn.execute(
                "DELETE FROM journal_entries WHERE user_id = ?", (user_id,)
            )
            removed = moods.rowcount + journals.rowcount
    except sqlite3.DatabaseError:
        logging.exception("Failed to delete entries for user %s", user_id)
        raise
    logging.info("Deleted %d entries for user %s", removed, user_id)
    return removed


def export_user_data_to_csv(db_path: Path, user_id: str, csv_path: Path) -> int:
    """Write one user's mood and journal entries to CSV, oldest first.

    Rows are written to a sibling ``.part`` file that replaces ``csv_path``
    only once every row is out, so a failed export leaves any previous file
    untouched. Returns the number of data rows written.
    """
    csv_path.parent.mkdir(parents=True, exist_ok=True)
    partial_path = csv_path.with_name(f"{csv_path.name}.part")

    try:
        with sqlite3.connect(db_path) as conn:
            apply_sqlite_pragmas(conn)
            conn.row_factory = sqlite3.Row
            cursor = conn.execute(
                """
                SELECT 'mood' AS kind, id, created_at, mood, energy_level,
                       NULL AS title, notes AS body, activities AS tags
                FROM mood_entries WHERE user_id = ?
                UNION ALL
                SELECT 'journal' AS kind, id, created_at, mood, NULL,
                       title, content, tags
                FROM journal_entries WHERE user_id = ?
                ORDER BY created_at ASC, id ASC
                """,
                (user_id, user_id),
            )
            row_count = _write_rows_to_csv(cursor, partial_path)
        partial_path.replace(csv_path)
    except sqlite3.DatabaseError:
        partial_path.unlink(missing_ok=True)
        logging.exception("Failed to export entries from SQLite.")
        raise
    except OSError:
        partial_path.unlink(missing_ok=True)
        logging.exception("Failed to write CSV export to %s", csv_path)
        raise
    return row_count


def _write_rows_to_csv(cursor: sqlite3.Cursor, csv_path: Path) -> int:
    """Stream cursor rows into ``csv_path`` in batches; return the row count.

    Tag lists are joined with ``;``. A tags column that is not valid JSON is
    logged and written out as stored.
    """
    row_count = 0
    batch_size = 1000
    columns = ["kind", "id", "created_at", "mood", "energy_level", "title", "body", "tags"]

    with csv_path.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.writer(handle)
        writer.writerow(columns)

        while True:
            rows = cursor.fetchmany(batch_size)
            if not rows:
                break
            for row in rows:
                record = [row[column] for column in columns]
                try:
                    record[-1] = ";".join(_decode_tags(row["tags"]))
                except ValueError:
                    logging.exception(
                        "Exporting raw tags for malformed %s row %s", row["kind"], row["id"]
                    )
                writer.writerow(record)
                row_count += 1

    return row_count


class SQLiteRecordStore:
    """RecordStoreClient backed by a local SQLite file.

    Each call opens its own connection inside the default executor, so the
    event loop is never blocked on disk I/O.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path

    async def _run(self, func: Callable[..., T], *args: object) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, self.db_path, *args))

    async def select_mood_entries(
        self, user_id: str, date_range: DateRange | None = None, limit: int | None = None
    ) -> list[MoodEntry]:
        return await self._run(load_mood_entries, user_id, date_range, limit)

    async def select_journal_entries(
        self, user_id: str, date_range: DateRange | None = None, limit: int | None = None
    ) -> list[JournalEntry]:
        return await self._run(load_journal_entries, user_id, date_range, limit)

    async def insert_mood_entry(self, entry: MoodEntry) -> None:
        await self._run(append_mood_entry, entry)

    async def insert_journal_entry(self, entry: JournalEntry) -> None:
        await self._run(append_journal_entry, entry)

    async def delete_user_entries(self, user_id: str) -> int:
        return await self._run(delete_user_entries, user_id)

    async def export_csv(self, user_id: str, csv_path: Path) -> int:
        return await self._run(export_user_data_to_csv, user_id, csv_path)
