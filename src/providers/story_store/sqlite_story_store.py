"""SQLite-backed story store.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Providers (concrete adapter implementing IStoryStore).
#
# Database: ``data/stories.db`` by default.  Local stand-in for the
# Supabase ``stories`` table with the same columns; ``tags`` and
# ``embedding`` are stored as JSON text.
#
# Uses ``aiosqlite`` for async I/O and ``PRAGMA journal_mode=WAL`` so the
# reader can query while an ingestion run writes.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from src.interfaces.story_store import IStoryStore
from src.models.story import StoryRecord
from src.providers.story_store.columns import (
    COLUMNS,
    columns_for_update,
    record_to_values,
    values_to_record,
)
from src.utils.errors import PersistenceBatchError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/stories.db")

# ── Schema DDL ────────────────────────────────────────────────────────

_CREATE_STORIES_TABLE = """\
CREATE TABLE IF NOT EXISTS stories (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    story_id            TEXT    NOT NULL UNIQUE,
    rabbi_he            TEXT,
    rabbi_en            TEXT,
    date_he             TEXT,
    date_en             TEXT,
    title_he            TEXT,
    title_en            TEXT,
    body_he             TEXT,
    body_en             TEXT,
    tags                TEXT    NOT NULL DEFAULT '[]',
    embedding           TEXT,
    is_published        INTEGER NOT NULL DEFAULT 1,
    hebrew_day          INTEGER,
    hebrew_month        TEXT,
    hebrew_month_index  INTEGER,
    updated_at          TEXT    NOT NULL DEFAULT (datetime('now'))
);
"""

_CREATE_INDICES = [
    "CREATE INDEX IF NOT EXISTS idx_stories_month ON stories(hebrew_month_index, hebrew_day);",
]

# ── DML ───────────────────────────────────────────────────────────────

_UPSERT_STORY = (
    f"INSERT INTO stories ({', '.join(COLUMNS)})\n"
    f"VALUES ({', '.join('?' for _ in COLUMNS)})\n"
    "ON CONFLICT(story_id) DO UPDATE SET\n"
    + ",\n".join(f"    {col} = excluded.{col}" for col in COLUMNS if col != "story_id")
    + ",\n    updated_at = datetime('now');"
)

_SELECT_COLUMNS = ", ".join(COLUMNS)
_SELECT_STORY = f"SELECT {_SELECT_COLUMNS} FROM stories WHERE story_id = ?;"
_COUNT_STORIES = "SELECT COUNT(*) FROM stories;"


class SQLiteStoryStore(IStoryStore):
    """SQLite persistence for merged stories."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the stories table and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute("PRAGMA journal_mode=WAL;")
            await db.execute(_CREATE_STORIES_TABLE)
            for idx_sql in _CREATE_INDICES:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("story_store_initialized", backend="sqlite", path=str(self._db_path))

    def get_provider_name(self) -> str:
        return "sqlite_story_store"

    async def upsert_stories(self, stories: list[StoryRecord]) -> int:
        if not stories:
            return 0
        rows = [self._to_params(story) for story in stories]
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.executemany(_UPSERT_STORY, rows)
                await db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceBatchError(
                message=f"SQLite upsert failed: {exc}",
                provider_name=self.get_provider_name(),
                story_ids=[s.story_id for s in stories],
            ) from exc
        return len(rows)

    async def get_story(self, story_id: str) -> StoryRecord | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(_SELECT_STORY, (story_id,))
            row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_story(dict(row))

    async def list_stories(self, *, limit: int | None = None, offset: int = 0) -> list[StoryRecord]:
        query = f"SELECT {_SELECT_COLUMNS} FROM stories ORDER BY story_id"
        params: list[Any] = []
        if limit is not None:
            query += " LIMIT ? OFFSET ?"
            params.extend([limit, offset])
        elif offset:
            query += " LIMIT -1 OFFSET ?"
            params.append(offset)

        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(query + ";", params)
            rows = await cursor.fetchall()
        return [self._row_to_story(dict(r)) for r in rows]

    async def update_fields(self, story_id: str, fields: dict[str, Any]) -> bool:
        if not fields:
            return False
        columns = columns_for_update(fields)
        assignments = ", ".join(f"{col} = ?" for col in columns)
        params = [self._encode(col, value) for col, value in columns.items()]
        params.append(story_id)
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                f"UPDATE stories SET {assignments}, updated_at = datetime('now') WHERE story_id = ?;",
                params,
            )
            await db.commit()
            return cursor.rowcount > 0

    async def count(self) -> int:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(_COUNT_STORIES)
            row = await cursor.fetchone()
        return int(row[0]) if row else 0

    # ── Internal helpers ───────────────────────────────────────────────

    @classmethod
    def _to_params(cls, story: StoryRecord) -> tuple[Any, ...]:
        values = record_to_values(story)
        return tuple(cls._encode(col, values[col]) for col in COLUMNS)

    @staticmethod
    def _encode(column: str, value: Any) -> Any:
        if column == "tags":
            return json.dumps(list(value or []), ensure_ascii=False)
        if column == "embedding":
            return json.dumps(value) if value is not None else None
        if column == "is_published":
            return 1 if value else 0
        return value

    @staticmethod
    def _row_to_story(row: dict[str, Any]) -> StoryRecord:
        row["tags"] = json.loads(row["tags"]) if row.get("tags") else []
        row["embedding"] = json.loads(row["embedding"]) if row.get("embedding") else None
        row["is_published"] = bool(row.get("is_published"))
        return values_to_record(row)
