"""Postgres (Supabase) story store using psycopg 3.

The ``stories`` table is owned by the reader application and already
exists in Supabase; :meth:`PostgresStoryStore.initialize` only verifies it.
``tags`` is a ``text[]`` column and ``embedding`` a pgvector ``vector``
column, written from its ``[x, y, ...]`` text form.

Each call opens its own connection from ``database_url``, so one failing
batch cannot poison the connection used by the next.
"""

from __future__ import annotations

import json
from typing import Any

import psycopg
import structlog
from psycopg.rows import dict_row

from src.interfaces.story_store import IStoryStore
from src.models.story import StoryRecord
from src.providers.story_store.columns import (
    COLUMNS,
    columns_for_update,
    record_to_values,
    values_to_record,
)
from src.utils.errors import ConfigurationError, PersistenceBatchError

logger = structlog.get_logger(logger_name=__name__)

_PLACEHOLDERS = {"tags": "%s::text[]", "embedding": "%s::vector"}

_UPSERT_STORY = (
    f"INSERT INTO stories ({', '.join(COLUMNS)})\n"
    f"VALUES ({', '.join(_PLACEHOLDERS.get(col, '%s') for col in COLUMNS)})\n"
    "ON CONFLICT (story_id) DO UPDATE SET\n"
    + ",\n".join(f"    {col} = EXCLUDED.{col}" for col in COLUMNS if col != "story_id")
)

_SELECT_COLUMNS = ", ".join(
    "embedding::text AS embedding" if col == "embedding" else col for col in COLUMNS
)
_TABLE_EXISTS = "SELECT to_regclass('public.stories') IS NOT NULL AS present"


class PostgresStoryStore(IStoryStore):
    """Supabase/Postgres persistence for merged stories."""

    def __init__(self, database_url: str) -> None:
        if not database_url:
            raise ConfigurationError(
                "DATABASE_URL is required for the postgres story store",
                provider_name="postgres_story_store",
            )
        self._database_url = database_url

    async def initialize(self) -> None:
        """Verify the ``stories`` table exists."""
        async with await psycopg.AsyncConnection.connect(self._database_url) as conn:
            async with conn.cursor() as cur:
                await cur.execute(_TABLE_EXISTS)
                row = await cur.fetchone()
        if not row or not row[0]:
            raise ConfigurationError(
                "Table 'stories' not found in the target database",
                provider_name=self.get_provider_name(),
            )
        logger.info("story_store_initialized", backend="postgres")

    def get_provider_name(self) -> str:
        return "postgres_story_store"

    async def upsert_stories(self, stories: list[StoryRecord]) -> int:
        if not stories:
            return 0
        rows = [self._to_params(story) for story in stories]
        try:
            async with await psycopg.AsyncConnection.connect(self._database_url) as conn:
                async with conn.cursor() as cur:
                    await cur.executemany(_UPSERT_STORY, rows)
                await conn.commit()
        except psycopg.Error as exc:
            raise PersistenceBatchError(
                message=f"Postgres upsert failed: {exc}",
                provider_name=self.get_provider_name(),
                story_ids=[s.story_id for s in stories],
            ) from exc
        return len(rows)

    async def get_story(self, story_id: str) -> StoryRecord | None:
        async with await psycopg.AsyncConnection.connect(
            self._database_url, row_factory=dict_row
        ) as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    f"SELECT {_SELECT_COLUMNS} FROM stories WHERE story_id = %s", (story_id,)
                )
                row = await cur.fetchone()
        return self._row_to_story(row) if row else None

    async def list_stories(self, *, limit: int | None = None, offset: int = 0) -> list[StoryRecord]:
        query = f"SELECT {_SELECT_COLUMNS} FROM stories ORDER BY story_id"
        params: list[Any] = []
        if limit is not None:
            query += " LIMIT %s"
            params.append(limit)
        if offset:
            query += " OFFSET %s"
            params.append(offset)

        async with await psycopg.AsyncConnection.connect(
            self._database_url, row_factory=dict_row
        ) as conn:
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                rows = await cur.fetchall()
        return [self._row_to_story(r) for r in rows]

    async def update_fields(self, story_id: str, fields: dict[str, Any]) -> bool:
        if not fields:
            return False
        columns = columns_for_update(fields)
        assignments = ", ".join(
            f"{col} = {_PLACEHOLDERS.get(col, '%s')}" for col in columns
        )
        params = [self._encode(col, value) for col, value in columns.items()]
        params.append(story_id)
        async with await psycopg.AsyncConnection.connect(self._database_url) as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    f"UPDATE stories SET {assignments} WHERE story_id = %s", params
                )
                updated = cur.rowcount > 0
            await conn.commit()
        return updated

    async def count(self) -> int:
        async with await psycopg.AsyncConnection.connect(self._database_url) as conn:
            async with conn.cursor() as cur:
                await cur.execute("SELECT COUNT(*) FROM stories")
                row = await cur.fetchone()
        return int(row[0]) if row else 0

    # ── Internal helpers ───────────────────────────────────────────────

    @classmethod
    def _to_params(cls, story: StoryRecord) -> tuple[Any, ...]:
        values = record_to_values(story)
        return tuple(cls._encode(col, values[col]) for col in COLUMNS)

    @staticmethod
    def _encode(column: str, value: Any) -> Any:
        if column == "tags":
            return list(value or [])
        if column == "embedding":
            return json.dumps(value) if value is not None else None
        return value

    @staticmethod
    def _row_to_story(row: dict[str, Any]) -> StoryRecord:
        row = dict(row)
        row["tags"] = list(row.get("tags") or [])
        embedding = row.get("embedding")
        row["embedding"] = json.loads(embedding) if embedding else None
        row["is_published"] = bool(row.get("is_published"))
        return values_to_record(row)
