"""Unit tests for PostgresStoryStore with psycopg mocked out."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import psycopg
import pytest

from src.models.story import StoryRecord
from src.providers.story_store.postgres_story_store import PostgresStoryStore
from src.utils.errors import ConfigurationError, PersistenceBatchError

_URL = "postgresql://user:pw@localhost:5432/sipuraya"


def _connection(fetchone=None, fetchall=None) -> tuple[MagicMock, MagicMock]:  # noqa: ANN001
    cursor = MagicMock()
    cursor.execute = AsyncMock()
    cursor.executemany = AsyncMock()
    cursor.fetchone = AsyncMock(return_value=fetchone)
    cursor.fetchall = AsyncMock(return_value=fetchall or [])
    cursor.rowcount = 1
    cursor.__aenter__ = AsyncMock(return_value=cursor)
    cursor.__aexit__ = AsyncMock(return_value=False)

    conn = MagicMock()
    conn.cursor.return_value = cursor
    conn.commit = AsyncMock()
    conn.__aenter__ = AsyncMock(return_value=conn)
    conn.__aexit__ = AsyncMock(return_value=False)
    return conn, cursor


def _patch_connect(conn: MagicMock):  # noqa: ANN202
    return patch(
        "src.providers.story_store.postgres_story_store.psycopg.AsyncConnection.connect",
        new=AsyncMock(return_value=conn),
    )


class TestPostgresStoryStore:
    def test_requires_database_url(self) -> None:
        with pytest.raises(ConfigurationError):
            PostgresStoryStore("")

    @pytest.mark.asyncio
    async def test_upsert_uses_on_conflict_and_array_casts(self) -> None:
        conn, cursor = _connection()
        story = StoryRecord(story_id="Ad1", tags=["a", "b"], embedding=[0.5, 1.0], day=3)

        with _patch_connect(conn):
            written = await PostgresStoryStore(_URL).upsert_stories([story])

        assert written == 1
        sql, rows = cursor.executemany.await_args.args
        assert "ON CONFLICT (story_id) DO UPDATE" in sql
        assert "%s::text[]" in sql and "%s::vector" in sql
        (row,) = rows
        assert ["a", "b"] in row
        assert "[0.5, 1.0]" in row
        conn.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_driver_error_becomes_batch_error(self) -> None:
        conn, cursor = _connection()
        cursor.executemany.side_effect = psycopg.OperationalError("connection lost")

        with _patch_connect(conn):
            with pytest.raises(PersistenceBatchError) as exc_info:
                await PostgresStoryStore(_URL).upsert_stories([StoryRecord(story_id="Ad9")])

        assert exc_info.value.story_ids == ["Ad9"]
        assert exc_info.value.provider_name == "postgres_story_store"

    @pytest.mark.asyncio
    async def test_initialize_requires_stories_table(self) -> None:
        conn, _ = _connection(fetchone=(False,))
        with _patch_connect(conn):
            with pytest.raises(ConfigurationError):
                await PostgresStoryStore(_URL).initialize()

    @pytest.mark.asyncio
    async def test_get_story_decodes_row(self) -> None:
        row = {
            "story_id": "Ad1",
            "tags": ["חסד"],
            "embedding": "[0.1,0.2]",
            "is_published": True,
            "hebrew_day": 15,
            "hebrew_month": "Shevat",
            "hebrew_month_index": 11,
            "date_he": "ט״ו שבט",
        }
        conn, _ = _connection(fetchone=row)

        with _patch_connect(conn):
            story = await PostgresStoryStore(_URL).get_story("Ad1")

        assert story is not None
        assert story.embedding == [0.1, 0.2]
        assert (story.day, story.month_name, story.month_index) == (15, "Shevat", 11)
        assert story.tags == ["חסד"]

    @pytest.mark.asyncio
    async def test_count(self) -> None:
        conn, _ = _connection(fetchone=(7,))
        with _patch_connect(conn):
            assert await PostgresStoryStore(_URL).count() == 7

    @pytest.mark.asyncio
    async def test_update_fields_maps_columns(self) -> None:
        conn, cursor = _connection()
        with _patch_connect(conn):
            updated = await PostgresStoryStore(_URL).update_fields("Ad1", {"day": 4})

        assert updated is True
        sql, params = cursor.execute.await_args.args
        assert "hebrew_day = %s" in sql
        assert params == [4, "Ad1"]
