"""Story persistence backends implementing IStoryStore.

    SQLiteStoryStore   -- aiosqlite, local file (default backend)
    PostgresStoryStore -- psycopg 3 against the Supabase ``stories`` table
"""

from src.providers.story_store.postgres_story_store import PostgresStoryStore
from src.providers.story_store.sqlite_story_store import SQLiteStoryStore

__all__ = ["PostgresStoryStore", "SQLiteStoryStore"]
