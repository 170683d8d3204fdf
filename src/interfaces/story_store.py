"""Abstract base class for story persistence backends.

Defines the contract between the ingestion pipeline and the ``stories``
table consumed by the reader UI and the search index.  Rows are keyed by
``story_id``; writing a story that already exists overwrites it, so a
re-ingestion never duplicates rows.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from src.models.story import StoryRecord


# Concrete implementations:
#   SQLiteStoryStore   -- local file via aiosqlite (default)
#   PostgresStoryStore -- Supabase/Postgres via psycopg
# Located in: src/providers/story_store/
class IStoryStore(ABC):
    """Contract for story persistence."""

    @abstractmethod
    async def initialize(self) -> None:
        """Prepare the backend (create or verify the ``stories`` table)."""

    @abstractmethod
    async def upsert_stories(self, stories: list[StoryRecord]) -> int:
        """Insert or overwrite *stories* as one batch.

        Parameters
        ----------
        stories:
            Records to write, keyed by ``story_id``.

        Returns
        -------
        int
            Number of rows written.

        Raises
        ------
        src.utils.errors.PersistenceBatchError
            If the batch could not be written.  Carries the batch's IDs.
        """

    @abstractmethod
    async def get_story(self, story_id: str) -> StoryRecord | None:
        """Return the stored record for *story_id*, or ``None``."""

    @abstractmethod
    async def list_stories(self, *, limit: int | None = None, offset: int = 0) -> list[StoryRecord]:
        """Return stored records ordered by ``story_id``."""

    @abstractmethod
    async def update_fields(self, story_id: str, fields: dict[str, Any]) -> bool:
        """Overwrite selected fields of one stored record.

        Parameters
        ----------
        story_id:
            Key of the record to update.
        fields:
            :class:`StoryRecord` field names mapped to new values.

        Returns
        -------
        bool
            ``True`` if a row was updated.
        """

    @abstractmethod
    async def count(self) -> int:
        """Return the number of stored stories."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier, e.g. ``"sqlite_story_store"``."""
