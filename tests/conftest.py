"""Shared pytest fixtures for the Sipuraya ingestion test suite."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import pytest
import structlog

from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.story_store import IStoryStore
from src.models.story import StoryRecord
from src.services.ingestion.markers import MarkerFormat
from src.utils.errors import PersistenceBatchError


@pytest.fixture(autouse=True)
def _restore_logging():
    """Undo configure_logging() calls made by CLI tests."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)


# ---------------------------------------------------------------------------
# Sample documents
# ---------------------------------------------------------------------------

ENGLISH_TEXT = """Sipuraya export, Adar volume
###NEW STORY
Story ID: Ad0100
###Rabbi: Rabbi Akiva
###Date: 14 Adar
###English Title: The Shepherd
Some body text
###NEW STORY
Story ID: Ad0101
###Date: 15 Adar
###KOTERET: הנר הדולק
###Chessed###
A candle kept burning through the night.
12
###NEW STORY
A story that lost its identifier on the way.
"""

HEBREW_TEXT = (
    "#סיפור_מספר: Ad0100###רבי עקיבא###טז אדר מעשה ברבי עקיבא שהיה רועה צאן."
    " #סיפור_מספר: Ad0101###רבי מאיר######חסד###נר שדלק כל הלילה עד הבוקר."
    " #סיפור_מספר: Ad0999###רבי טרפון###סיפור שאין לו אח באנגלית."
)


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def marker_format() -> MarkerFormat:
    return MarkerFormat()


@pytest.fixture
def english_text() -> str:
    return ENGLISH_TEXT


@pytest.fixture
def hebrew_text() -> str:
    return HEBREW_TEXT


@pytest.fixture
def sample_record() -> StoryRecord:
    return StoryRecord(
        story_id="Ad0100",
        rabbi_en="Rabbi Akiva",
        rabbi_he="רבי עקיבא",
        title_en="The Shepherd",
        body_en="Some body text",
        body_he="מעשה ברבי עקיבא שהיה רועה צאן.",
        day=14,
        month_name="Adar",
        month_index=12,
        tags=["Chessed"],
    )


# ---------------------------------------------------------------------------
# Fakes for the injected collaborators
# ---------------------------------------------------------------------------


class FakeEmbeddingProvider(IEmbeddingProvider):
    """Deterministic provider: the vector is the text length repeated."""

    def __init__(self, dimension: int = 4, fail_on: set[str] | None = None) -> None:
        self._dimension = dimension
        self._fail_on = fail_on or set()
        self.calls: list[str] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        return [await self.embed_single(t) for t in texts]

    async def embed_single(self, text: str) -> list[float]:
        self.calls.append(text)
        if any(marker in text for marker in self._fail_on):
            raise RuntimeError("embedding service unavailable")
        return [float(len(text))] * self._dimension

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "fake_embedding"

    def is_available(self) -> bool:
        return True


class InMemoryStoryStore(IStoryStore):
    """Dict-backed store; IDs in ``fail_ids`` make their whole batch fail."""

    def __init__(self, fail_ids: set[str] | None = None) -> None:
        self.stories: dict[str, StoryRecord] = {}
        self.batches: list[list[str]] = []
        self._fail_ids = fail_ids or set()

    async def initialize(self) -> None:
        return None

    async def upsert_stories(self, stories: list[StoryRecord]) -> int:
        ids = [s.story_id for s in stories]
        self.batches.append(ids)
        if self._fail_ids & set(ids):
            raise PersistenceBatchError(
                message="simulated batch failure",
                provider_name="memory",
                story_ids=ids,
            )
        for story in stories:
            self.stories[story.story_id] = story
        return len(stories)

    async def get_story(self, story_id: str) -> StoryRecord | None:
        return self.stories.get(story_id)

    async def list_stories(self, *, limit: int | None = None, offset: int = 0) -> list[StoryRecord]:
        ordered = [self.stories[k] for k in sorted(self.stories)]
        end = None if limit is None else offset + limit
        return ordered[offset:end]

    async def update_fields(self, story_id: str, fields: dict[str, Any]) -> bool:
        story = self.stories.get(story_id)
        if story is None or not fields:
            return False
        self.stories[story_id] = story.model_copy(update=fields)
        return True

    async def count(self) -> int:
        return len(self.stories)

    def get_provider_name(self) -> str:
        return "memory_story_store"


@pytest.fixture
def fake_provider() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def memory_store() -> InMemoryStoryStore:
    return InMemoryStoryStore()


@pytest.fixture
def provider_factory() -> type[FakeEmbeddingProvider]:
    """The fake provider class, for tests that need a custom configuration."""
    return FakeEmbeddingProvider


@pytest.fixture
def store_factory() -> type[InMemoryStoryStore]:
    return InMemoryStoryStore
