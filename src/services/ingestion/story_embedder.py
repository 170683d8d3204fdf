"""Attach embedding vectors to merged story records.

Each record is embedded from its Hebrew body, or its English body when
there is no Hebrew one.  The text is whitespace-collapsed and cut to a
fixed character budget.  Records go to the provider in batches with
bounded concurrency and a fixed pause between batches, which keeps the
run under the provider's rate limit.

An embedding failure is never fatal: the record keeps ``embedding=None``
and its ID is listed in the outcome.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, field

import structlog

from src.config.settings import Settings
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.models.story import StoryRecord
from src.utils.concurrency import batched, throttled_gather
from src.utils.errors import EmbeddingFailure

logger = structlog.get_logger(logger_name=__name__)

_WHITESPACE_RUN = re.compile(r"\s+")


@dataclass
class EmbeddingOutcome:
    records: list[StoryRecord]
    generated: int = 0
    failed_ids: list[str] = field(default_factory=list)
    skipped_ids: list[str] = field(default_factory=list)


class StoryEmbedder:
    """Batches records through an :class:`IEmbeddingProvider`."""

    def __init__(
        self,
        provider: IEmbeddingProvider,
        char_budget: int = 8000,
        min_chars: int = 5,
        batch_size: int = 10,
        batch_delay_seconds: float = 1.0,
        concurrency: int = 5,
    ) -> None:
        self._provider = provider
        self._char_budget = char_budget
        self._min_chars = min_chars
        self._batch_size = batch_size
        self._batch_delay = batch_delay_seconds
        self._concurrency = concurrency

    @classmethod
    def from_settings(cls, provider: IEmbeddingProvider, settings: Settings) -> StoryEmbedder:
        return cls(
            provider,
            char_budget=settings.embedding_char_budget,
            min_chars=settings.embedding_min_chars,
            batch_size=settings.embedding_batch_size,
            batch_delay_seconds=settings.embedding_batch_delay_seconds,
            concurrency=settings.embedding_concurrency,
        )

    def prepare_text(self, record: StoryRecord) -> str | None:
        """Text to embed for *record*, or None when it is too short to be useful."""
        text = _WHITESPACE_RUN.sub(" ", record.embedding_source_text()).strip()
        if len(text) < self._min_chars:
            return None
        return text[: self._char_budget]

    async def embed_records(self, records: list[StoryRecord]) -> EmbeddingOutcome:
        """Return copies of *records* with ``embedding`` filled where possible."""
        outcome = EmbeddingOutcome(records=list(records))
        if not records:
            return outcome

        batches = batched(list(range(len(records))), self._batch_size)
        for batch_no, indices in enumerate(batches):
            if batch_no > 0 and self._batch_delay > 0:
                await asyncio.sleep(self._batch_delay)

            jobs: list[tuple[int, str]] = []
            for idx in indices:
                text = self.prepare_text(records[idx])
                if text is None:
                    outcome.skipped_ids.append(records[idx].story_id)
                    logger.debug("embedding_skipped_short_text", story_id=records[idx].story_id)
                else:
                    jobs.append((idx, text))

            results = await throttled_gather(
                [self._embed_one(text) for _, text in jobs],
                limit=self._concurrency,
            )
            for (idx, _), result in zip(jobs, results):
                record = records[idx]
                if isinstance(result, BaseException):
                    outcome.failed_ids.append(record.story_id)
                    logger.warning(
                        "embedding_failed", story_id=record.story_id, error=str(result)
                    )
                    continue
                outcome.records[idx] = record.model_copy(update={"embedding": result})
                outcome.generated += 1

            logger.info(
                "embedding_batch_complete",
                batch=batch_no + 1,
                batches=len(batches),
                generated=outcome.generated,
            )

        return outcome

    async def _embed_one(self, text: str) -> list[float]:
        vector = await self._provider.embed_single(text)
        expected = self._provider.get_dimension()
        if len(vector) != expected:
            raise EmbeddingFailure(
                message=f"Vector has {len(vector)} dimensions, expected {expected}",
                provider_name=self._provider.get_provider_name(),
            )
        return vector
