"""Orchestrator for the bilingual story ingestion pipeline.

Pipeline stages: **extract -> segment -> parse -> merge -> date -> repair
-> embed -> store**.

:class:`IngestionService` coordinates the stage components without any of
them knowing about each other:

    1. TextExtractor        -- document bytes to plain text (worker thread)
    2. DocumentSegmenter    -- text to per-story RawBlocks, per language
    3. English/Hebrew parsers -- one fresh ParsedFields per block
    4. RecordMerger         -- keyed join on the story ID
    5. DateNormalizer       -- paired English/Hebrew date strings
    6. hebrew_text.repair_record -- detached nikkud, invisible characters
    7. StoryEmbedder        -- vectors, batched and rate limited
    8. IStoryStore          -- upsert by story_id in fixed-size batches

Stages 2-6 are synchronous and pure (:meth:`IngestionService.build_records`).
Failures inside them are counted per block or record, never raised.  Only
an unreadable document (:class:`ExtractionError`) ends the processing of
a pair, and even then the run over a directory moves on to the next pair.

The embedder and store are injected, so the pipeline runs without network
credentials in tests and in ``--dry-run`` mode.
"""

from __future__ import annotations

import time
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from src.interfaces.story_store import IStoryStore
from src.models.ingestion import IngestionReport, IssueCategory
from src.models.story import Language, ParsedFields, RawBlock, RawDocument, StoryRecord
from src.services.ingestion.date_normalizer import DateNormalizer
from src.services.ingestion.english_parser import EnglishFieldParser
from src.services.ingestion.file_pairing import find_document_pairs
from src.services.ingestion.hebrew_parser import HebrewFieldParser
from src.services.ingestion.markers import MarkerFormat
from src.services.ingestion.record_merger import RecordMerger
from src.services.ingestion.segmenter import DocumentSegmenter
from src.services.ingestion.story_embedder import StoryEmbedder
from src.services.ingestion.text_extractor import TextExtractor
from src.utils.concurrency import batched
from src.utils.errors import ExtractionError, MissingIdentifierError, PersistenceBatchError
from src.utils.hebrew_text import repair_record

logger = structlog.get_logger(logger_name=__name__)


@dataclass
class _RunTally:
    """Mutable per-run issue counter, frozen into the IngestionReport at the end."""

    counts: Counter = field(default_factory=Counter)
    ids: dict[IssueCategory, list[str]] = field(default_factory=dict)

    def add(self, category: IssueCategory, *story_ids: str, times: int | None = None) -> None:
        n = len(story_ids) if times is None else times
        if n:
            self.counts[category] += n
        if story_ids:
            self.ids.setdefault(category, []).extend(story_ids)


@dataclass
class BuildResult:
    """Output of the synchronous stages for one document pair."""

    records: list[StoryRecord]
    blocks_en: int = 0
    blocks_he: int = 0
    records_repaired: int = 0
    tally: _RunTally = field(default_factory=_RunTally)


class IngestionService:
    """Runs document pairs through the whole pipeline.

    Parameters
    ----------
    store:
        Persistence backend.  Required only when persisting.
    embedder:
        Embedding stage.  When ``None`` records are stored without vectors.
    marker_format:
        Marker micro-format tables, usually from ``config/config.yaml``.
    min_hebrew_body_chars:
        Hebrew bodies this short or shorter are treated as noise.
    persist_batch_size:
        Records per upsert batch.
    """

    def __init__(
        self,
        store: IStoryStore | None = None,
        embedder: StoryEmbedder | None = None,
        marker_format: MarkerFormat | None = None,
        extractor: TextExtractor | None = None,
        min_hebrew_body_chars: int = 5,
        persist_batch_size: int = 10,
    ) -> None:
        marker_format = marker_format or MarkerFormat()
        self._store = store
        self._embedder = embedder
        self._extractor = extractor or TextExtractor()
        self._segmenter = DocumentSegmenter(marker_format)
        self._english_parser = EnglishFieldParser(marker_format)
        self._hebrew_parser = HebrewFieldParser(marker_format)
        self._merger = RecordMerger(min_hebrew_body_chars=min_hebrew_body_chars)
        self._date_normalizer = DateNormalizer()
        self._persist_batch_size = persist_batch_size

    # ------------------------------------------------------------------
    # Synchronous stages
    # ------------------------------------------------------------------

    def build_records(self, text_en: str, text_he: str) -> BuildResult:
        """Segment, parse, merge, date and repair one pair of texts."""
        tally = _RunTally()

        blocks_en = self._segmenter.segment(text_en, Language.EN)
        blocks_he = self._segmenter.segment(text_he, Language.HE)
        parsed_en = self._parse_blocks(blocks_en, tally)
        parsed_he = self._parse_blocks(blocks_he, tally)

        merged = self._merger.merge(parsed_en, parsed_he)
        tally.add(IssueCategory.DUPLICATE_ID, *merged.stats.duplicate_ids)
        tally.add(IssueCategory.MERGE_ORPHAN, *merged.stats.hebrew_orphans)
        tally.add(IssueCategory.ENGLISH_UNMATCHED, *merged.stats.english_unmatched)

        records: list[StoryRecord] = []
        repaired_count = 0
        for record in merged.records:
            record, dated = self._date_normalizer.apply(record)
            if not dated:
                tally.add(IssueCategory.DATE_UNPARSED, record.story_id)

            record, repaired = repair_record(record)
            if repaired:
                repaired_count += 1
                logger.debug("record_repaired", story_id=record.story_id, fields=repaired)
            else:
                tally.add(IssueCategory.REPAIR_SKIPPED, record.story_id)
            records.append(record)

        return BuildResult(
            records=records,
            blocks_en=len(blocks_en),
            blocks_he=len(blocks_he),
            records_repaired=repaired_count,
            tally=tally,
        )

    def _parse_blocks(self, blocks: list[RawBlock], tally: _RunTally) -> list[ParsedFields]:
        parsed: list[ParsedFields] = []
        for block in blocks:
            if not block.text.strip():
                continue
            parser = self._hebrew_parser if block.language == Language.HE else self._english_parser
            try:
                parsed.append(parser.parse(block))
            except MissingIdentifierError as exc:
                if block.preamble:
                    logger.debug("preamble_skipped", language=block.language.value)
                    continue
                tally.add(
                    IssueCategory.MISSING_IDENTIFIER,
                    f"{block.language.value}@{block.start}",
                )
                logger.warning(
                    "block_dropped_missing_id",
                    language=block.language.value,
                    offset=block.start,
                    error=str(exc),
                )
        return parsed

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def ingest_pair(
        self,
        document_en: RawDocument,
        document_he: RawDocument,
        *,
        embed: bool = True,
        persist: bool = True,
    ) -> IngestionReport:
        """Run one English/Hebrew document pair through every stage."""
        started = time.monotonic()
        try:
            text_en = await self._extractor.extract_async(document_en)
            text_he = await self._extractor.extract_async(document_he)
        except ExtractionError as exc:
            logger.error(
                "pair_aborted_extraction_error",
                document=exc.document_name,
                error=str(exc),
            )
            return self._aborted_report(document_en.name, document_he.name, exc, started, persist)

        built = self.build_records(text_en, text_he)
        records = built.records
        tally = built.tally

        embeddings_generated = 0
        if embed and self._embedder is not None and records:
            outcome = await self._embedder.embed_records(records)
            records = outcome.records
            embeddings_generated = outcome.generated
            tally.add(IssueCategory.EMBEDDING_FAILURE, *outcome.failed_ids, *outcome.skipped_ids)
        elif embed and self._embedder is None:
            logger.info("embedding_disabled", reason="no embedding provider configured")

        persisted, batches = 0, 0
        if persist:
            persisted, batches = await self._persist(records, tally)

        report = IngestionReport(
            source_en=document_en.name,
            source_he=document_he.name,
            blocks_en=built.blocks_en,
            blocks_he=built.blocks_he,
            records_built=len(records),
            records_repaired=built.records_repaired,
            embeddings_generated=embeddings_generated,
            records_persisted=persisted,
            persistence_batches=batches,
            issue_counts=dict(tally.counts),
            issue_ids={k: list(v) for k, v in tally.ids.items()},
            duration_seconds=round(time.monotonic() - started, 3),
            dry_run=not persist,
        )
        logger.info(
            "ingestion_complete",
            source_en=report.source_en,
            source_he=report.source_he,
            records=report.records_built,
            persisted=report.records_persisted,
            embeddings=report.embeddings_generated,
            issues={k.value: v for k, v in report.issue_counts.items()},
            duration_s=report.duration_seconds,
        )
        return report

    async def ingest_files(
        self,
        path_en: str | Path,
        path_he: str | Path,
        *,
        embed: bool = True,
        persist: bool = True,
    ) -> IngestionReport:
        """Read two files from disk and ingest them as a pair."""
        started = time.monotonic()
        try:
            document_en = self._extractor.load_file(path_en)
            document_he = self._extractor.load_file(path_he)
        except ExtractionError as exc:
            logger.error("pair_aborted_unreadable_file", error=str(exc))
            return self._aborted_report(
                Path(path_en).name, Path(path_he).name, exc, started, persist
            )
        return await self.ingest_pair(document_en, document_he, embed=embed, persist=persist)

    async def ingest_directory(
        self,
        directory: str | Path,
        *,
        embed: bool = True,
        persist: bool = True,
    ) -> list[IngestionReport]:
        """Ingest every English/Hebrew pair found in *directory*, one after another."""
        pairs = find_document_pairs(directory)
        logger.info("directory_pairs_found", directory=str(directory), pairs=len(pairs))

        reports: list[IngestionReport] = []
        for pair in pairs:
            logger.info("pair_started", name=pair.name)
            reports.append(
                await self.ingest_files(pair.english, pair.hebrew, embed=embed, persist=persist)
            )
        return reports

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _persist(self, records: list[StoryRecord], tally: _RunTally) -> tuple[int, int]:
        """Upsert *records* batch by batch; failed batches are counted, not raised."""
        if self._store is None:
            raise RuntimeError("IngestionService was built without a story store")
        if not records:
            return 0, 0

        persisted = 0
        batches = batched(records, self._persist_batch_size)
        for batch_no, batch in enumerate(batches, start=1):
            try:
                persisted += await self._store.upsert_stories(batch)
            except PersistenceBatchError as exc:
                tally.add(IssueCategory.PERSISTENCE_BATCH_ERROR, *exc.story_ids, times=1)
                logger.error(
                    "persistence_batch_failed",
                    batch=batch_no,
                    story_ids=exc.story_ids,
                    error=str(exc),
                )
        return persisted, len(batches)

    @staticmethod
    def _aborted_report(
        source_en: str,
        source_he: str,
        exc: ExtractionError,
        started: float,
        persist: bool,
    ) -> IngestionReport:
        return IngestionReport(
            source_en=source_en,
            source_he=source_he,
            issue_counts={IssueCategory.EXTRACTION_ERROR: 1},
            issue_ids={IssueCategory.EXTRACTION_ERROR: [exc.document_name or ""]},
            duration_seconds=round(time.monotonic() - started, 3),
            extraction_error=str(exc),
            dry_run=not persist,
        )
