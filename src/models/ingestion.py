"""Run-level reporting models for ingestion and store audits.

Nothing in parsing or merging raises past a block or document boundary.
Instead every dropped block, orphaned ID, failed embedding and failed
batch is tallied under an :class:`IssueCategory` and surfaced to the
operator through an :class:`IngestionReport` at the end of the run.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class IssueCategory(str, Enum):
    """Failure and no-op categories counted during an ingestion run."""

    MISSING_IDENTIFIER = "missing_identifier"
    MERGE_ORPHAN = "merge_orphan"
    DUPLICATE_ID = "duplicate_id"
    ENGLISH_UNMATCHED = "english_unmatched"
    REPAIR_SKIPPED = "repair_skipped"
    DATE_UNPARSED = "date_unparsed"
    EMBEDDING_FAILURE = "embedding_failure"
    PERSISTENCE_BATCH_ERROR = "persistence_batch_error"
    EXTRACTION_ERROR = "extraction_error"


class IngestionReport(BaseModel):
    """Outcome of ingesting one English/Hebrew document pair."""

    model_config = ConfigDict(frozen=True)

    source_en: str
    source_he: str
    blocks_en: int = 0
    blocks_he: int = 0
    records_built: int = 0
    records_repaired: int = 0
    embeddings_generated: int = 0
    records_persisted: int = 0
    persistence_batches: int = 0
    issue_counts: dict[IssueCategory, int] = Field(default_factory=dict)
    issue_ids: dict[IssueCategory, list[str]] = Field(default_factory=dict)
    duration_seconds: float = 0.0
    extraction_error: str | None = None
    dry_run: bool = False

    def count(self, category: IssueCategory) -> int:
        """Return how many times *category* occurred in this run."""
        return self.issue_counts.get(category, 0)

    def ids(self, category: IssueCategory) -> list[str]:
        """Return the story IDs recorded under *category*."""
        return list(self.issue_ids.get(category, []))

    @property
    def aborted(self) -> bool:
        """True when the pair was abandoned because a document was unreadable."""
        return self.extraction_error is not None

    @property
    def all_batches_failed(self) -> bool:
        failed = self.count(IssueCategory.PERSISTENCE_BATCH_ERROR)
        return self.persistence_batches > 0 and failed == self.persistence_batches


class AuditFinding(BaseModel):
    """One stored field that the audit flagged."""

    model_config = ConfigDict(frozen=True)

    story_id: str
    field: str
    issue: str = Field(description="'needs_repair' or 'numeric_date'.")
    current: str
    proposed: str


class AuditReport(BaseModel):
    """Result of scanning the store for repairable Hebrew fields."""

    model_config = ConfigDict(frozen=True)

    scanned: int = 0
    findings: list[AuditFinding] = Field(default_factory=list)
    stories_updated: int = 0
    dry_run: bool = True
