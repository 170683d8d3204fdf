"""Audit of already-stored stories for repairable Hebrew text.

Rows written before the repair stage existed can still hold detached
nikkud, dotted circles or invisible bidi characters, and ``date_he``
values written with digits (``"17 אדר"``) instead of gematria.  The audit
lists every such field with the value it would write.  With ``fix=True``
it also writes those values back; the default is a dry run.
"""

from __future__ import annotations

import structlog

from src.interfaces.story_store import IStoryStore
from src.models.ingestion import AuditFinding, AuditReport
from src.models.story import StoryRecord
from src.services.ingestion.date_normalizer import regematria_hebrew_date
from src.utils.hebrew_text import REPAIRABLE_FIELDS, needs_repair, repair_hebrew_text

logger = structlog.get_logger(logger_name=__name__)


class StoryAuditService:
    """Scans an :class:`IStoryStore` page by page."""

    def __init__(self, store: IStoryStore, page_size: int = 500) -> None:
        self._store = store
        self._page_size = page_size

    async def audit(self, fix: bool = False) -> AuditReport:
        findings: list[AuditFinding] = []
        scanned = 0
        updated = 0
        offset = 0

        while True:
            page = await self._store.list_stories(limit=self._page_size, offset=offset)
            if not page:
                break
            offset += len(page)

            for record in page:
                scanned += 1
                record_findings = self.inspect(record)
                findings.extend(record_findings)
                if fix and record_findings:
                    fields = {f.field: f.proposed for f in record_findings}
                    if await self._store.update_fields(record.story_id, fields):
                        updated += 1

            if len(page) < self._page_size:
                break

        logger.info(
            "story_audit_complete",
            scanned=scanned,
            findings=len(findings),
            updated=updated,
            dry_run=not fix,
        )
        return AuditReport(scanned=scanned, findings=findings, stories_updated=updated, dry_run=not fix)

    @staticmethod
    def inspect(record: StoryRecord) -> list[AuditFinding]:
        """Findings for one stored record."""
        findings: list[AuditFinding] = []
        for name in REPAIRABLE_FIELDS:
            value = getattr(record, name)
            if value and needs_repair(value):
                findings.append(
                    AuditFinding(
                        story_id=record.story_id,
                        field=name,
                        issue="needs_repair",
                        current=value,
                        proposed=repair_hebrew_text(value),
                    )
                )

        if record.date_he:
            rewritten = regematria_hebrew_date(record.date_he)
            if rewritten is not None:
                findings.append(
                    AuditFinding(
                        story_id=record.story_id,
                        field="date_he",
                        issue="numeric_date",
                        current=record.date_he,
                        proposed=rewritten,
                    )
                )
        return findings
