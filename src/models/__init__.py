"""Sipuraya domain models -- re-exports all public model classes.

The models are organized in two submodules:
    - story.py      -- documents, blocks, parsed fields and the merged StoryRecord
    - ingestion.py  -- run reports, issue categories and audit findings
"""

from __future__ import annotations

from src.models.ingestion import (
    AuditFinding,
    AuditReport,
    IngestionReport,
    IssueCategory,
)
from src.models.story import (
    DocumentFormat,
    Language,
    ParsedFields,
    RawBlock,
    RawDocument,
    StoryRecord,
)

__all__ = [
    "AuditFinding",
    "AuditReport",
    "DocumentFormat",
    "IngestionReport",
    "IssueCategory",
    "Language",
    "ParsedFields",
    "RawBlock",
    "RawDocument",
    "StoryRecord",
]
