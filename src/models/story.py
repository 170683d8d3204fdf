"""Story domain models for the bilingual ingestion pipeline.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Models (bottom of the dependency graph; no imports from upper layers).
#
# The pipeline moves a story through four shapes:
#
#   RawDocument  → bytes + declared format, input only
#   RawBlock     → one delimiter-bounded slice of the extracted text
#   ParsedFields → what one language's block says about one story
#   StoryRecord  → the merged bilingual row that gets persisted
#
# Key design decisions:
#   - **Immutable state**: All models use ``frozen=True``.  Each stage
#     (merge, date normalization, repair, embedding) produces a new
#     StoryRecord via ``model_copy(update={...})``.
#   - **One ParsedFields per block**: parsers build a fresh value for every
#     block, so nothing parsed from one story can leak into the next.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from enum import Enum
from pathlib import PurePath

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Language(str, Enum):
    """Source language of a document or block."""

    EN = "en"
    HE = "he"


class DocumentFormat(str, Enum):
    """Declared format of a raw input document."""

    DOCX = "docx"
    PDF = "pdf"
    TEXT = "text"

    @classmethod
    def from_filename(cls, name: str) -> DocumentFormat:
        """Infer the format from a file suffix; unknown suffixes are text."""
        suffix = PurePath(name).suffix.lower()
        if suffix == ".docx":
            return cls.DOCX
        if suffix == ".pdf":
            return cls.PDF
        return cls.TEXT


class RawDocument(BaseModel):
    """Raw input bytes with the format the caller claims they are in."""

    model_config = ConfigDict(frozen=True)

    content: bytes
    declared_format: DocumentFormat
    name: str = Field(default="<memory>", description="File name, for error messages and reports.")


class RawBlock(BaseModel):
    """A contiguous slice of extracted text belonging to one story.

    ``delimiter`` is the exact text that preceded the block in the source
    (empty for the first block).  Concatenating ``delimiter + text`` over
    all blocks of a document reproduces the extracted text exactly.
    """

    model_config = ConfigDict(frozen=True)

    language: Language
    text: str
    delimiter: str = ""
    start: int = Field(default=0, ge=0, description="Offset of the delimiter in the source text.")
    external_id: str | None = Field(
        default=None,
        description="ID captured by the Hebrew splitter; English blocks leave it None.",
    )
    preamble: bool = Field(
        default=False,
        description="Text before the first delimiter of a document that has delimiters.",
    )


class ParsedFields(BaseModel):
    """Fields extracted from one block of one language."""

    model_config = ConfigDict(frozen=True)

    language: Language
    external_id: str
    day: int | None = Field(default=None, ge=1)
    month_name: str | None = None
    month_index: int | None = None
    title_local: str | None = None
    koteret: str | None = Field(
        default=None,
        description="Hebrew title tag found inside an English block.",
    )
    rabbi_name_local: str | None = None
    body_local: str = ""
    tags_local: list[str] = Field(default_factory=list)


class StoryRecord(BaseModel):
    """The merged bilingual story, keyed by ``story_id``.

    ``date_he`` and ``date_en`` are always rendered from the same
    ``(day, month_name)`` pair, or both left None.
    """

    model_config = ConfigDict(frozen=True)

    story_id: str = Field(min_length=1)
    rabbi_he: str | None = None
    rabbi_en: str | None = None
    date_he: str | None = None
    date_en: str | None = None
    title_he: str | None = None
    title_en: str | None = None
    body_he: str | None = None
    body_en: str | None = None
    day: int | None = Field(default=None, ge=1)
    month_name: str | None = None
    month_index: int | None = None
    tags: list[str] = Field(default_factory=list)
    embedding: list[float] | None = None
    is_published: bool = True

    @field_validator("tags")
    @classmethod
    def _tags_unique(cls, value: list[str]) -> list[str]:
        if len(set(value)) != len(value):
            raise ValueError("tags must not contain duplicates")
        return value

    def embedding_source_text(self) -> str:
        """Hebrew body when present, otherwise the English body."""
        return self.body_he or self.body_en or ""
