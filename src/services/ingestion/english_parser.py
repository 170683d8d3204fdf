"""Field extraction for one English story block.

English exports keep their line structure, so the block is scanned line
by line:

* the first line carrying an ID token (``Ad0033``) or the phrase
  "Story ID" supplies the external ID and is not part of the body;
* marker lines are classified by :class:`MarkerFormat` (date, English
  title, Hebrew title, rabbi, sentinel, structural, generic tag);
* all other non-empty lines, except bare page numbers, form the body.

A new :class:`ParsedFields` is built for every block; the parser itself
holds no per-block state.
"""

from __future__ import annotations

import re

import structlog

from src.models.story import Language, ParsedFields, RawBlock
from src.services.ingestion.date_normalizer import parse_date_value
from src.services.ingestion.markers import (
    ID_TOKEN,
    INVERTED_ID_TOKEN,
    MarkerFormat,
    TagKind,
    canonical_id,
    normalize_id,
)
from src.utils.errors import MissingIdentifierError

logger = structlog.get_logger(logger_name=__name__)

_ID_IN_LINE = re.compile(rf"(?<![A-Za-z0-9])({ID_TOKEN})(?![A-Za-z0-9])")
_STORY_ID_PHRASE = re.compile(r"story\s*id", re.IGNORECASE)
_WHOLE_ID = re.compile(rf"^(?:{ID_TOKEN}|{INVERTED_ID_TOKEN})$")
_PAGE_NUMBER = re.compile(r"^\d{1,3}$")
_BODY_RABBI = re.compile(r"^Rabbi\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)", re.MULTILINE)

# Unmarked lines longer than this are never treated as structural notes.
_MAX_NOTE_CHARS = 80
_RABBI_SCAN_CHARS = 500


def find_english_id(line: str) -> str | None:
    """Return the canonical story ID carried by *line*, if any.

    On "Story ID" lines the value after the phrase is tried first, which
    also accepts the right-to-left inverted form (``0033Ad``).  Elsewhere
    only a standalone ``[A-Za-z]{1,2}\\d+`` token counts, so ordinals like
    "14th" are not mistaken for IDs.
    """
    phrase = _STORY_ID_PHRASE.search(line)
    if phrase:
        tail = normalize_id(line[phrase.end():])
        if _WHOLE_ID.match(tail):
            return canonical_id(tail)
    match = _ID_IN_LINE.search(line)
    if match:
        return normalize_id(match.group(1))
    return None


class EnglishFieldParser:
    """Builds :class:`ParsedFields` from an English :class:`RawBlock`."""

    def __init__(self, marker_format: MarkerFormat | None = None) -> None:
        self._format = marker_format or MarkerFormat()

    def parse(self, block: RawBlock) -> ParsedFields:
        """Parse one block.

        Raises
        ------
        MissingIdentifierError
            If no line of the block carries a story ID.
        """
        story_id: str | None = None
        day: int | None = None
        month_name: str | None = None
        month_index: int | None = None
        title: str | None = None
        koteret: str | None = None
        rabbi: str | None = None
        tags: list[str] = []
        body_lines: list[str] = []

        text = block.text.replace("\r\n", "\n").replace("\r", "\n")
        for raw_line in text.split("\n"):
            line = raw_line.strip()
            if not line:
                continue

            if story_id is None:
                found = find_english_id(line)
                if found:
                    story_id = found
                    continue

            if self._format.is_marker_line(line):
                span = self._format.classify(line)
                if span.kind == TagKind.DATE:
                    day, month_name, month_index = parse_date_value(span.value)
                elif span.kind == TagKind.ENGLISH_TITLE:
                    title = span.value or title
                elif span.kind == TagKind.HEBREW_TITLE:
                    koteret = span.value or koteret
                elif span.kind == TagKind.RABBI_NAME:
                    rabbi = span.value or rabbi
                elif span.kind == TagKind.GENERIC and span.value:
                    tags.append(span.value)
                continue

            if _PAGE_NUMBER.match(line):
                continue
            if len(line) <= _MAX_NOTE_CHARS and self._format.classify(line).kind in (
                TagKind.SENTINEL,
                TagKind.STRUCTURAL,
            ):
                continue
            body_lines.append(line)

        if story_id is None:
            raise MissingIdentifierError(
                message=f"English block at offset {block.start} has no story ID",
                provider_name="english_parser",
            )

        body = "\n".join(body_lines)
        if rabbi is None:
            rabbi = self._rabbi_from_body(body)

        return ParsedFields(
            language=Language.EN,
            external_id=story_id,
            day=day,
            month_name=month_name,
            month_index=month_index,
            title_local=title,
            koteret=koteret,
            rabbi_name_local=rabbi,
            body_local=body,
            tags_local=tags,
        )

    @staticmethod
    def _rabbi_from_body(body: str) -> str | None:
        """Fallback: a line opening with ``Rabbi Firstname Lastname`` near the top."""
        match = _BODY_RABBI.search(body[:_RABBI_SCAN_CHARS])
        if match:
            return f"Rabbi {match.group(1)}"
        return None
