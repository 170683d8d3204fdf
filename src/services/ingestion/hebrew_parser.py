"""Field extraction for one Hebrew story block.

The Hebrew exports frequently arrive as a single run with no usable line
breaks, so the block is processed as one string and marker-delimited spans
are the only anchors:

1. the ID tag and every new-story sentinel are removed;
2. spans are classified; the first title span becomes the Hebrew title and
   the first remaining plausible span becomes the rabbi name;
3. generic spans other than the rabbi name and dates become tags;
4. all spans are removed, then dangling markers with their labels;
5. a leading gematria date (``ט״ו אדר``) glued onto the story is dropped;
6. whitespace is collapsed into the body.

Step 5 is a heuristic.  It only fires on a valid day (1-30) followed by a
month name, and without a geresh/gershayim it also needs a separator
before and after the month.
"""

from __future__ import annotations

import re
from typing import NamedTuple

import structlog

from src.models.story import Language, ParsedFields, RawBlock
from src.services.ingestion.date_normalizer import (
    HEBREW_MONTH_ALTERNATION,
    MONTH_ALIASES,
    MONTHS,
    QUOTE_CHARS,
    day_from_gematria,
    parse_date_value,
)
from src.services.ingestion.markers import MarkerFormat, TagKind, canonical_id
from src.utils.errors import MissingIdentifierError

logger = structlog.get_logger(logger_name=__name__)

_Q = re.escape(QUOTE_CHARS)
_DATE_PREFIX = re.compile(
    rf"^(?P<day>[א-ת][{_Q}]?(?:[א-ת][{_Q}]?)?)"
    rf"(?P<sep>\s*)"
    rf"(?P<month>{HEBREW_MONTH_ALTERNATION})"
    rf"(?P<leap>\s+(?P<leap_letter>[אב])(?:[{_Q}]|(?=\s|$)))?"
)
_SEPARATOR_CHARS = ",.:;-\u2013\u2014"
_WHITESPACE_RUN = re.compile(r"\s+")

MAX_RABBI_CHARS = 200


class HebrewDate(NamedTuple):
    day: int
    month_name: str
    end: int
    quoted: bool


def match_hebrew_date(text: str) -> HebrewDate | None:
    """Match a gematria day plus Hebrew month at the start of *text*."""
    match = _DATE_PREFIX.match(text)
    if not match:
        return None

    day = day_from_gematria(match.group("day"))
    if day is None:
        return None

    quoted = any(ch in QUOTE_CHARS for ch in match.group("day"))
    if not quoted:
        if not match.group("sep"):
            return None
        rest = text[match.end():]
        if rest and not (rest[0].isspace() or rest[0] in _SEPARATOR_CHARS):
            return None

    month = MONTH_ALIASES[match.group("month")]
    leap = match.group("leap_letter")
    if month == "Adar" and leap:
        month = "Adar I" if leap == "א" else "Adar II"
    return HebrewDate(day, month, match.end(), quoted)


def strip_gematria_prefix(text: str) -> str:
    """Drop a leading ``day month`` prefix; text without one is returned as-is."""
    found = match_hebrew_date(text)
    if found is None:
        return text
    return text[found.end:].lstrip(" \t\n" + _SEPARATOR_CHARS)


class HebrewFieldParser:
    """Builds :class:`ParsedFields` from a Hebrew :class:`RawBlock`."""

    def __init__(self, marker_format: MarkerFormat | None = None) -> None:
        self._format = marker_format or MarkerFormat()

    def parse(self, block: RawBlock) -> ParsedFields:
        """Parse one block.

        Raises
        ------
        MissingIdentifierError
            If the block carries no ID tag.
        """
        story_id = block.external_id
        if story_id is None:
            found = self._format.hebrew_id_pattern.search(block.text)
            if found:
                story_id = canonical_id(found.group(1))
        if not story_id:
            raise MissingIdentifierError(
                message=f"Hebrew block at offset {block.start} has no story ID",
                provider_name="hebrew_parser",
            )

        text = self._format.hebrew_id_pattern.sub(" ", block.text)
        text = self._format.strip_sentinels(text)

        title: str | None = None
        rabbi: str | None = None
        day: int | None = None
        month_name: str | None = None
        month_index: int | None = None
        generic: list[str] = []

        for span in self._format.iter_spans(text):
            kind, value = self._format.classify(span.content)
            if not value:
                continue

            if kind.is_title:
                title = title or value
                continue

            if kind == TagKind.DATE:
                if month_name is None:
                    day, month_name, month_index = self._parse_date(value)
                continue

            if kind not in (TagKind.GENERIC, TagKind.RABBI_NAME):
                continue

            span_date = match_hebrew_date(value)
            if span_date is not None:
                if month_name is None:
                    day, month_name = span_date.day, span_date.month_name
                    month_index = MONTHS[month_name][0]
                continue

            if rabbi is None and len(value) <= MAX_RABBI_CHARS:
                rabbi = value
            if kind == TagKind.GENERIC:
                generic.append(value)

        tags = [t for t in generic if t != rabbi]

        body = self._format.remove_spans(text)
        body = self._format.remove_dangling_markers(body)
        body = _WHITESPACE_RUN.sub(" ", body).strip()
        body = strip_gematria_prefix(body)
        body = _WHITESPACE_RUN.sub(" ", body).strip()

        return ParsedFields(
            language=Language.HE,
            external_id=story_id,
            day=day,
            month_name=month_name,
            month_index=month_index,
            title_local=title,
            rabbi_name_local=rabbi,
            body_local=body,
            tags_local=tags,
        )

    @staticmethod
    def _parse_date(value: str) -> tuple[int | None, str | None, int | None]:
        hebrew = match_hebrew_date(value)
        if hebrew is not None:
            return hebrew.day, hebrew.month_name, MONTHS[hebrew.month_name][0]
        parsed = parse_date_value(value)
        return parsed.day, parsed.month_name, parsed.month_index
