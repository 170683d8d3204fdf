"""The marker micro-format used by the source story documents.

The exports wrap tag names and some values in a three-symbol marker::

    ###NEW STORY
    ###Date: 14 Adar
    ###English Title: The Lost Coin
    ###KOTERET: המטבע האבוד
    ###Rabbi: Rabbi Akiva
    ###Chessed###

English documents separate stories with the ``###NEW STORY`` sentinel.
Hebrew documents put an ID tag (``#סיפור_מספר: Ad0033``) in front of each
story instead, and often arrive as one long run with no line breaks.

Every marker-wrapped span goes through :meth:`MarkerFormat.classify`,
which checks a prioritized list of prefix predicates and returns a
:class:`ClassifiedSpan` tagged with a :class:`TagKind`.  Parsers branch on
the kind; nothing downstream re-inspects raw prefixes.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from enum import Enum
from typing import Any, NamedTuple

from src.utils.errors import ConfigurationError


class TagKind(str, Enum):
    """What a marker-wrapped span means."""

    DATE = "date"
    ENGLISH_TITLE = "english_title"
    HEBREW_TITLE = "hebrew_title"
    RABBI_NAME = "rabbi_name"
    SENTINEL = "sentinel"
    STRUCTURAL = "structural"
    GENERIC = "generic"

    @property
    def is_title(self) -> bool:
        return self in (TagKind.ENGLISH_TITLE, TagKind.HEBREW_TITLE)


class ClassifiedSpan(NamedTuple):
    """A span's kind plus its value with marker and prefix removed."""

    kind: TagKind
    value: str


class MarkerSpan(NamedTuple):
    """One marker-delimited span located in a block of text."""

    start: int
    end: int
    content: str


# Checked in this order; the first matching prefix wins.
DEFAULT_PREFIXES: list[tuple[TagKind, str]] = [
    (TagKind.DATE, r"(?:date|תאריך)\s*:"),
    (TagKind.ENGLISH_TITLE, r"english\s+title\s*:?"),
    (TagKind.ENGLISH_TITLE, r"title\s*:"),
    (TagKind.HEBREW_TITLE, r"(?:koteret|hebrew\s+title)\s*:?"),
    (TagKind.RABBI_NAME, r"(?:rabbi|הרב)\s*:"),
]

DEFAULT_STRUCTURAL: list[str] = [
    r"english\s+translation",
    r"hebrew\s+translation",
    r"start\s+of\s+ocr",
    r"end\s+of\s+ocr",
    r"screenshot\s+for\s+page",
    r"biography",
]

DEFAULT_MARKER = "###"
DEFAULT_SENTINEL_LABEL = r"new\s*story"
DEFAULT_HEBREW_ID_TAG = "#סיפור_מספר:"
ID_TOKEN = r"[A-Za-z]{1,2}\d+"
# Right-to-left documents sometimes render "Ad0033" as "0033Ad".
INVERTED_ID_TOKEN = r"\d+[A-Za-z]{1,2}(?![A-Za-z])"
_INVERTED_ID = re.compile(r"^(\d+)([A-Za-z]{1,2})$")

# A line-leading marker without a closing marker counts as a span only
# up to this length; longer runs are story text, not a tag.
MAX_OPEN_SPAN_CHARS = 200

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")


def normalize_id(raw: str) -> str:
    """Canonical story ID: *raw* with every non-ASCII-alphanumeric removed.

    ``normalize_id("Ad-0033.")`` is ``"Ad0033"``.  Idempotent.
    """
    return _NON_ALNUM.sub("", raw)


def canonical_id(token: str) -> str:
    """Normalize an ID token, re-ordering the inverted ``0033Ad`` form."""
    cleaned = normalize_id(token)
    inverted = _INVERTED_ID.match(cleaned)
    if inverted:
        return inverted.group(2) + inverted.group(1)
    return cleaned


_PREFIX_KEYS: dict[str, TagKind] = {
    "date": TagKind.DATE,
    "english_title": TagKind.ENGLISH_TITLE,
    "hebrew_title": TagKind.HEBREW_TITLE,
    "rabbi": TagKind.RABBI_NAME,
}


class MarkerFormat:
    """Compiled description of the marker micro-format.

    Build the default with ``MarkerFormat()`` or load overrides from the
    ``markers:`` section of ``config/config.yaml`` via :meth:`from_config`.
    """

    def __init__(
        self,
        marker: str = DEFAULT_MARKER,
        sentinel_label: str = DEFAULT_SENTINEL_LABEL,
        hebrew_id_tag: str = DEFAULT_HEBREW_ID_TAG,
        prefixes: list[tuple[TagKind, str]] | None = None,
        structural: list[str] | None = None,
    ) -> None:
        if not marker:
            raise ConfigurationError("Marker string must not be empty", provider_name="markers")
        self.marker = marker
        self.hebrew_id_tag = hebrew_id_tag

        m = re.escape(marker)
        try:
            self._prefixes: list[tuple[TagKind, re.Pattern[str]]] = [
                (kind, re.compile(rf"^{pattern}", re.IGNORECASE))
                for kind, pattern in (prefixes if prefixes is not None else DEFAULT_PREFIXES)
            ]
            self._structural: list[re.Pattern[str]] = [
                re.compile(rf"^{pattern}", re.IGNORECASE)
                for pattern in (structural if structural is not None else DEFAULT_STRUCTURAL)
            ]
            self._sentinel_value = re.compile(rf"^{sentinel_label}\s*$", re.IGNORECASE)
            self.sentinel_pattern = re.compile(rf"{m}\s*{sentinel_label}", re.IGNORECASE)
        except re.error as exc:
            raise ConfigurationError(
                f"Invalid marker pattern: {exc}", provider_name="markers"
            ) from exc

        # Sentinel with its optional closing marker, for stripping.
        self.sentinel_strip_pattern = re.compile(
            rf"{m}\s*{sentinel_label}\s*(?:{m})?", re.IGNORECASE
        )
        self.hebrew_id_pattern = re.compile(
            rf"{re.escape(hebrew_id_tag)}\s*({ID_TOKEN}|{INVERTED_ID_TOKEN})", re.IGNORECASE
        )
        not_marker = rf"(?:(?!{m})[^\n])"
        self._span_pattern = re.compile(
            rf"{m}(?P<closed>{not_marker}+?){m}"
            rf"|^[ \t]*{m}(?P<open>{not_marker}{{1,{MAX_OPEN_SPAN_CHARS}}})[ \t]*$",
            re.MULTILINE,
        )
        label_alternatives = "|".join(
            [p.pattern[1:] for _, p in self._prefixes]
            + [p.pattern[1:] for p in self._structural]
        )
        self._dangling_pattern = re.compile(
            rf"{m}\s*(?:(?:{label_alternatives})\s*)?", re.IGNORECASE
        )

    @classmethod
    def from_config(cls, config: Mapping[str, Any] | None) -> MarkerFormat:
        """Build a format from the ``markers:`` mapping of the YAML config."""
        if not config:
            return cls()

        prefixes: list[tuple[TagKind, str]] | None = None
        raw_prefixes = config.get("prefixes")
        if raw_prefixes is not None:
            if not isinstance(raw_prefixes, Mapping):
                raise ConfigurationError(
                    "markers.prefixes must be a mapping", provider_name="markers"
                )
            prefixes = []
            # Precedence is fixed by _PREFIX_KEYS order, not YAML order.
            for key, kind in _PREFIX_KEYS.items():
                for pattern in raw_prefixes.get(key) or []:
                    prefixes.append((kind, str(pattern)))
            unknown = set(raw_prefixes) - set(_PREFIX_KEYS)
            if unknown:
                raise ConfigurationError(
                    f"Unknown marker prefix groups: {sorted(unknown)}",
                    provider_name="markers",
                )

        structural = config.get("structural")
        return cls(
            marker=str(config.get("marker", DEFAULT_MARKER)),
            sentinel_label=str(config.get("sentinel_label", DEFAULT_SENTINEL_LABEL)),
            hebrew_id_tag=str(config.get("hebrew_id_tag", DEFAULT_HEBREW_ID_TAG)),
            prefixes=prefixes,
            structural=[str(p) for p in structural] if structural is not None else None,
        )

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def classify(self, content: str) -> ClassifiedSpan:
        """Classify a span or marker line.

        Markers are removed first, so both ``###Date: 14 Adar`` and the
        bare span content ``Date: 14 Adar`` classify the same way.
        """
        value = content.replace(self.marker, " ").strip()

        for kind, pattern in self._prefixes:
            match = pattern.match(value)
            if match:
                return ClassifiedSpan(kind, value[match.end():].strip())

        if self._sentinel_value.match(value):
            return ClassifiedSpan(TagKind.SENTINEL, value)
        for pattern in self._structural:
            if pattern.match(value):
                return ClassifiedSpan(TagKind.STRUCTURAL, value)
        return ClassifiedSpan(TagKind.GENERIC, value)

    def is_marker_line(self, line: str) -> bool:
        return self.marker in line

    # ------------------------------------------------------------------
    # Span scanning
    # ------------------------------------------------------------------

    def iter_spans(self, text: str) -> Iterator[MarkerSpan]:
        """Yield marker-delimited spans in document order.

        A span is either a closed ``###...###`` pair on one line or a
        line that starts with the marker, has no closing marker, and is
        at most ``MAX_OPEN_SPAN_CHARS`` long.  Span content may hold any
        non-marker characters, including ``"``, ``'``, ``׳`` and ``״``.
        """
        for match in self._span_pattern.finditer(text):
            content = match.group("closed")
            if content is None:
                content = match.group("open")
            yield MarkerSpan(match.start(), match.end(), content.strip())

    def remove_spans(self, text: str) -> str:
        """Drop every span located by :meth:`iter_spans`."""
        return self._span_pattern.sub(" ", text)

    def remove_dangling_markers(self, text: str) -> str:
        """Remove unclosed markers together with a recognized prefix label.

        Only the marker and the label go; the text following them is kept
        because an unclosed marker in a collapsed Hebrew document is
        usually followed by the story itself.
        """
        return self._dangling_pattern.sub(" ", text)

    def strip_sentinels(self, text: str) -> str:
        return self.sentinel_strip_pattern.sub(" ", text)
