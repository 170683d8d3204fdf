"""Repair of encoding damage in Hebrew story text.

Some exports detach nikkud (vowel points) from their host letters, leaving
a space or no-break space between the letter and its mark, and sometimes a
dotted circle (U+25CC) where the mark used to attach.  They also carry
invisible bidi controls and zero-width characters that break search.

:func:`repair_hebrew_text` fixes all of this and is idempotent.
:func:`needs_repair` reports whether a repair would change anything,
so an audit can list damaged rows before writing to the store.
"""

from __future__ import annotations

import re
import unicodedata

from src.models.story import StoryRecord

# Bidi embeddings/overrides/isolates, zero-width chars, soft hyphen, BOM.
_INVISIBLE = re.compile(
    "[\u200B-\u200F\u202A-\u202E\u2060\u2066-\u2069\u00AD\uFEFF]"
)
_DOTTED_CIRCLE = "\u25CC"
# Hebrew points and accents.  Maqaf (U+05BE), paseq (U+05C0), sof pasuq
# (U+05C3) and nun hafukha (U+05C6) are punctuation, not combining marks.
_HEBREW_MARKS = "\u0591-\u05BD\u05BF\u05C1\u05C2\u05C4\u05C5\u05C7"
_DETACHED_MARK = re.compile(r"[\s\u00A0]+([" + _HEBREW_MARKS + "])")

REPAIRABLE_FIELDS: tuple[str, ...] = ("rabbi_he", "title_he", "body_he")


def repair_hebrew_text(text: str) -> str:
    """Return *text* with detached marks re-attached and invisibles removed."""
    text = _INVISIBLE.sub("", text)
    text = text.replace(_DOTTED_CIRCLE, "")
    text = _DETACHED_MARK.sub(r"\1", text)
    return unicodedata.normalize("NFC", text)


def needs_repair(text: str) -> bool:
    """True exactly when :func:`repair_hebrew_text` would change *text*."""
    return repair_hebrew_text(text) != text


def has_detached_nikkud(text: str) -> bool:
    return _DETACHED_MARK.search(text) is not None


def has_dotted_circle(text: str) -> bool:
    return _DOTTED_CIRCLE in text


def has_invisible_formatting(text: str) -> bool:
    return _INVISIBLE.search(text) is not None


def repair_record(record: StoryRecord) -> tuple[StoryRecord, list[str]]:
    """Repair the Hebrew fields of *record*.

    Returns the (possibly unchanged) record and the names of the fields
    that were changed.  An empty list means no repair was needed.
    """
    updates: dict[str, str] = {}
    for name in REPAIRABLE_FIELDS:
        value = getattr(record, name)
        if value and needs_repair(value):
            updates[name] = repair_hebrew_text(value)
    if not updates:
        return record, []
    return record.model_copy(update=updates), list(updates)
