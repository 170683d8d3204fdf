"""Date tables and rendering for the bilingual story calendar.

Stories are dated by Hebrew calendar day and month only (no year).  A date
is held on the record as ``(day, month_name, month_index)`` and rendered
twice from that single pair:

    date_en = "14 Adar"
    date_he = "י״ד אדר"

Because both strings come from the same pair they cannot disagree about
the day of the month.  When either half of the pair is missing, both
strings stay ``None``.

The gematria table covers days 1-30 and writes 15 and 16 as ``ט״ו`` and
``ט״ז`` rather than the letter pairs that would spell a divine name.
"""

from __future__ import annotations

import re
from typing import NamedTuple

import structlog

from src.models.story import StoryRecord

logger = structlog.get_logger(logger_name=__name__)

GERESH = "׳"
GERSHAYIM = "״"

GEMATRIA_DAYS: dict[int, str] = {
    1: "א׳", 2: "ב׳", 3: "ג׳", 4: "ד׳", 5: "ה׳",
    6: "ו׳", 7: "ז׳", 8: "ח׳", 9: "ט׳", 10: "י׳",
    11: "י״א", 12: "י״ב", 13: "י״ג", 14: "י״ד", 15: "ט״ו",
    16: "ט״ז", 17: "י״ז", 18: "י״ח", 19: "י״ט", 20: "כ׳",
    21: "כ״א", 22: "כ״ב", 23: "כ״ג", 24: "כ״ד", 25: "כ״ה",
    26: "כ״ו", 27: "כ״ז", 28: "כ״ח", 29: "כ״ט", 30: "ל׳",
}

# Geresh/gershayim and their ASCII look-alikes.
QUOTE_CHARS = "'\"" + GERESH + GERSHAYIM + "’”"
_QUOTE_STRIP = str.maketrans("", "", QUOTE_CHARS)

_GEMATRIA_LOOKUP: dict[str, int] = {
    letters.translate(_QUOTE_STRIP): day for day, letters in GEMATRIA_DAYS.items()
}

# Canonical month name -> (month index, Hebrew spelling).
MONTHS: dict[str, tuple[int, str]] = {
    "Nisan": (1, "ניסן"),
    "Iyar": (2, "אייר"),
    "Sivan": (3, "סיון"),
    "Tamuz": (4, "תמוז"),
    "Av": (5, "אב"),
    "Elul": (6, "אלול"),
    "Tishrei": (7, "תשרי"),
    "Cheshvan": (8, "חשון"),
    "Kislev": (9, "כסלו"),
    "Tevet": (10, "טבת"),
    "Shevat": (11, "שבט"),
    "Adar": (12, "אדר"),
    "Adar I": (12, "אדר א"),
    "Adar II": (13, "אדר ב"),
}

# Spellings seen in the source documents, lower-cased -> canonical name.
MONTH_ALIASES: dict[str, str] = {
    "nisan": "Nisan", "nissan": "Nisan", "ניסן": "Nisan",
    "iyar": "Iyar", "iyyar": "Iyar", "אייר": "Iyar", "איר": "Iyar",
    "sivan": "Sivan", "סיון": "Sivan", "סיוון": "Sivan",
    "tamuz": "Tamuz", "tammuz": "Tamuz", "תמוז": "Tamuz",
    "av": "Av", "menachem av": "Av", "אב": "Av", "מנחם אב": "Av",
    "elul": "Elul", "אלול": "Elul",
    "tishrei": "Tishrei", "tishri": "Tishrei", "תשרי": "Tishrei",
    "cheshvan": "Cheshvan", "heshvan": "Cheshvan", "marcheshvan": "Cheshvan",
    "mar cheshvan": "Cheshvan", "חשון": "Cheshvan", "חשוון": "Cheshvan",
    "מרחשון": "Cheshvan", "מרחשוון": "Cheshvan",
    "kislev": "Kislev", "כסלו": "Kislev", "כסליו": "Kislev",
    "tevet": "Tevet", "teves": "Tevet", "טבת": "Tevet",
    "shevat": "Shevat", "shvat": "Shevat", "sh'vat": "Shevat", "שבט": "Shevat",
    "adar": "Adar", "אדר": "Adar",
    "adar i": "Adar I", "adar 1": "Adar I", "adar aleph": "Adar I",
    "אדר א": "Adar I", "אדר א׳": "Adar I",
    "adar ii": "Adar II", "adar 2": "Adar II", "adar beis": "Adar II",
    "adar bet": "Adar II", "אדר ב": "Adar II", "אדר ב׳": "Adar II",
}

# Longest alias first so "adar ii" wins over "adar i" over "adar".
_MONTH_PATTERN = re.compile(
    r"(?<!\w)("
    + "|".join(re.escape(a) for a in sorted(MONTH_ALIASES, key=len, reverse=True))
    + r")(?!\w)"
)

# Hebrew month spellings used to recognize "day + month" prefixes in
# Hebrew story text.  Longest first for the same reason as above.
HEBREW_MONTH_ALTERNATION = "|".join(
    sorted(
        {alias for alias in MONTH_ALIASES if re.match(r"[א-ת]", alias)
         and not alias.startswith("אדר ")},
        key=len,
        reverse=True,
    )
)

_FIRST_INT = re.compile(r"\d+")
_NUMERIC_HEBREW_DATE = re.compile(r"^\s*(\d{1,2})\s+(\S.*?)\s*$")


class ParsedDate(NamedTuple):
    day: int | None
    month_name: str | None
    month_index: int | None


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def gematria(day: int) -> str:
    """Hebrew numeral for *day*; days outside 1-30 render as digits."""
    return GEMATRIA_DAYS.get(day, str(day))


def day_from_gematria(text: str) -> int | None:
    """Back-lookup of a gematria day, with or without geresh/gershayim."""
    return _GEMATRIA_LOOKUP.get(text.strip().translate(_QUOTE_STRIP))


def hebrew_month_name(month: str) -> str:
    """Hebrew spelling of a canonical month; unknown names pass through."""
    entry = MONTHS.get(month)
    return entry[1] if entry else month


def lookup_month(text: str) -> tuple[str, int] | None:
    """Find a known month name in *text*; returns ``(canonical, index)``."""
    match = _MONTH_PATTERN.search(text.lower())
    if not match:
        return None
    canonical = MONTH_ALIASES[match.group(1)]
    return canonical, MONTHS[canonical][0]


def parse_date_value(value: str) -> ParsedDate:
    """Parse the value of a date tag such as ``"14 Adar"`` or ``"3rd of Nissan"``.

    The first positive integer is the day; days past 30 are kept and
    rendered as digits later.  The rest of the value, lower-cased, is
    searched for a known month name.  Failing that, the word after "of",
    else the second (then third) token is taken as an unindexed month name.
    """
    day: int | None = None
    remainder = value
    int_match = _FIRST_INT.search(value)
    if int_match:
        number = int(int_match.group(0))
        if number >= 1:
            day = number
        remainder = value[: int_match.start()] + " " + value[int_match.end():]

    known = lookup_month(remainder)
    if known:
        return ParsedDate(day, known[0], known[1])

    return ParsedDate(day, _positional_month(value), None)


def _positional_month(value: str) -> str | None:
    tokens = value.split()
    lowered = [t.lower() for t in tokens]
    if "of" in lowered:
        idx = lowered.index("of")
        if idx + 1 < len(tokens):
            return _clean_month_word(tokens[idx + 1])
    for token in tokens[1:3]:
        word = _clean_month_word(token)
        if word and not word.isdigit():
            return word
    return None


def _clean_month_word(token: str) -> str | None:
    word = token.strip(".,;:()[]")
    return word.title() if word else None


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def format_english_date(day: int, month: str) -> str:
    return f"{day} {month}"


def format_hebrew_date(day: int, month: str) -> str:
    return f"{gematria(day)} {hebrew_month_name(month)}"


def regematria_hebrew_date(value: str) -> str | None:
    """Rewrite a Hebrew date written with digits (``"17 אדר"``) in gematria.

    Returns ``None`` when *value* is not a digit-prefixed date or the day
    is outside 1-30.
    """
    match = _NUMERIC_HEBREW_DATE.match(value)
    if not match:
        return None
    day = int(match.group(1))
    if day not in GEMATRIA_DAYS:
        return None
    return f"{gematria(day)} {match.group(2)}"


class DateNormalizer:
    """Fills ``date_en`` / ``date_he`` on a record from its day and month."""

    def apply(self, record: StoryRecord) -> tuple[StoryRecord, bool]:
        """Return the dated record and whether a date could be rendered."""
        if record.day is None or not record.month_name:
            if record.date_en is not None or record.date_he is not None:
                record = record.model_copy(update={"date_en": None, "date_he": None})
            return record, False

        return (
            record.model_copy(
                update={
                    "date_en": format_english_date(record.day, record.month_name),
                    "date_he": format_hebrew_date(record.day, record.month_name),
                }
            ),
            True,
        )
