"""Find English/Hebrew document pairs in a data directory.

Source exports come as numbered series, one file per language:

    Adar 02 English.docx       <->  Adar 02 edit.docx
    Peninei 104 English.docx   <->  peninei 104.docx

An English file is ``<Series> <N> English...`` and its partner is the
same series and number without the language word, optionally followed by
``edit``.  When a directory holds no series pairs at all, the single file
marked ``en``/``english`` is paired with the single file marked
``he``/``hebrew``.

Office lock files (``~$...``) and dotfiles are ignored.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

import structlog

logger = structlog.get_logger(logger_name=__name__)

SUPPORTED_SUFFIXES = frozenset({".docx", ".pdf", ".txt"})

_ENGLISH_SERIES = re.compile(r"^(?P<series>[A-Za-z]+)\s+(?P<num>\d+)\s+english\b", re.IGNORECASE)
_HEBREW_SERIES = re.compile(r"^(?P<series>[A-Za-z]+)\s+(?P<num>\d+)(?:\s+edit)?$", re.IGNORECASE)
_ENGLISH_MARK = re.compile(r"(?:^|[\s_.\-])(?:en|english)(?:$|[\s_.\-])", re.IGNORECASE)
_HEBREW_MARK = re.compile(r"(?:^|[\s_.\-])(?:he|hebrew)(?:$|[\s_.\-])", re.IGNORECASE)


@dataclass(frozen=True)
class DocumentPair:
    english: Path
    hebrew: Path
    name: str


def _candidate_files(directory: Path) -> list[Path]:
    return sorted(
        p
        for p in directory.iterdir()
        if p.is_file()
        and not p.name.startswith((".", "~$"))
        and p.suffix.lower() in SUPPORTED_SUFFIXES
    )


def _series_key(match: re.Match[str]) -> tuple[str, int]:
    return match.group("series").lower(), int(match.group("num"))


def find_document_pairs(directory: str | Path) -> list[DocumentPair]:
    """Return the English/Hebrew pairs found in *directory*, sorted by name."""
    root = Path(directory)
    if not root.is_dir():
        logger.warning("data_dir_missing", path=str(root))
        return []

    files = _candidate_files(root)
    english: dict[tuple[str, int], Path] = {}
    hebrew: dict[tuple[str, int], Path] = {}
    for path in files:
        en_match = _ENGLISH_SERIES.match(path.stem)
        if en_match:
            english.setdefault(_series_key(en_match), path)
            continue
        he_match = _HEBREW_SERIES.match(path.stem)
        if he_match:
            hebrew.setdefault(_series_key(he_match), path)

    pairs: list[DocumentPair] = []
    for key, en_path in english.items():
        he_path = hebrew.get(key)
        if he_path is None:
            logger.warning("unpaired_english_document", file=en_path.name)
            continue
        series, num = key
        pairs.append(DocumentPair(english=en_path, hebrew=he_path, name=f"{series.title()} {num}"))

    if pairs or english:
        return pairs

    return _fallback_pair(files)


def _fallback_pair(files: list[Path]) -> list[DocumentPair]:
    en_path = next((p for p in files if _ENGLISH_MARK.search(p.stem)), None)
    he_path = next(
        (p for p in files if _HEBREW_MARK.search(p.stem) and p != en_path), None
    )
    if en_path is None or he_path is None:
        logger.info("no_document_pairs_found", files=len(files))
        return []
    return [DocumentPair(english=en_path, hebrew=he_path, name=en_path.stem)]
