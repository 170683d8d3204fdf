"""Unit tests for Hebrew text repair."""

from __future__ import annotations

import pytest

from src.models.story import StoryRecord
from src.utils.hebrew_text import (
    has_detached_nikkud,
    has_dotted_circle,
    has_invisible_formatting,
    needs_repair,
    repair_hebrew_text,
    repair_record,
)

QAMATS = "\u05B8"
DAGESH = "\u05BC"
RLM = "\u200F"
ZWSP = "\u200B"
PDF_MARK = "\u202C"
NBSP = "\u00A0"
DOTTED_CIRCLE = "\u25CC"


class TestRepairHebrewText:
    def test_nbsp_before_vowel_point_removed(self) -> None:
        assert repair_hebrew_text("א" + NBSP + QAMATS) == "א" + QAMATS

    def test_plain_space_before_vowel_point_removed(self) -> None:
        assert repair_hebrew_text("ש " + QAMATS + "לום") == "ש" + QAMATS + "לום"

    def test_invisible_characters_removed(self) -> None:
        text = RLM + "שלום" + ZWSP + " עולם" + PDF_MARK
        assert repair_hebrew_text(text) == "שלום עולם"

    def test_dotted_circle_removed(self) -> None:
        assert repair_hebrew_text("ב" + DOTTED_CIRCLE + DAGESH) == "ב" + DAGESH

    def test_spaces_between_words_kept(self) -> None:
        assert repair_hebrew_text("שלום עולם") == "שלום עולם"

    @pytest.mark.parametrize(
        "text",
        [
            "א" + NBSP + QAMATS,
            RLM + "ש " + QAMATS + " " + DAGESH + "לום",
            "plain English",
            "",
            "ב" + DOTTED_CIRCLE + DAGESH,
        ],
    )
    def test_idempotent(self, text: str) -> None:
        once = repair_hebrew_text(text)
        assert repair_hebrew_text(once) == once
        assert not needs_repair(once)

    def test_detectors(self) -> None:
        assert has_detached_nikkud("א" + NBSP + QAMATS)
        assert has_dotted_circle(DOTTED_CIRCLE)
        assert has_invisible_formatting("a" + RLM)
        assert not has_detached_nikkud("א" + QAMATS)


class TestRepairRecord:
    def test_repairs_hebrew_fields_only(self) -> None:
        record = StoryRecord(
            story_id="Ad1",
            body_he="ש " + QAMATS + "לום",
            rabbi_he=RLM + "רבי",
            body_en="text " + RLM,
        )
        repaired, fields = repair_record(record)
        assert sorted(fields) == ["body_he", "rabbi_he"]
        assert repaired.body_he == "ש" + QAMATS + "לום"
        assert repaired.rabbi_he == "רבי"
        assert repaired.body_en == "text " + RLM

    def test_clean_record_signals_no_repair(self, sample_record: StoryRecord) -> None:
        repaired, fields = repair_record(sample_record)
        assert fields == []
        assert repaired is sample_record
