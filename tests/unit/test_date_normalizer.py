"""Unit tests for gematria, month lookup and date rendering."""

from __future__ import annotations

import pytest

from src.models.story import StoryRecord
from src.services.ingestion.date_normalizer import (
    GEMATRIA_DAYS,
    MONTHS,
    DateNormalizer,
    day_from_gematria,
    format_english_date,
    format_hebrew_date,
    gematria,
    hebrew_month_name,
    lookup_month,
    parse_date_value,
    regematria_hebrew_date,
)


class TestGematria:
    def test_fifteen_and_sixteen_use_tet(self) -> None:
        assert gematria(15) == "ט״ו"
        assert gematria(16) == "ט״ז"

    def test_table_covers_one_to_thirty(self) -> None:
        assert sorted(GEMATRIA_DAYS) == list(range(1, 31))
        assert len(set(GEMATRIA_DAYS.values())) == 30

    @pytest.mark.parametrize("month", sorted(MONTHS))
    def test_back_lookup_for_every_day_and_month(self, month: str) -> None:
        for day in range(1, 31):
            rendered = format_hebrew_date(day, month)
            letters, _, month_he = rendered.partition(" ")
            assert day_from_gematria(letters) == day
            assert month_he == hebrew_month_name(month)

    def test_back_lookup_without_quotes(self) -> None:
        assert day_from_gematria("טו") == 15
        assert day_from_gematria("כ\"א") == 21
        assert day_from_gematria("יה") is None

    def test_out_of_range_renders_digits(self) -> None:
        assert gematria(31) == "31"


class TestParseDateValue:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("14 Adar", (14, "Adar", 12)),
            ("3rd of Nissan", (3, "Nisan", 1)),
            ("Adar II 7", (7, "Adar II", 13)),
            ("7 Adar I", (7, "Adar I", 12)),
            ("22 Menachem Av", (22, "Av", 5)),
            ("10 Teves", (10, "Tevet", 10)),
            ("14 Shmini", (14, "Shmini", None)),
            ("the 5th of Yom", (5, "Yom", None)),
            ("45 Adar", (45, "Adar", 12)),
            ("0 Adar", (None, "Adar", 12)),
            ("", (None, None, None)),
        ],
    )
    def test_values(self, value: str, expected: tuple) -> None:
        assert tuple(parse_date_value(value)) == expected

    def test_lookup_month_hebrew_spelling(self) -> None:
        assert lookup_month("מרחשוון") == ("Cheshvan", 8)
        assert lookup_month("nothing here") is None


class TestRendering:
    def test_english_and_hebrew_strings(self) -> None:
        assert format_english_date(14, "Adar") == "14 Adar"
        assert format_hebrew_date(14, "Adar") == "י״ד אדר"
        assert format_hebrew_date(1, "Adar II") == "א׳ אדר ב"

    def test_unknown_month_passes_through(self) -> None:
        assert format_hebrew_date(2, "Shmini") == "ב׳ Shmini"

    def test_regematria(self) -> None:
        assert regematria_hebrew_date("17 אדר") == "י״ז אדר"
        assert regematria_hebrew_date(" 5 ניסן ") == "ה׳ ניסן"
        assert regematria_hebrew_date("י״ז אדר") is None
        assert regematria_hebrew_date("45 אדר") is None


class TestDateNormalizer:
    def test_fills_both_strings_from_one_pair(self) -> None:
        record = StoryRecord(story_id="Ad1", day=15, month_name="Shevat", month_index=11)
        dated, ok = DateNormalizer().apply(record)
        assert ok is True
        assert dated.date_en == "15 Shevat"
        assert dated.date_he == "ט״ו שבט"

    def test_missing_day_leaves_both_none(self) -> None:
        record = StoryRecord(story_id="Ad1", month_name="Adar", month_index=12)
        dated, ok = DateNormalizer().apply(record)
        assert ok is False
        assert dated.date_en is None
        assert dated.date_he is None

    def test_missing_month_clears_stale_strings(self) -> None:
        record = StoryRecord(story_id="Ad1", day=3, date_en="3 Adar", date_he="ג׳ אדר")
        dated, ok = DateNormalizer().apply(record)
        assert ok is False
        assert (dated.date_en, dated.date_he) == (None, None)
