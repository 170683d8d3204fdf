"""Mapping between :class:`StoryRecord` fields and ``stories`` columns.

Both store backends share this mapping so a record round-trips the same
way through SQLite and Postgres.  Most fields map to a column of the same
name; the date parts are stored as ``hebrew_day``, ``hebrew_month`` and
``hebrew_month_index`` for the reader's calendar view.
"""

from __future__ import annotations

from typing import Any

from src.models.story import StoryRecord

# StoryRecord field -> column, in column order.
FIELD_TO_COLUMN: dict[str, str] = {
    "story_id": "story_id",
    "rabbi_he": "rabbi_he",
    "rabbi_en": "rabbi_en",
    "date_he": "date_he",
    "date_en": "date_en",
    "title_he": "title_he",
    "title_en": "title_en",
    "body_he": "body_he",
    "body_en": "body_en",
    "tags": "tags",
    "embedding": "embedding",
    "is_published": "is_published",
    "day": "hebrew_day",
    "month_name": "hebrew_month",
    "month_index": "hebrew_month_index",
}

COLUMNS: list[str] = list(FIELD_TO_COLUMN.values())
COLUMN_TO_FIELD: dict[str, str] = {col: name for name, col in FIELD_TO_COLUMN.items()}


def record_to_values(record: StoryRecord) -> dict[str, Any]:
    """Column -> value for *record*; tags and embedding are left as lists."""
    data = record.model_dump()
    return {column: data[name] for name, column in FIELD_TO_COLUMN.items()}


def values_to_record(row: dict[str, Any]) -> StoryRecord:
    """Build a record from a column -> value mapping.

    Rows written by older loaders may repeat a tag or carry a day that is
    not a positive integer.  Tags are deduplicated in first-seen order and
    such a day is read as missing.
    """
    data = {COLUMN_TO_FIELD[col]: value for col, value in row.items() if col in COLUMN_TO_FIELD}
    data["tags"] = list(dict.fromkeys(t for t in data.get("tags") or [] if t))
    day = data.get("day")
    if not isinstance(day, int) or isinstance(day, bool) or day < 1:
        data["day"] = None
    return StoryRecord(**data)


def columns_for_update(fields: dict[str, Any]) -> dict[str, Any]:
    """Translate record field names to columns, rejecting unknown names."""
    unknown = set(fields) - set(FIELD_TO_COLUMN)
    if unknown or "story_id" in fields:
        raise ValueError(f"Cannot update fields: {sorted(unknown | ({'story_id'} & set(fields)))}")
    return {FIELD_TO_COLUMN[name]: value for name, value in fields.items()}
