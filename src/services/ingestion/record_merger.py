"""Keyed join of English and Hebrew parsed blocks into StoryRecords.

The English side drives the join: one entry per English ID, in the order
the IDs first appear.  Hebrew blocks then merge into the entry with the
same ID.  Hebrew blocks without an English counterpart are dropped, and
English entries without a Hebrew counterpart are kept with empty Hebrew
fields.  Every such case is listed in :class:`MergeStats` so the run
report can show it.

Merging the same inputs twice yields identical records in identical order.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from src.models.story import ParsedFields, StoryRecord

logger = structlog.get_logger(logger_name=__name__)


@dataclass
class MergeStats:
    """IDs the merger overwrote, dropped or could not pair."""

    duplicate_ids: list[str] = field(default_factory=list)
    hebrew_orphans: list[str] = field(default_factory=list)
    english_unmatched: list[str] = field(default_factory=list)


@dataclass
class MergeResult:
    records: list[StoryRecord]
    stats: MergeStats


def dedupe_tags(tags: list[str]) -> list[str]:
    """Drop repeated tags, keeping the first occurrence of each."""
    return list(dict.fromkeys(t for t in tags if t))


class RecordMerger:
    """Joins per-language :class:`ParsedFields` on ``external_id``.

    Parameters
    ----------
    min_hebrew_body_chars:
        A Hebrew body must be longer than this to be kept; shorter bodies
        are extraction noise.
    """

    def __init__(self, min_hebrew_body_chars: int = 5) -> None:
        self._min_hebrew_body_chars = min_hebrew_body_chars

    def merge(
        self,
        english: list[ParsedFields],
        hebrew: list[ParsedFields],
    ) -> MergeResult:
        stats = MergeStats()

        english_by_id: dict[str, ParsedFields] = {}
        for fields in english:
            if fields.external_id in english_by_id:
                stats.duplicate_ids.append(fields.external_id)
                logger.warning("merge_duplicate_id", story_id=fields.external_id)
            english_by_id[fields.external_id] = fields

        hebrew_by_id: dict[str, list[ParsedFields]] = {}
        for fields in hebrew:
            if fields.external_id not in english_by_id:
                stats.hebrew_orphans.append(fields.external_id)
                logger.warning("merge_hebrew_orphan", story_id=fields.external_id)
                continue
            hebrew_by_id.setdefault(fields.external_id, []).append(fields)

        records: list[StoryRecord] = []
        for story_id, en in english_by_id.items():
            he_entries = hebrew_by_id.get(story_id, [])
            if not he_entries:
                stats.english_unmatched.append(story_id)
            records.append(self._build_record(en, he_entries))

        logger.info(
            "merge_complete",
            records=len(records),
            duplicates=len(stats.duplicate_ids),
            hebrew_orphans=len(stats.hebrew_orphans),
            english_unmatched=len(stats.english_unmatched),
        )
        return MergeResult(records=records, stats=stats)

    def _build_record(self, en: ParsedFields, he_entries: list[ParsedFields]) -> StoryRecord:
        values: dict = {
            "story_id": en.external_id,
            "rabbi_en": en.rabbi_name_local,
            "title_en": en.title_local,
            "title_he": en.koteret,
            "body_en": en.body_local or None,
            "day": en.day,
            "month_name": en.month_name,
            "month_index": en.month_index,
        }
        tags = list(en.tags_local)

        for he in he_entries:
            if len(he.body_local) > self._min_hebrew_body_chars:
                values["body_he"] = he.body_local
            if he.rabbi_name_local:
                values["rabbi_he"] = he.rabbi_name_local
            if he.title_local:
                values["title_he"] = he.title_local
            if values["month_name"] is None and he.month_name is not None:
                values["day"] = he.day
                values["month_name"] = he.month_name
                values["month_index"] = he.month_index
            tags.extend(he.tags_local)

        values["tags"] = dedupe_tags(tags)
        return StoryRecord(**values)
