"""Split extracted document text into per-story :class:`RawBlock` objects.

English documents separate stories with the ``###NEW STORY`` sentinel, so
each block is the text between two sentinels.  Hebrew documents put the
ID tag (``#סיפור_מספר: Ad0033``) in front of each story, so each block runs
from one ID tag to the next and the ID is captured by the split itself.

Both algorithms keep every character of the input: joining
``block.delimiter + block.text`` over the returned blocks reproduces the
extracted text exactly.
"""

from __future__ import annotations

import structlog

from src.models.story import Language, RawBlock
from src.services.ingestion.markers import MarkerFormat, canonical_id

logger = structlog.get_logger(logger_name=__name__)


class DocumentSegmenter:
    """Language-aware splitter for extracted document text."""

    def __init__(self, marker_format: MarkerFormat | None = None) -> None:
        self._format = marker_format or MarkerFormat()

    def segment(self, text: str, language: Language) -> list[RawBlock]:
        if language == Language.HE:
            return self.segment_hebrew(text)
        return self.segment_english(text)

    def segment_english(self, text: str) -> list[RawBlock]:
        """Split on the case-insensitive new-story sentinel.

        The text before the first sentinel becomes a preamble block (omitted
        when empty).  With no sentinel at all the whole text is one block.
        """
        matches = list(self._format.sentinel_pattern.finditer(text))
        if not matches:
            logger.debug("segmenter_no_delimiters", language="en", chars=len(text))
            return [RawBlock(language=Language.EN, text=text)]

        blocks: list[RawBlock] = []
        head = text[: matches[0].start()]
        if head:
            blocks.append(RawBlock(language=Language.EN, text=head, preamble=True))

        for i, match in enumerate(matches):
            end = matches[i + 1].start() if i + 1 < len(matches) else len(text)
            blocks.append(
                RawBlock(
                    language=Language.EN,
                    text=text[match.end() : end],
                    delimiter=match.group(0),
                    start=match.start(),
                )
            )

        logger.debug("segmented", language="en", blocks=len(blocks))
        return blocks

    def segment_hebrew(self, text: str) -> list[RawBlock]:
        """Split at each ID tag; the tag stays at the head of its block."""
        matches = list(self._format.hebrew_id_pattern.finditer(text))
        if not matches:
            logger.debug("segmenter_no_delimiters", language="he", chars=len(text))
            return [RawBlock(language=Language.HE, text=text)]

        blocks: list[RawBlock] = []
        head = text[: matches[0].start()]
        if head:
            blocks.append(RawBlock(language=Language.HE, text=head, preamble=True))

        for i, match in enumerate(matches):
            end = matches[i + 1].start() if i + 1 < len(matches) else len(text)
            blocks.append(
                RawBlock(
                    language=Language.HE,
                    text=text[match.start() : end],
                    start=match.start(),
                    external_id=canonical_id(match.group(1)),
                )
            )

        logger.debug("segmented", language="he", blocks=len(blocks))
        return blocks
