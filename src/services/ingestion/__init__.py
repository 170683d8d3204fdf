"""Bilingual story ingestion pipeline ("the zipper").

Pipeline stages overview:

1. **Extract** (text_extractor.py) -- .docx / .pdf / text bytes to plain text.
2. **Segment** (segmenter.py) -- English text splits on the new-story
   sentinel, Hebrew text on the ID tag that precedes each story.
3. **Parse** (english_parser.py, hebrew_parser.py) -- one ParsedFields per
   block: ID, date, title, rabbi name, tags and body.  Span meaning comes
   from the explicit classification in markers.py.
4. **Merge** (record_merger.py) -- keyed join of both languages on the ID.
5. **Date** (date_normalizer.py) -- "14 Adar" / "י״ד אדר" from one pair.
6. **Repair** (src/utils/hebrew_text.py) -- detached nikkud, invisibles.
7. **Embed** (story_embedder.py) -- vectors via IEmbeddingProvider.
8. **Store** (via IStoryStore) -- upsert by story_id in batches.

IngestionService runs the stages for a pair of documents or a whole
directory of pairs (file_pairing.py).
"""

from src.services.ingestion.ingestion_service import IngestionService

__all__ = ["IngestionService"]
