"""Utility modules for the Sipuraya ingestion pipeline.

- **errors** -- exception hierarchy rooted at SipurayaError; each stage
  raises its own subclass so callers can count failures per category.
- **concurrency** -- semaphore-throttled gather and list batching.
- **logging** -- structlog setup: coloured console output in development,
  JSON in production.
- **hebrew_text** -- repair of detached nikkud, dotted circles and
  invisible bidi characters in Hebrew fields.
"""

# -- Domain exception hierarchy --------------------------------------------
from src.utils.errors import (
    ConfigurationError,
    EmbeddingFailure,
    ExtractionError,
    MergeOrphanError,
    MissingIdentifierError,
    PersistenceBatchError,
    SipurayaError,
)

# -- Async concurrency helpers ---------------------------------------------
from src.utils.concurrency import batched, throttled_gather

# -- Structured logging setup ----------------------------------------------
from src.utils.logging import configure_logging, get_logger

# -- Hebrew text repair ----------------------------------------------------
from src.utils.hebrew_text import needs_repair, repair_hebrew_text, repair_record

__all__ = [
    "ConfigurationError",
    "EmbeddingFailure",
    "ExtractionError",
    "MergeOrphanError",
    "MissingIdentifierError",
    "PersistenceBatchError",
    "SipurayaError",
    "batched",
    "configure_logging",
    "get_logger",
    "needs_repair",
    "repair_hebrew_text",
    "repair_record",
    "throttled_gather",
]
