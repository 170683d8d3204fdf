"""Custom exception hierarchy for the Sipuraya ingestion pipeline.

All application exceptions inherit from :class:`SipurayaError`, which
carries an optional ``provider_name`` so error handlers can identify which
external collaborator (e.g. "openai_embedding", "sqlite_story_store")
caused the failure.

The hierarchy is organized by pipeline stage:

    SipurayaError  (base -- catch-all for any pipeline error)
    +-- ExtractionError         (document bytes unreadable as declared format)
    +-- MissingIdentifierError  (block has no external story ID)
    +-- MergeOrphanError        (block ID has no counterpart in the other language)
    +-- EmbeddingFailure        (embedding service error or degenerate input)
    +-- PersistenceBatchError   (one upsert batch failed)
    +-- ConfigurationError      (startup / missing config)

Only :class:`ExtractionError` ends the processing of a document pair.
Every other category is caught at the block, record or batch boundary,
counted in the run's :class:`~src.models.ingestion.IngestionReport`, and
the run continues.
"""


class SipurayaError(Exception):
    """Base exception for all pipeline errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[openai_embedding] API error``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Extraction / parsing errors
# ---------------------------------------------------------------------------

class ExtractionError(SipurayaError):
    """Raised when a document cannot be parsed as its declared format.

    Fatal for the document pair it belongs to, never for the whole run.
    """

    def __init__(
        self,
        message: str = "Document text extraction failed",
        provider_name: str | None = None,
        document_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._document_name = document_name

    @property
    def document_name(self) -> str | None:
        return self._document_name


class MissingIdentifierError(SipurayaError):
    """Raised by a field parser when a block carries no external story ID."""

    def __init__(
        self,
        message: str = "Block has no extractable story ID",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class MergeOrphanError(SipurayaError):
    """A block's story ID has no counterpart in the other language."""

    def __init__(
        self,
        message: str = "Story ID has no counterpart in the other document",
        provider_name: str | None = None,
        story_id: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._story_id = story_id

    @property
    def story_id(self) -> str | None:
        return self._story_id


# ---------------------------------------------------------------------------
# External collaborator errors
# ---------------------------------------------------------------------------

class EmbeddingFailure(SipurayaError):
    """Raised when the embedding service fails or the input is degenerate."""

    def __init__(
        self,
        message: str = "Embedding generation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class PersistenceBatchError(SipurayaError):
    """Raised when one batch of upserts fails.

    Carries the story IDs of the failed batch so the run report can list
    them; other batches are still attempted.
    """

    def __init__(
        self,
        message: str = "Story upsert batch failed",
        provider_name: str | None = None,
        story_ids: list[str] | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._story_ids = list(story_ids or [])

    @property
    def story_ids(self) -> list[str]:
        return list(self._story_ids)


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------

class ConfigurationError(SipurayaError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
