"""OpenAI-compatible embedding provider adapter.

Wraps the ``openai`` async client to implement :class:`IEmbeddingProvider`.
Requests ``text-embedding-3-small`` at 1536 dimensions by default; a custom
``openai_base_url`` points the client at any OpenAI-compatible endpoint.
"""

from __future__ import annotations

import openai
import structlog

from src.config.settings import Settings
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.utils.errors import EmbeddingFailure

logger = structlog.get_logger(logger_name=__name__)

_CONTEXT_LENGTH_CODE = "context_length_exceeded"


def _is_context_length_error(exc: openai.APIError) -> bool:
    if getattr(exc, "code", None) == _CONTEXT_LENGTH_CODE:
        return True
    return "maximum context length" in str(exc).lower()


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by an OpenAI-compatible embeddings API.

    When a single input is rejected for exceeding the model's context
    window, the request is retried once with each text cut to
    ``embedding_retry_char_budget`` characters.
    """

    def __init__(self, settings: Settings, client: openai.AsyncOpenAI | None = None) -> None:
        self._api_key = settings.openai_api_key
        self._base_url = settings.openai_base_url
        # Built on first request; the SDK refuses to construct without a key.
        self._client = client
        self._model = settings.openai_embedding_model or "text-embedding-3-small"
        self._dimension = settings.embedding_dimensions
        self._retry_chars = settings.embedding_retry_char_budget
        self._provider_label = (
            "openai-compatible_embedding" if settings.openai_base_url else "openai_embedding"
        )

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts."""
        if not texts:
            return []

        try:
            return await self._create(texts)
        except openai.APIError as exc:
            if not _is_context_length_error(exc):
                raise EmbeddingFailure(
                    message=f"{self._provider_label} API error: {exc}",
                    provider_name=self.get_provider_name(),
                ) from exc
            logger.warning(
                "embedding_context_length_retry",
                model=self._model,
                retry_chars=self._retry_chars,
            )

        try:
            return await self._create([t[: self._retry_chars] for t in texts])
        except openai.APIError as exc:
            raise EmbeddingFailure(
                message=f"{self._provider_label} API error after truncation: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string."""
        result = await self.embed([text])
        return result[0]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return self._provider_label

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return bool(self._api_key)

    def _get_client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            client_kwargs: dict = {"api_key": self._api_key}
            if self._base_url:
                client_kwargs["base_url"] = self._base_url
            try:
                self._client = openai.AsyncOpenAI(**client_kwargs)
            except openai.OpenAIError as exc:
                raise EmbeddingFailure(
                    message=f"Cannot create {self._provider_label} client: {exc}",
                    provider_name=self.get_provider_name(),
                ) from exc
        return self._client

    async def _create(self, texts: list[str]) -> list[list[float]]:
        kwargs: dict = {"input": texts, "model": self._model}
        # Only the text-embedding-3 family accepts a dimensions override.
        if self._model.startswith("text-embedding-3"):
            kwargs["dimensions"] = self._dimension
        response = await self._get_client().embeddings.create(**kwargs)
        logger.debug(
            "openai_embedding_batch",
            model=self._model,
            provider=self._provider_label,
            batch_size=len(texts),
            tokens=response.usage.total_tokens if response.usage else None,
        )
        vectors = [item.embedding for item in response.data]
        if len(vectors) != len(texts):
            raise EmbeddingFailure(
                message=f"Expected {len(texts)} vectors, got {len(vectors)}",
                provider_name=self.get_provider_name(),
            )
        return vectors
