"""Unit tests for the OpenAI embedding provider adapter."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import openai
import pytest

from src.config.settings import Settings
from src.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from src.utils.errors import EmbeddingFailure


def _settings(**overrides) -> Settings:
    defaults = {
        "openai_api_key": "sk-test",
        "openai_base_url": "",
        "openai_embedding_model": "text-embedding-3-small",
        "embedding_dimensions": 1536,
        "embedding_retry_char_budget": 10,
    }
    defaults.update(overrides)
    return Settings(_env_file=None, **defaults)


def _response(*vectors: list[float]) -> MagicMock:
    response = MagicMock()
    response.data = [MagicMock(embedding=v) for v in vectors]
    response.usage = MagicMock(total_tokens=42)
    return response


def _api_error(message: str, code: str | None = None) -> openai.APIError:
    return openai.APIError(message=message, request=MagicMock(), body={"code": code} if code else None)


class TestOpenAIEmbeddingProvider:
    def test_provider_name(self) -> None:
        assert OpenAIEmbeddingProvider(_settings()).get_provider_name() == "openai_embedding"
        custom = OpenAIEmbeddingProvider(_settings(openai_base_url="http://localhost:8080/v1"))
        assert custom.get_provider_name() == "openai-compatible_embedding"

    def test_is_available(self) -> None:
        assert OpenAIEmbeddingProvider(_settings()).is_available() is True
        assert OpenAIEmbeddingProvider(_settings(openai_api_key="")).is_available() is False

    def test_client_built_on_first_request(self) -> None:
        with patch(
            "src.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI"
        ) as client_cls:
            provider = OpenAIEmbeddingProvider(_settings(openai_api_key=""))
            assert provider.is_available() is False
        client_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_credentials_become_embedding_failure(self) -> None:
        provider = OpenAIEmbeddingProvider(_settings(openai_api_key=""))
        with patch(
            "src.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            side_effect=openai.OpenAIError("Missing credentials"),
        ):
            with pytest.raises(EmbeddingFailure, match="Missing credentials"):
                await provider.embed(["hello"])

    def test_get_dimension(self) -> None:
        assert OpenAIEmbeddingProvider(_settings(embedding_dimensions=512)).get_dimension() == 512

    @pytest.mark.asyncio
    async def test_embed_success_passes_dimensions(self) -> None:
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(return_value=_response([0.1] * 3, [0.2] * 3))

        with patch(
            "src.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            provider = OpenAIEmbeddingProvider(_settings())
            result = await provider.embed(["hello", "world"])

        assert result == [[0.1] * 3, [0.2] * 3]
        kwargs = mock_client.embeddings.create.await_args.kwargs
        assert kwargs["model"] == "text-embedding-3-small"
        assert kwargs["dimensions"] == 1536

    @pytest.mark.asyncio
    async def test_older_models_get_no_dimensions_argument(self) -> None:
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(return_value=_response([0.5]))
        provider = OpenAIEmbeddingProvider(
            _settings(openai_embedding_model="text-embedding-ada-002"), client=mock_client
        )

        await provider.embed_single("hello")

        assert "dimensions" not in mock_client.embeddings.create.await_args.kwargs

    @pytest.mark.asyncio
    async def test_empty_batch_skips_api(self) -> None:
        mock_client = AsyncMock()
        provider = OpenAIEmbeddingProvider(_settings(), client=mock_client)
        assert await provider.embed([]) == []
        mock_client.embeddings.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_context_length_error_retries_truncated(self) -> None:
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(
            side_effect=[
                _api_error("too long", code="context_length_exceeded"),
                _response([0.3] * 3),
            ]
        )
        provider = OpenAIEmbeddingProvider(_settings(), client=mock_client)

        result = await provider.embed(["x" * 100])

        assert result == [[0.3] * 3]
        retry_input = mock_client.embeddings.create.await_args_list[1].kwargs["input"]
        assert retry_input == ["x" * 10]

    @pytest.mark.asyncio
    async def test_context_length_detected_from_message(self) -> None:
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(
            side_effect=[
                _api_error("This model's maximum context length is 8192 tokens"),
                _api_error("This model's maximum context length is 8192 tokens"),
            ]
        )
        provider = OpenAIEmbeddingProvider(_settings(), client=mock_client)

        with pytest.raises(EmbeddingFailure):
            await provider.embed(["x" * 100])
        assert mock_client.embeddings.create.await_count == 2

    @pytest.mark.asyncio
    async def test_other_api_error_raises_without_retry(self) -> None:
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(side_effect=_api_error("Rate limit"))
        provider = OpenAIEmbeddingProvider(_settings(), client=mock_client)

        with pytest.raises(EmbeddingFailure) as exc_info:
            await provider.embed(["test"])

        assert exc_info.value.provider_name == "openai_embedding"
        assert mock_client.embeddings.create.await_count == 1

    @pytest.mark.asyncio
    async def test_vector_count_mismatch_raises(self) -> None:
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(return_value=_response([0.1]))
        provider = OpenAIEmbeddingProvider(_settings(), client=mock_client)

        with pytest.raises(EmbeddingFailure):
            await provider.embed(["a", "b"])
