"""Embedding provider implementations.

Embeddings turn a story body into a vector for the reader's semantic
search.  One implementation of IEmbeddingProvider:
    OpenAIEmbeddingProvider -- text-embedding-3-small (1536 dims).
"""

from src.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["OpenAIEmbeddingProvider"]
