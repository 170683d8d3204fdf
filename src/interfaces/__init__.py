"""Abstract interfaces for the pipeline's external services.

The ingestion pipeline reaches the embedding API and the story database
only through these ABCs, so tests and ``--dry-run`` runs can swap in
fakes without touching the services.
"""

from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.story_store import IStoryStore

__all__ = ["IEmbeddingProvider", "IStoryStore"]
