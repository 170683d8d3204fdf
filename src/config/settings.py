"""Application settings loaded from environment variables via pydantic-settings.

Values are read, in priority order, from real environment variables and
then from a ``.env`` file in the working directory.  Field ``openai_api_key``
maps to env var ``OPENAI_API_KEY`` and so on.  Defaults apply when neither
source defines a field.

The ``.env`` file holds secrets (the OpenAI key, the Postgres URL) and is
never committed; ``.env.example`` lists the recognised variables.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Sipuraya ingestion settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # === Embedding service ===
    # Empty key = embeddings disabled; records are stored with embedding=None.
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible endpoint override
    openai_embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536
    embedding_char_budget: int = 8000
    embedding_retry_char_budget: int = 1000
    embedding_min_chars: int = 5
    embedding_batch_size: int = 10
    embedding_batch_delay_seconds: float = 1.0
    embedding_concurrency: int = 5

    # === Persistence ===
    store_backend: str = "sqlite"  # "sqlite" | "postgres"
    sqlite_db_path: str = "data/stories.db"
    database_url: str = ""  # postgresql://... (Supabase connection string)
    persist_batch_size: int = 10

    # === Ingestion ===
    data_dir: str = "data/raw"
    min_hebrew_body_chars: int = 5

    # === App Config ===
    app_env: str = "development"
    log_level: str = "INFO"

    def embeddings_enabled(self) -> bool:
        """Return True when an embedding API key is configured."""
        return bool(self.openai_api_key)
