"""YAML configuration loader with environment variable overrides.

Configuration is loaded in layers (later layers override earlier):

  1. config/config.yaml  -- static defaults checked into the repo,
                            including the marker micro-format tables
  2. .env file           -- local overrides (not committed)
  3. Environment vars    -- set by whoever runs the ingestion job

``load_config()`` reads the YAML file first, then deep-merges the
env-derived values from :class:`Settings` on top, so a value can be given
a default in config.yaml and overridden per machine.
"""

from pathlib import Path

import yaml

from src.config.settings import Settings
from src.utils.errors import ConfigurationError


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Args:
        path: Path to the YAML configuration file.  A missing file yields
              the env-derived values alone.
        settings: Pre-built settings; constructed from the environment
                  when omitted.

    Returns:
        Fully resolved configuration dictionary.

    Raises:
        ConfigurationError: If the YAML is malformed or not a mapping.
    """
    config_path = Path(path)
    if config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(
                message=f"Malformed YAML in {config_path}: {exc}",
                provider_name="config_loader",
            ) from exc
        if not isinstance(yaml_config, dict):
            raise ConfigurationError(
                message=f"{config_path} must contain a mapping at the top level",
                provider_name="config_loader",
            )
    else:
        yaml_config = {}

    settings = settings or Settings()
    env_overrides = {
        "app": {
            "env": settings.app_env,
            "data_dir": settings.data_dir,
        },
        "embedding": {
            "model": settings.openai_embedding_model,
            "dimensions": settings.embedding_dimensions,
            "char_budget": settings.embedding_char_budget,
            "retry_char_budget": settings.embedding_retry_char_budget,
            "min_chars": settings.embedding_min_chars,
            "batch_size": settings.embedding_batch_size,
            "batch_delay_seconds": settings.embedding_batch_delay_seconds,
            "concurrency": settings.embedding_concurrency,
            "enabled": settings.embeddings_enabled(),
        },
        "store": {
            "backend": settings.store_backend,
            "sqlite_db_path": settings.sqlite_db_path,
            "batch_size": settings.persist_batch_size,
        },
        "merge": {
            "min_hebrew_body_chars": settings.min_hebrew_body_chars,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
