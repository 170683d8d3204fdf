"""Unit tests for Settings and the YAML config loader."""

from __future__ import annotations

from pathlib import Path

import pytest

from src.config.loader import load_config
from src.config.settings import Settings
from src.services.ingestion.markers import MarkerFormat, TagKind
from src.utils.errors import ConfigurationError


class TestSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        settings = Settings(_env_file=None)
        assert settings.store_backend == "sqlite"
        assert settings.embedding_dimensions == 1536
        assert settings.embeddings_enabled() is False

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        monkeypatch.setenv("PERSIST_BATCH_SIZE", "25")
        settings = Settings(_env_file=None)
        assert settings.embeddings_enabled() is True
        assert settings.persist_batch_size == 25


class TestLoadConfig:
    def test_project_config_loads_marker_tables(self, project_root: Path) -> None:
        config = load_config(
            str(project_root / "config" / "config.yaml"), settings=Settings(_env_file=None)
        )
        fmt = MarkerFormat.from_config(config["markers"])

        assert fmt.classify("###Date: 14 Adar").kind == TagKind.DATE
        assert fmt.classify("KOTERET: x").kind == TagKind.HEBREW_TITLE
        assert config["store"]["backend"] == "sqlite"

    def test_settings_override_yaml_scalars(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("store:\n  backend: postgres\n  extra: kept\n", encoding="utf-8")

        config = load_config(str(path), settings=Settings(_env_file=None, store_backend="sqlite"))

        assert config["store"]["backend"] == "sqlite"
        assert config["store"]["extra"] == "kept"

    def test_missing_file_gives_env_values(self, tmp_path: Path) -> None:
        config = load_config(str(tmp_path / "absent.yaml"), settings=Settings(_env_file=None))
        assert config["embedding"]["model"] == "text-embedding-3-small"
        assert "markers" not in config

    def test_malformed_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("store: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_config(str(path), settings=Settings(_env_file=None))

    def test_non_mapping_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_config(str(path), settings=Settings(_env_file=None))
