"""Unit tests for configuration loading."""

from pathlib import Path

import pytest

from anibridge import config


class TestLoadConfig:
    """Tests for load_config."""

    def test_full_file(self, tmp_path: Path) -> None:
        """Should decode every section of a YAML file."""
        path = tmp_path / "config.yml"
        path.write_text(
            """
global_config:
  loglevel: debug
server:
  port: 9000
  api_key: secret
  base_url: https://indexer.example.org
fetch:
  max_size: 50
  cleanup_threshold: 40
sources:
  acgrip:
    enabled: false
  dmhy:
    cache_ttl: 3600
""",
            encoding="utf-8",
        )

        cfg = config.load_config(path)

        assert cfg.global_config.loglevel == "debug"
        assert cfg.server.port == 9000
        assert cfg.server.host == "0.0.0.0"
        assert cfg.server.api_key == "secret"
        assert cfg.fetch.max_size == 50
        assert cfg.fetch.default_duration == 300.0
        assert cfg.source("acgrip").enabled is False
        assert cfg.source("dmhy").cache_ttl == 3600

    def test_empty_file_uses_defaults(self, tmp_path: Path) -> None:
        """Should return defaults for an empty file."""
        path = tmp_path / "config.yml"
        path.write_text("", encoding="utf-8")

        assert config.load_config(path) == config.Config()

    def test_invalid_threshold(self, tmp_path: Path) -> None:
        """Should reject a cleanup threshold above max_size."""
        path = tmp_path / "config.yml"
        path.write_text(
            "fetch:\n  max_size: 10\n  cleanup_threshold: 20\n", encoding="utf-8"
        )

        with pytest.raises(ValueError):
            config.load_config(path)

    def test_wrong_type(self, tmp_path: Path) -> None:
        """Should reject values of the wrong type."""
        path = tmp_path / "config.yml"
        path.write_text("server:\n  port: not-a-port\n", encoding="utf-8")

        with pytest.raises(ValueError):
            config.load_config(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        """Should raise FileNotFoundError for a missing file."""
        with pytest.raises(FileNotFoundError):
            config.load_config(tmp_path / "missing.yml")

    def test_unconfigured_source_defaults(self) -> None:
        """Should return default overrides for sources not in the file."""
        assert config.Config().source("dmhy") == config.SourceConfig()


class TestResolveConfigPath:
    """Tests for resolve_config_path and init_config."""

    def test_explicit_path_wins(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Should prefer the explicit path over the environment."""
        monkeypatch.setenv(config.CONFIG_ENV_VAR, "/from/env.yml")

        assert config.resolve_config_path(str(tmp_path / "a.yml")) == tmp_path / "a.yml"

    def test_environment_variable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should use the environment variable when no path is given."""
        monkeypatch.setenv(config.CONFIG_ENV_VAR, "/from/env.yml")

        assert config.resolve_config_path() == Path("/from/env.yml")

    def test_no_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should return None when nothing is configured or present."""
        monkeypatch.delenv(config.CONFIG_ENV_VAR, raising=False)
        monkeypatch.chdir(tmp_path)

        assert config.resolve_config_path() is None

    def test_init_config_sets_global(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Should replace the module-level configuration."""
        monkeypatch.setattr(config, "cfg", config.Config())
        path = tmp_path / "config.yml"
        path.write_text("server:\n  port: 1234\n", encoding="utf-8")

        loaded = config.init_config(str(path))

        assert loaded.server.port == 1234
        assert config.cfg is loaded
