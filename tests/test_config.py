"""Tests for configuration loading (YAML + env)."""

from pathlib import Path

import pytest

from prbridge.config import AppConfig, load_config


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ("GITLAB_TOKEN", "GITLAB_TOKEN_FILE", "GITLAB_API_URL", "CACHE_COMMENTS_REFRESH_MINUTES"):
        monkeypatch.delenv(key, raising=False)


class TestLoadConfig:
    """load_config reads YAML and substitutes env references."""

    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        """A missing file yields the default config."""
        config = load_config(tmp_path / "missing.yaml")
        assert config.gitlab.api_url == "https://gitlab.com/api/v4"
        assert config.cache.comments_refresh_minutes == 30
        assert config.logging.level == "INFO"

    def test_yaml_sections(self, tmp_path: Path) -> None:
        """Every section is read from YAML."""
        path = tmp_path / "config.yaml"
        path.write_text(
            "gitlab:\n"
            "  api_url: https://gitlab.example.com/api/v4\n"
            "  remote_domain: gitlab.example.com\n"
            "  provider_id: gitlab*example\n"
            "cache:\n"
            "  comments_refresh_minutes: 5\n"
            "logging:\n"
            "  level: DEBUG\n"
        )
        config = load_config(path)
        assert config.gitlab.api_url == "https://gitlab.example.com/api/v4"
        assert config.gitlab.remote_domain == "gitlab.example.com"
        assert config.gitlab.provider_id == "gitlab*example"
        assert config.cache.comments_refresh_minutes == 5
        assert config.logging.level == "DEBUG"

    def test_env_substitution(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """${VAR} values are replaced from the environment."""
        monkeypatch.setenv("GITLAB_TOKEN", "from-env")
        path = tmp_path / "config.yaml"
        path.write_text("gitlab:\n  token: ${GITLAB_TOKEN}\n")
        assert load_config(path).gitlab_token_resolved == "from-env"

    def test_example_config_loads(self) -> None:
        """The shipped example config is valid."""
        example = Path(__file__).resolve().parent.parent / "config.example.yaml"
        config = load_config(example)
        assert config.gitlab.provider_id == "gitlab*com"


class TestTokenResolution:
    """gitlab_token_resolved: config, env, then secret file."""

    def test_config_token(self) -> None:
        """A real token in config wins."""
        config = AppConfig.model_validate({"gitlab": {"token": "glpat-abc"}})
        assert config.gitlab_token_resolved == "glpat-abc"

    def test_placeholder_falls_back_to_secret_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """An unresolved placeholder falls back to GITLAB_TOKEN_FILE."""
        secret = tmp_path / "token"
        secret.write_text("from-file\n")
        monkeypatch.setenv("GITLAB_TOKEN_FILE", str(secret))
        path = tmp_path / "config.yaml"
        path.write_text("gitlab:\n  token: your-token-here\n")
        assert load_config(path).gitlab_token_resolved == "from-file"

    def test_no_token(self, tmp_path: Path) -> None:
        """No token anywhere resolves to None."""
        path = tmp_path / "config.yaml"
        path.write_text("gitlab: {}\n")
        assert load_config(path).gitlab_token_resolved is None
