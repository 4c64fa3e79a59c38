"""Configuration loading from YAML and environment.

The access token is taken from the config file, an environment variable or a
file named by an environment variable (Docker secrets). Never put real tokens
in config files committed to the repo.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _read_secret(env_key: str, file_env_key: str) -> str | None:
    """Read secret from env var or from file path in env (e.g. Docker
    secrets)."""
    value = _current_env.get(env_key)
    if value:
        return value.strip()
    file_path = _current_env.get(file_env_key)
    if file_path:
        return Path(file_path).read_text().strip()
    return None


# Injected by load_config so properties can read env/file
_current_env: dict[str, str] = {}


class GitLabConfig(BaseSettings):
    """GitLab API settings."""

    model_config = SettingsConfigDict(env_prefix="GITLAB_", extra="ignore")

    token: str | None = Field(default=None, description="Personal access token; use env or secret file")
    api_url: str = Field(default="https://gitlab.com/api/v4", description="REST API base URL")
    remote_domain: str = Field(default="gitlab.com", description="Git remote domain served by this provider")
    provider_id: str = Field(default="gitlab*com", description="Provider id reported in responses")
    timeout: int = Field(default=30, ge=1, description="HTTP timeout in seconds")


class CacheConfig(BaseSettings):
    """In-memory cache settings."""

    model_config = SettingsConfigDict(env_prefix="CACHE_", extra="ignore")

    # Lifetime of a per-file comment lookup (env: CACHE_COMMENTS_REFRESH_MINUTES)
    comments_refresh_minutes: int = Field(default=30, ge=1, description="Per-file comment cache lifetime")


class LoggingConfig(BaseSettings):
    """Logging settings."""

    model_config = SettingsConfigDict(env_prefix="LOGGING_", extra="ignore")

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format",
    )


class AppConfig(BaseSettings):
    """Root application config from YAML + env."""

    model_config = SettingsConfigDict(extra="ignore")

    gitlab: GitLabConfig = Field(default_factory=GitLabConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def gitlab_token_resolved(self) -> str | None:
        """Resolve GitLab token from config, env or Docker secret file."""
        t = self.gitlab.token
        if t and not t.startswith("${") and t != "your-token-here":
            return t
        return _read_secret("GITLAB_TOKEN", "GITLAB_TOKEN_FILE")


def _substitute_env(value: Any) -> Any:
    """Replace ${VAR} and $VAR in strings with os.environ."""
    if isinstance(value, str):
        if value.startswith("${") and value.endswith("}"):
            key = value[2:-1].strip()
            return _current_env.get(key, value)
        if value.startswith("$") and not value.startswith("${"):
            key = value[1:].strip()
            return _current_env.get(key, value)
        return value
    if isinstance(value, dict):
        return {k: _substitute_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_substitute_env(v) for v in value]
    return value


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load config from YAML file and environment.

    Secrets: GITLAB_TOKEN or GITLAB_TOKEN_FILE.
    """
    global _current_env
    import os

    _current_env = dict(os.environ)

    path = config_path or Path("config.yaml")
    if not path.is_file():
        return AppConfig()

    raw = yaml.safe_load(path.read_text()) or {}
    raw = _substitute_env(raw)

    return AppConfig(
        gitlab=GitLabConfig(**(raw.get("gitlab") or {})),
        cache=CacheConfig(**(raw.get("cache") or {})),
        logging=LoggingConfig(**(raw.get("logging") or {})),
    )
