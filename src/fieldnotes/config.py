"""Configuration loading and validation."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


@dataclass(frozen=True)
class Config:
    """Run configuration. All values sourced from environment variables.

    Source identities are optional here; a selected source without one is
    skipped at fetch time.
    """

    # Sources
    github_username: str | None = None
    github_token: str | None = None
    zenn_user: str | None = None
    zenn_include_scraps: bool = True

    # Output
    entries_path: str = "src/data/entries.json"
    tags_path: str = "src/data/tags.json"
    cache_path: str = ".cache/etag.json"

    # HTTP
    http_timeout_seconds: int = 30
    user_agent: str = "fieldnotes/0.1"

    # Application
    log_level: str = "INFO"
    log_format: str = "text"

    def source_config(self, name: str) -> dict:
        """Adapter configuration dict for the named source."""
        if name == "gist":
            return {"username": self.github_username, "token": self.github_token}
        if name == "zenn":
            return {"user": self.zenn_user, "include_scraps": self.zenn_include_scraps}
        return {}


_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def load_config(env_path: str | Path | None = None) -> Config:
    """Load configuration from environment variables.

    Loads a .env file if present (for local development). Raises ValueError
    for values that cannot be parsed.
    """
    load_dotenv(dotenv_path=env_path)

    return Config(
        # Sources
        github_username=os.environ.get("GITHUB_USERNAME") or None,
        github_token=os.environ.get("GITHUB_TOKEN") or None,
        zenn_user=os.environ.get("ZENN_USER") or None,
        zenn_include_scraps=_env_bool("ZENN_INCLUDE_SCRAPS", True),
        # Output
        entries_path=os.environ.get("ENTRIES_PATH", "src/data/entries.json"),
        tags_path=os.environ.get("TAGS_PATH", "src/data/tags.json"),
        cache_path=os.environ.get("CACHE_PATH", ".cache/etag.json"),
        # HTTP
        http_timeout_seconds=_env_int("HTTP_TIMEOUT_SECONDS", 30),
        user_agent=os.environ.get("USER_AGENT", "fieldnotes/0.1"),
        # Application
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        log_format=os.environ.get("LOG_FORMAT", "text"),
    )
