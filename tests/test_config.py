"""Tests for fieldnotes.config."""

import pytest

from fieldnotes.config import Config, load_config

_VARS = (
    "GITHUB_USERNAME", "GITHUB_TOKEN", "ZENN_USER", "ZENN_INCLUDE_SCRAPS",
    "ENTRIES_PATH", "TAGS_PATH", "CACHE_PATH", "HTTP_TIMEOUT_SECONDS",
    "USER_AGENT", "LOG_LEVEL", "LOG_FORMAT",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Remove all config-related env vars before each test."""
    for key in _VARS:
        monkeypatch.delenv(key, raising=False)
    # Prevent .env file from re-setting variables during tests
    monkeypatch.setattr("fieldnotes.config.load_dotenv", lambda *a, **kw: None)


def test_defaults():
    """Config loads with no variables set, using defaults."""
    config = load_config()

    assert config.github_username is None
    assert config.github_token is None
    assert config.zenn_user is None
    assert config.zenn_include_scraps is True
    assert config.entries_path == "src/data/entries.json"
    assert config.tags_path == "src/data/tags.json"
    assert config.cache_path == ".cache/etag.json"
    assert config.http_timeout_seconds == 30
    assert config.log_level == "INFO"
    assert config.log_format == "text"


def test_sources_from_env(monkeypatch):
    monkeypatch.setenv("GITHUB_USERNAME", "octocat")
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_x")
    monkeypatch.setenv("ZENN_USER", "alice")
    monkeypatch.setenv("ZENN_INCLUDE_SCRAPS", "false")

    config = load_config()

    assert config.github_username == "octocat"
    assert config.github_token == "ghp_x"
    assert config.zenn_user == "alice"
    assert config.zenn_include_scraps is False


def test_empty_identity_is_none(monkeypatch):
    monkeypatch.setenv("GITHUB_USERNAME", "")
    assert load_config().github_username is None


def test_custom_paths(monkeypatch):
    monkeypatch.setenv("ENTRIES_PATH", "/tmp/out/entries.json")
    monkeypatch.setenv("CACHE_PATH", "/tmp/cache.json")
    config = load_config()
    assert config.entries_path == "/tmp/out/entries.json"
    assert config.cache_path == "/tmp/cache.json"


def test_invalid_int_raises(monkeypatch):
    monkeypatch.setenv("HTTP_TIMEOUT_SECONDS", "soon")
    with pytest.raises(ValueError, match="HTTP_TIMEOUT_SECONDS"):
        load_config()


def test_invalid_bool_raises(monkeypatch):
    monkeypatch.setenv("ZENN_INCLUDE_SCRAPS", "maybe")
    with pytest.raises(ValueError, match="ZENN_INCLUDE_SCRAPS"):
        load_config()


def test_source_config():
    config = Config(github_username="octocat", github_token="t", zenn_user="alice")
    assert config.source_config("gist") == {"username": "octocat", "token": "t"}
    assert config.source_config("zenn") == {"user": "alice", "include_scraps": True}
    assert config.source_config("other") == {}
