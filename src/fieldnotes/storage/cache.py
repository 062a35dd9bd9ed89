"""Conditional-fetch cache — persists one validator (ETag) per source key."""

from __future__ import annotations

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class ConditionalCache:
    """File-backed store mapping cache keys to validator strings.

    Keys look like ``"<source>:<identity>[:<variant>]"``. The whole store is a
    single JSON object that is re-read on every access and rewritten on every
    ``set``. A missing or unreadable file behaves as an empty store, so fetches
    fall back to unconditional requests.

    Not safe for concurrent runs against the same file.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> str | None:
        """Return the stored validator for ``key``, or None."""
        return self._read().get(key)

    def set(self, key: str, validator: str) -> None:
        """Store ``validator`` under ``key`` (read-modify-write)."""
        store = self._read()
        store[key] = validator
        self._write(store)

    def dump_all(self) -> dict[str, str]:
        """Return a copy of every stored key/validator pair."""
        return dict(self._read())

    def _read(self) -> dict[str, str]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError:
            logger.warning("Cannot read cache store %s; treating as empty", self._path)
            return {}
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Corrupt cache store %s; treating as empty", self._path)
            return {}
        if not isinstance(data, dict):
            logger.warning("Cache store %s is not a JSON object; treating as empty", self._path)
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write(self, store: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            json.dumps(store, indent=2, ensure_ascii=False) + "\n", encoding="utf-8"
        )
