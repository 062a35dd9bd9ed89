"""Source adapter interface and source-level errors."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Sequence

import httpx

from fieldnotes.ingestion.normalize import Entry
from fieldnotes.storage.cache import ConditionalCache


class SourceConfigError(ValueError):
    """A selected source is missing required configuration (e.g. its identity)."""


class SourceHTTPError(Exception):
    """A source answered with a terminal non-success HTTP status."""

    def __init__(self, status_code: int, url: str) -> None:
        super().__init__(f"HTTP {status_code} from {url}")
        self.status_code = status_code
        self.url = url


class SourceAdapter(ABC):
    """Abstract base class for source adapters.

    An adapter fetches raw items for one identity from one source, using the
    conditional cache to skip unchanged content, and maps them to Entries.
    Adapters share the run's HTTP client but hold no other shared state.

    Validators received during ``fetch`` are only staged. The caller stores
    them with ``commit`` once the fetched entries have been persisted.
    """

    # Entry.source value of the entries this adapter produces
    entry_source: ClassVar[str]

    def __init__(self, cache: ConditionalCache, client: httpx.AsyncClient) -> None:
        self._cache = cache
        self._client = client
        self._staged: dict[str, str] = {}

    @property
    @abstractmethod
    def name(self) -> str:
        """Short adapter name, also the cache key prefix."""

    @abstractmethod
    def configure(self, config: dict) -> None:
        """Accept adapter-specific configuration."""

    @abstractmethod
    async def fetch(
        self, *, force: bool = False, limit: int | None = None
    ) -> list[Any] | None:
        """Fetch raw items in source order.

        Returns None when the source reports its content as not modified,
        in which case the caller reuses what it persisted before. Raises
        SourceConfigError for missing configuration and SourceHTTPError for
        terminal HTTP failures.
        """

    @abstractmethod
    def normalize(self, raw_items: Sequence[Any]) -> list[Entry]:
        """Map raw items to Entries, preserving order."""

    def _stage_validator(self, key: str, response: httpx.Response) -> None:
        etag = response.headers.get("ETag")
        if etag:
            self._staged[key] = etag

    def commit(self) -> None:
        """Store the validators staged by the last successful fetch."""
        for key, validator in self._staged.items():
            self._cache.set(key, validator)
        self._staged.clear()

    def discard(self) -> None:
        """Drop staged validators after a failed fetch or normalization."""
        self._staged.clear()
