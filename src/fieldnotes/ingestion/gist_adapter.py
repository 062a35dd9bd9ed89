"""GitHub Gist source adapter — paginated, conditional listing of a user's gists."""

from __future__ import annotations

import asyncio
import logging
import random
import time
from typing import Sequence

import httpx

from fieldnotes.ingestion.adapter import SourceAdapter, SourceConfigError, SourceHTTPError
from fieldnotes.ingestion.normalize import SOURCE_API, Entry, normalize_gist
from fieldnotes.storage.cache import ConditionalCache

logger = logging.getLogger(__name__)

_GITHUB_API_BASE = "https://api.github.com"
_GITHUB_API_VERSION = "2022-11-28"
_MAX_ATTEMPTS = 3
_BACKOFF_BASE = 0.3  # seconds, doubled per attempt
_JITTER_MAX = 0.1  # seconds


def _is_rate_limited(response: httpx.Response) -> bool:
    if response.status_code == 429:
        return True
    # GitHub signals primary rate limits with 403 and an exhausted quota
    return (
        response.status_code == 403
        and response.headers.get("X-RateLimit-Remaining") == "0"
    )


def _is_retryable(response: httpx.Response) -> bool:
    return response.status_code >= 500 or _is_rate_limited(response)


def retry_delay(
    attempt: int,
    response: httpx.Response | None = None,
    now: float | None = None,
) -> float:
    """Seconds to wait before retry number ``attempt + 1``.

    A rate-limited response carrying ``X-RateLimit-Reset`` (Unix seconds)
    waits until the reset, clamped to zero. Everything else uses exponential
    backoff from 300ms plus jitter.
    """
    if response is not None and _is_rate_limited(response):
        reset = response.headers.get("X-RateLimit-Reset")
        if reset is not None:
            try:
                reset_at = float(reset)
            except ValueError:
                logger.debug("Ignoring unparsable X-RateLimit-Reset: %r", reset)
            else:
                current = time.time() if now is None else now
                return max(0.0, reset_at - current)
    return _BACKOFF_BASE * 2 ** attempt + random.uniform(0, _JITTER_MAX)


class GistAdapter(SourceAdapter):
    """Adapter for the public gists of one GitHub user."""

    entry_source = SOURCE_API

    def __init__(self, cache: ConditionalCache, client: httpx.AsyncClient) -> None:
        super().__init__(cache, client)
        self._username: str | None = None
        self._token: str | None = None
        self._per_page = 100
        self._api_base = _GITHUB_API_BASE

    @property
    def name(self) -> str:
        return "gist"

    def configure(self, config: dict) -> None:
        self._username = config.get("username") or None
        self._token = config.get("token") or None
        self._per_page = config.get("per_page", 100)
        self._api_base = config.get("api_base", _GITHUB_API_BASE).rstrip("/")

    @property
    def cache_key(self) -> str:
        return f"{self.name}:{self._username}"

    async def fetch(
        self, *, force: bool = False, limit: int | None = None
    ) -> list[dict] | None:
        if not self._username:
            raise SourceConfigError("gist: username is not configured")
        self.discard()

        url: str | None = f"{self._api_base}/users/{self._username}/gists"
        params: dict | None = {"per_page": self._per_page}
        validator = None if force else self._cache.get(self.cache_key)
        items: list[dict] = []
        first_response: httpx.Response | None = None

        while url:
            headers = self._build_headers(validator if first_response is None else None)
            response = await self._get_with_retry(url, headers, params)

            if response.status_code == 304:
                logger.info("Gists for %s not modified", self._username)
                return None
            if first_response is None:
                first_response = response

            page = response.json()
            if not isinstance(page, list):
                raise ValueError(f"Unexpected gist listing payload from {url}")
            items.extend(page)

            if limit is not None and len(items) >= limit:
                items = items[:limit]
                break

            # The next link already carries the query string
            url = response.links.get("next", {}).get("url")
            params = None

        # Only the listing's first page validates the whole listing
        if first_response is not None:
            self._stage_validator(self.cache_key, first_response)
        logger.info("Fetched %d gists for %s", len(items), self._username)
        return items

    def normalize(self, raw_items: Sequence[dict]) -> list[Entry]:
        return [normalize_gist(raw) for raw in raw_items]

    def _build_headers(self, validator: str | None) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": _GITHUB_API_VERSION,
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        if validator:
            headers["If-None-Match"] = validator
        return headers

    async def _get_with_retry(
        self,
        url: str,
        headers: dict[str, str],
        params: dict | None,
    ) -> httpx.Response:
        """GET with bounded retries on 5xx, rate limits, and transport errors.

        Returns a 2xx or 304 response. Raises SourceHTTPError otherwise.
        """
        attempt = 0
        while True:
            last_attempt = attempt == _MAX_ATTEMPTS - 1
            try:
                response = await self._client.get(url, headers=headers, params=params)
            except httpx.TransportError as exc:
                if last_attempt:
                    raise
                delay = retry_delay(attempt)
                logger.warning(
                    "Gist request failed (attempt %d/%d): %s; retrying in %.2fs",
                    attempt + 1, _MAX_ATTEMPTS, exc, delay,
                )
            else:
                if response.status_code == 304 or response.is_success:
                    return response
                if last_attempt or not _is_retryable(response):
                    raise SourceHTTPError(response.status_code, str(response.url))
                delay = retry_delay(attempt, response)
                logger.warning(
                    "Gist API returned %d (attempt %d/%d); retrying in %.2fs",
                    response.status_code, attempt + 1, _MAX_ATTEMPTS, delay,
                )
            await asyncio.sleep(delay)
            attempt += 1
