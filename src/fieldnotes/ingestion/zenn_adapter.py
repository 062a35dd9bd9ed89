"""Zenn source adapter — articles feed plus optional scraps feed for one user."""

from __future__ import annotations

import logging
from typing import Sequence

import httpx

from fieldnotes.ingestion.adapter import SourceAdapter, SourceConfigError, SourceHTTPError
from fieldnotes.ingestion.feed_parser import FeedItem, parse_feed
from fieldnotes.ingestion.normalize import SOURCE_FEED, Entry, normalize_feed_item
from fieldnotes.storage.cache import ConditionalCache

logger = logging.getLogger(__name__)

_ZENN_BASE_URL = "https://zenn.dev"

# (variant, path template, primary?)
_VARIANTS = (
    ("articles", "/{user}/feed", True),
    ("scraps", "/{user}/scraps/feed", False),
)


class ZennAdapter(SourceAdapter):
    """Adapter for a Zenn user's RSS feeds."""

    entry_source = SOURCE_FEED

    def __init__(self, cache: ConditionalCache, client: httpx.AsyncClient) -> None:
        super().__init__(cache, client)
        self._user: str | None = None
        self._include_scraps = True
        self._base_url = _ZENN_BASE_URL

    @property
    def name(self) -> str:
        return "zenn"

    def configure(self, config: dict) -> None:
        """Accept feed configuration.

        Expected format:
        {"user": "...", "include_scraps": true, "base_url": "https://zenn.dev"}
        """
        self._user = config.get("user") or None
        self._include_scraps = config.get("include_scraps", True)
        self._base_url = config.get("base_url", _ZENN_BASE_URL).rstrip("/")

    def cache_key(self, variant: str) -> str:
        return f"{self.name}:{self._user}:{variant}"

    def _feed_urls(self) -> list[tuple[str, str, bool]]:
        return [
            (variant, self._base_url + path.format(user=self._user), primary)
            for variant, path, primary in _VARIANTS
            if primary or self._include_scraps
        ]

    async def fetch(
        self, *, force: bool = False, limit: int | None = None
    ) -> list[FeedItem] | None:
        """Fetch the articles feed, then the scraps feed, and concatenate them.

        Returns None when every feed is unchanged. When only some feeds are
        unchanged they are fetched again unconditionally, so the result always
        covers the whole source.
        """
        if not self._user:
            raise SourceConfigError("zenn: user is not configured")
        self.discard()

        feeds: dict[str, list[FeedItem] | None] = {}
        for variant, url, primary in self._feed_urls():
            validator = None if force else self._cache.get(self.cache_key(variant))
            response = await self._get(url, validator)
            if response.status_code == 304:
                logger.info("Zenn %s feed for %s not modified", variant, self._user)
                feeds[variant] = None
            elif response.status_code == 404 and not primary:
                logger.info("Zenn %s feed for %s not found; treating as empty", variant, self._user)
            else:
                feeds[variant] = self._read_feed(variant, url, response)

        if all(feed is None for feed in feeds.values()):
            return None

        for variant, url, primary in self._feed_urls():
            if variant in feeds and feeds[variant] is None:
                response = await self._get(url, None)
                if response.status_code == 404 and not primary:
                    feeds[variant] = []
                else:
                    feeds[variant] = self._read_feed(variant, url, response)

        items = [item for feed in feeds.values() for item in feed or ()]
        if limit is not None:
            items = items[:limit]
        logger.info("Fetched %d feed items for %s", len(items), self._user)
        return items

    def normalize(self, raw_items: Sequence[FeedItem]) -> list[Entry]:
        return [normalize_feed_item(item) for item in raw_items]

    async def _get(self, url: str, validator: str | None) -> httpx.Response:
        headers = {"Accept": "application/rss+xml, application/atom+xml, application/xml"}
        if validator:
            headers["If-None-Match"] = validator
        return await self._client.get(url, headers=headers)

    def _read_feed(self, variant: str, url: str, response: httpx.Response) -> list[FeedItem]:
        if not response.is_success:
            raise SourceHTTPError(response.status_code, url)
        self._stage_validator(self.cache_key(variant), response)
        return list(parse_feed(response.content).items)
