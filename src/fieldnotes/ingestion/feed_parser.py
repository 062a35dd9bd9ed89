"""RSS/Atom parsing — turn feed XML into a FeedDocument.

Parsing is total: malformed or non-feed input yields a document with empty
fields and zero items, never an exception.
"""

from __future__ import annotations

import io
import logging
import re
import time
from dataclasses import dataclass, field
from html import unescape

import feedparser

logger = logging.getLogger(__name__)

_HTML_TAG_RE = re.compile(r"<[^>]+>")


def strip_html(text: str) -> str:
    """Remove HTML tags and unescape entities."""
    return unescape(_HTML_TAG_RE.sub("", text)).strip()


@dataclass(frozen=True)
class FeedItem:
    """One ``<item>`` or ``<entry>`` block."""

    id: str
    title: str
    link: str
    description: str | None = None
    pub_date: str | None = None
    content_html: str | None = None
    # feedparser's UTC reading of pub_date, when it understood the format
    pub_date_parsed: time.struct_time | None = None


@dataclass(frozen=True)
class FeedDocument:
    """A parsed feed: channel title/link plus items in document order."""

    title: str = ""
    link: str = ""
    items: tuple[FeedItem, ...] = field(default_factory=tuple)


def _text(value: object) -> str:
    return value.strip() if isinstance(value, str) else ""


def _get_pub_date(entry: dict) -> tuple[str | None, time.struct_time | None]:
    """Pick the publication moment: pubDate/published first, then updated."""
    for key in ("published", "updated"):
        raw = _text(entry.get(key))
        if raw:
            parsed = entry.get(f"{key}_parsed")
            return raw, parsed if isinstance(parsed, time.struct_time) else None
    return None, None


def _get_content_html(entry: dict) -> str | None:
    # feedparser puts content:encoded / atom:content in entry.content[0].value
    content = entry.get("content")
    if content:
        value = _text(content[0].get("value", ""))
        return value or None
    return None


def _to_item(entry: dict) -> FeedItem:
    link = _text(entry.get("link"))
    description = _text(entry.get("summary")) or _text(entry.get("description"))
    pub_date, pub_date_parsed = _get_pub_date(entry)
    return FeedItem(
        id=_text(entry.get("id")) or link,
        title=_text(entry.get("title")),
        link=link,
        description=description or None,
        pub_date=pub_date,
        content_html=_get_content_html(entry),
        pub_date_parsed=pub_date_parsed,
    )


def parse_feed(data: str | bytes) -> FeedDocument:
    """Parse RSS or Atom XML into a FeedDocument.

    Input is handed to feedparser as an in-memory stream so that strings that
    look like URLs or file paths are never fetched or opened.
    """
    try:
        raw = data.encode("utf-8") if isinstance(data, str) else data
        parsed = feedparser.parse(io.BytesIO(raw))
        entries = parsed.get("entries", [])
        channel = parsed.get("feed", {})
        items = tuple(_to_item(entry) for entry in entries)
    except Exception:
        logger.warning("Feed parsing failed; treating document as empty", exc_info=True)
        return FeedDocument()

    if parsed.get("bozo") and not items:
        logger.debug("Feed is malformed and has no items: %s", parsed.get("bozo_exception"))

    return FeedDocument(
        title=_text(channel.get("title")),
        link=_text(channel.get("link")),
        items=items,
    )
