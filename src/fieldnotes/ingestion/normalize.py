"""Normalization — map raw source items onto the canonical Entry model."""

from __future__ import annotations

from dataclasses import dataclass

from fieldnotes.ingestion.canonical import (
    Tag,
    build_tags,
    canonical_now,
    derive_slug,
    is_canonical_date,
    to_canonical_date,
)
from fieldnotes.ingestion.feed_parser import FeedItem, strip_html

SOURCE_API = "api"
SOURCE_FEED = "feed"
VALID_SOURCES = frozenset({SOURCE_API, SOURCE_FEED})

GIST_TAG = "gist"
ZENN_TAG = "zenn"


def _is_date_string(value: object) -> bool:
    return isinstance(value, str) and is_canonical_date(value)


@dataclass(frozen=True)
class Entry:
    """Canonical, persisted representation of one piece of content."""

    id: str
    source: str
    slug: str
    title: str
    summary: str
    url: str
    tags: tuple[Tag, ...]
    published_at: str
    updated_at: str | None = None
    author: str | None = None
    image: str | None = None
    content_html: str | None = None

    def to_dict(self) -> dict:
        """Serialize to the snapshot's JSON shape (camelCase, optionals omitted)."""
        data: dict = {
            "id": self.id,
            "source": self.source,
            "slug": self.slug,
            "title": self.title,
            "summary": self.summary,
            "url": self.url,
            "tags": [{"raw": t.raw, "norm": t.norm} for t in self.tags],
            "publishedAt": self.published_at,
        }
        optional = {
            "updatedAt": self.updated_at,
            "author": self.author,
            "image": self.image,
            "contentHtml": self.content_html,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data

    @classmethod
    def from_dict(cls, data: dict) -> Entry:
        """Rebuild an Entry from its snapshot JSON shape.

        Raises KeyError or ValueError if the record is incomplete or its
        dates are not canonical.
        """
        source = data["source"]
        if source not in VALID_SOURCES:
            raise ValueError(f"source '{source}' is not valid")
        published_at = data["publishedAt"]
        updated_at = data.get("updatedAt")
        if not _is_date_string(published_at):
            raise ValueError(f"publishedAt {published_at!r} is not a canonical date")
        if updated_at is not None and not _is_date_string(updated_at):
            raise ValueError(f"updatedAt {updated_at!r} is not a canonical date")
        return cls(
            id=str(data["id"]),
            source=source,
            slug=data["slug"],
            title=data["title"],
            summary=data.get("summary", data["title"]),
            url=data["url"],
            tags=tuple(Tag(raw=t["raw"], norm=t["norm"]) for t in data.get("tags", [])),
            published_at=published_at,
            updated_at=updated_at,
            author=data.get("author"),
            image=data.get("image"),
            content_html=data.get("contentHtml"),
        )


def _gist_title(raw: dict, gist_id: str) -> str:
    """Description, else the first file name, else the gist id."""
    description = (raw.get("description") or "").strip()
    if description:
        return description
    for name, info in (raw.get("files") or {}).items():
        filename = (info.get("filename") if isinstance(info, dict) else None) or name
        if filename and filename.strip():
            return filename.strip()
    return gist_id


def normalize_gist(raw: dict, now: str | None = None) -> Entry:
    """Transform one gist listing item into an Entry.

    Tags are the fixed ``gist`` tag plus the language of each file.
    Raises ValueError if no slug can be derived.
    """
    gist_id = str(raw.get("id") or "")
    title = _gist_title(raw, gist_id)
    description = (raw.get("description") or "").strip()

    languages = [
        info.get("language")
        for info in (raw.get("files") or {}).values()
        if isinstance(info, dict) and info.get("language")
    ]

    published_at = (
        to_canonical_date(raw.get("created_at"))
        or to_canonical_date(raw.get("updated_at"))
        or now
        or canonical_now()
    )
    owner = raw.get("owner") or {}

    return Entry(
        id=gist_id,
        source=SOURCE_API,
        slug=derive_slug(title, gist_id),
        title=title,
        summary=description or title,
        url=raw.get("html_url") or "",
        tags=build_tags([GIST_TAG, *languages]),
        published_at=published_at,
        updated_at=to_canonical_date(raw.get("updated_at")),
        author=owner.get("login") if isinstance(owner, dict) else None,
    )


def normalize_feed_item(item: FeedItem, now: str | None = None) -> Entry:
    """Transform one parsed feed item into an Entry.

    The title falls back to the link, and ``publishedAt`` falls back to now
    only when no date could be parsed. Raises ValueError if no slug can be
    derived.
    """
    item_id = item.id or item.link
    title = item.title or item.link
    summary = strip_html(item.description) if item.description else ""

    return Entry(
        id=item_id,
        source=SOURCE_FEED,
        slug=derive_slug(title, item_id),
        title=title,
        summary=summary or title,
        url=item.link,
        tags=build_tags([ZENN_TAG]),
        published_at=(
            to_canonical_date(item.pub_date_parsed)
            or to_canonical_date(item.pub_date)
            or now
            or canonical_now()
        ),
        content_html=item.content_html,
    )
