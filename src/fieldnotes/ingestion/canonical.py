"""Canonicalization helpers — slugs, tags, and UTC date strings.

All functions here are pure. Slugs and canonical dates are plain ``str``
values; validity is enforced by the constructing functions, which either
return None (``slugify``, ``to_canonical_date``) or raise ``ValueError``
(``derive_slug``).
"""

from __future__ import annotations

import re
import time
import unicodedata
from datetime import date, datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Iterable, NamedTuple

SLUG_MAX_LENGTH = 80

_SEPARATOR_RE = re.compile(r"[\s_]+")
_NON_SLUG_RE = re.compile(r"[^a-z0-9-]+")
_HYPHEN_RUN_RE = re.compile(r"-+")
_CANONICAL_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


# --- Slugs ---


def _slug_token(text: str) -> str:
    text = text.strip().lower()
    text = _SEPARATOR_RE.sub("-", text)
    text = _NON_SLUG_RE.sub("-", text)
    text = _HYPHEN_RUN_RE.sub("-", text)
    return text.strip("-")


def slugify(text: str) -> str | None:
    """Convert free text into a URL-safe token, or None if nothing survives."""
    token = _slug_token(unicodedata.normalize("NFKC", text))
    return token or None


def truncate_slug(slug: str, max_length: int = SLUG_MAX_LENGTH) -> str:
    """Shorten a slug to ``max_length`` without cutting inside a word.

    Cuts at the last hyphen at or before the limit. Falls back to a hard cut
    when the prefix contains no usable hyphen.
    """
    if max_length <= 0:
        raise ValueError("max_length must be positive")
    if len(slug) <= max_length:
        return slug
    # A hyphen sitting exactly at the limit is also a word boundary.
    if slug[max_length] == "-":
        return slug[:max_length].rstrip("-") or slug[:max_length]
    cut = slug[:max_length]
    last_dash = cut.rfind("-")
    trimmed = (cut[:last_dash] if last_dash > 0 else cut).rstrip("-")
    return trimmed or cut


def derive_slug(title: str, hint: str, max_length: int = SLUG_MAX_LENGTH) -> str:
    """Build a slug from a title plus a uniqueness hint (usually the item id).

    The hint is appended as ``-<hint>`` unless the title slug already ends with
    it. If the title yields nothing the hint alone is used.

    Raises ValueError if neither title nor hint produce a token.
    """
    title_token = slugify(title or "")
    hint_token = slugify(hint or "")
    if title_token is None and hint_token is None:
        raise ValueError(
            f"Cannot derive slug: title {title!r} and hint {hint!r} are both empty"
        )
    if title_token is None:
        composed = hint_token
    elif hint_token is None or title_token.endswith(hint_token):
        composed = title_token
    else:
        composed = f"{title_token}-{hint_token}"
    return truncate_slug(composed, max_length)


# --- Tags ---


class Tag(NamedTuple):
    """A tag as written by the source plus its normalized form."""

    raw: str
    norm: str


def normalize_tag(raw: str) -> str:
    """Normalize a tag: strip diacritics, lowercase, hyphenate separators."""
    decomposed = unicodedata.normalize("NFD", raw.strip())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _slug_token(unicodedata.normalize("NFKC", stripped))


def build_tags(raws: Iterable[str]) -> tuple[Tag, ...]:
    """Build tags from raw strings, dropping empties and normalized duplicates."""
    seen: set[str] = set()
    tags: list[Tag] = []
    for raw in raws:
        norm = normalize_tag(raw)
        if norm and norm not in seen:
            seen.add(norm)
            tags.append(Tag(raw=raw, norm=norm))
    return tuple(tags)


# --- Dates ---


def _format_utc(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    # strftime("%Y") does not zero-pad years before 1000 on every platform
    return (
        f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}"
        f"T{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d}.{dt.microsecond // 1000:03d}Z"
    )


def _parse_date_string(value: str) -> datetime | None:
    text = value.strip()
    if not text:
        return None
    iso = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        return datetime.fromisoformat(iso)
    except ValueError:
        pass
    try:
        return parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        return None


def to_canonical_date(value: object) -> str | None:
    """Convert a date-like value to ``YYYY-MM-DDTHH:MM:SS.mmmZ`` (UTC).

    Accepts ISO-8601 and RFC-822 strings, epoch seconds, ``datetime``,
    ``date`` and ``time.struct_time``. Naive values are taken as UTC.
    Returns None when the value cannot be interpreted.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, datetime):
            dt = value
        elif isinstance(value, date):
            dt = datetime(value.year, value.month, value.day)
        elif isinstance(value, time.struct_time):
            dt = datetime(*value[:6], tzinfo=timezone.utc)
        elif isinstance(value, (int, float)):
            dt = datetime.fromtimestamp(value, tz=timezone.utc)
        elif isinstance(value, str):
            dt = _parse_date_string(value)
            if dt is None:
                return None
        else:
            return None
        return _format_utc(dt)
    except (OverflowError, OSError, ValueError):
        return None


def is_canonical_date(value: str) -> bool:
    """Check that ``value`` is in the strict canonical UTC format."""
    return bool(_CANONICAL_DATE_RE.match(value))


def canonical_now() -> str:
    """Current time as a canonical date string."""
    return _format_utc(datetime.now(timezone.utc))
