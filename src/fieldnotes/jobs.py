"""Fetch job — fan out to sources, merge, dedupe slugs, sort, and persist."""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

import httpx

import fieldnotes.ingestion  # noqa: F401  — triggers adapter registration
from fieldnotes.config import Config
from fieldnotes.ingestion.adapter import SourceAdapter, SourceConfigError
from fieldnotes.ingestion.canonical import to_canonical_date
from fieldnotes.ingestion.dedup import resolve_slug_collisions, sort_entries
from fieldnotes.ingestion.normalize import Entry
from fieldnotes.ingestion.registry import get_adapter_class, registered_types
from fieldnotes.storage.cache import ConditionalCache
from fieldnotes.storage.snapshot import load_entries, write_entries, write_tag_index

logger = logging.getLogger(__name__)

ALL_SOURCES = "all"


def select_sources(source: str) -> list[str]:
    """Resolve a source selection ("all" or one name) to adapter names."""
    if source == ALL_SOURCES:
        return registered_types()
    if get_adapter_class(source) is None:
        raise ValueError(
            f"Unknown source '{source}'; expected one of: "
            f"{', '.join([ALL_SOURCES, *registered_types()])}"
        )
    return [source]


def filter_since(entries: Sequence[Entry], since: str | None) -> list[Entry]:
    """Keep entries published at or after ``since``.

    The cutoff is canonicalized like entry dates. An unparsable cutoff
    disables filtering.
    """
    if not since:
        return list(entries)
    cutoff = to_canonical_date(since)
    if cutoff is None:
        logger.warning("Ignoring unparsable since cutoff %r", since)
        return list(entries)
    kept = [e for e in entries if e.published_at >= cutoff]
    logger.info("Since %s: kept %d of %d entries", cutoff, len(kept), len(entries))
    return kept


async def _fetch_source(
    adapter: SourceAdapter, *, force: bool, limit: int | None
) -> list[Entry] | None:
    """Fetch and normalize one source. Failures are logged, never raised.

    Returns None when the source reports its content as not modified.
    """
    try:
        raw_items = await adapter.fetch(force=force, limit=limit)
        if raw_items is None:
            return None
        entries = adapter.normalize(raw_items)
    except SourceConfigError as exc:
        adapter.discard()
        logger.warning("Skipping source '%s': %s", adapter.name, exc)
        return []
    except Exception:
        adapter.discard()
        logger.exception("Source '%s' failed; skipping it", adapter.name)
        return []
    logger.info("Source '%s' produced %d entries", adapter.name, len(entries))
    return entries


def build_adapters(
    config: Config, client: httpx.AsyncClient, source: str = ALL_SOURCES
) -> list[SourceAdapter]:
    """Instantiate and configure the adapters for a source selection."""
    cache = ConditionalCache(config.cache_path)
    adapters: list[SourceAdapter] = []
    for name in select_sources(source):
        adapter = get_adapter_class(name)(cache, client)
        adapter.configure(config.source_config(name))
        adapters.append(adapter)
    return adapters


def carry_forward(previous: Sequence[Entry], entry_source: str) -> list[Entry]:
    """Previous snapshot entries that came from ``entry_source``."""
    return [e for e in previous if e.source == entry_source]


async def fetch_all(
    adapters: Sequence[SourceAdapter],
    previous: Sequence[Entry],
    *,
    force: bool = False,
    limit: int | None = None,
) -> list[Entry]:
    """Run the adapters concurrently and concatenate in registration order.

    Sources that were not modified, and registered sources that were not
    selected, contribute their entries from the previous snapshot.
    """
    results = await asyncio.gather(
        *(_fetch_source(a, force=force, limit=limit) for a in adapters)
    )
    by_name = {a.name: (a, r) for a, r in zip(adapters, results)}

    merged: list[Entry] = []
    for name in registered_types():
        if name in by_name:
            adapter, entries = by_name[name]
            if entries is not None:
                merged.extend(entries)
                continue
            reason = "not modified"
            entry_source = adapter.entry_source
        else:
            reason = "not selected"
            entry_source = get_adapter_class(name).entry_source
        kept = carry_forward(previous, entry_source)
        logger.info("Source '%s' %s; keeping %d previous entries", name, reason, len(kept))
        merged.extend(kept)
    return merged


def merge_with_previous(
    entries: Sequence[Entry], previous: Sequence[Entry]
) -> list[Entry]:
    """Return ``entries``, or the previous snapshot when nothing was fetched.

    Keeps the last good data when every source was unchanged or failed. This
    also means a pipeline whose sources all keep failing goes on republishing
    the old snapshot.
    """
    if entries:
        return list(entries)
    logger.warning(
        "No entries fetched; reusing %d entries from previous snapshot", len(previous)
    )
    return list(previous)


async def run_fetch(
    config: Config,
    *,
    source: str = ALL_SOURCES,
    force: bool = False,
    limit: int | None = None,
    since: str | None = None,
    client: httpx.AsyncClient | None = None,
) -> list[Entry]:
    """Fetch, merge, dedupe, sort, and persist entries for one run.

    Validators are stored only after the snapshot is written, so a failed
    run is retried in full next time. Returns the persisted entries.
    Persistence errors propagate.
    """
    previous = load_entries(config.entries_path)

    if client is None:
        async with httpx.AsyncClient(
            timeout=config.http_timeout_seconds,
            follow_redirects=True,
            headers={"User-Agent": config.user_agent},
        ) as owned:
            adapters = build_adapters(config, owned, source)
            fetched = await fetch_all(adapters, previous, force=force, limit=limit)
    else:
        adapters = build_adapters(config, client, source)
        fetched = await fetch_all(adapters, previous, force=force, limit=limit)

    entries = merge_with_previous(fetched, previous)
    entries = filter_since(entries, since)
    entries = resolve_slug_collisions(entries)
    entries = sort_entries(entries)

    write_entries(config.entries_path, entries)
    write_tag_index(config.tags_path, entries)
    for adapter in adapters:
        adapter.commit()
    logger.info("Fetch complete: %d entries persisted", len(entries))
    return entries
