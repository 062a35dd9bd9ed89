"""Collection-level passes — slug collision resolution and deterministic ordering."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import replace
from typing import Sequence

from fieldnotes.ingestion.normalize import Entry

logger = logging.getLogger(__name__)


def resolve_slug_collisions(entries: Sequence[Entry]) -> list[Entry]:
    """Make every slug unique, keeping the current order of entries.

    The first entry with a given slug keeps it. Each later entry with the same
    slug gets ``-<n>`` appended, where ``n`` counts earlier occurrences
    (1-based). A suffixed candidate that is already taken, either by an
    earlier entry or by another entry's original slug, is skipped in favour of
    the next index.
    """
    originals = Counter(entry.slug for entry in entries)
    taken: set[str] = set()
    occurrences: Counter[str] = Counter()
    resolved: list[Entry] = []

    for entry in entries:
        base = entry.slug
        if base not in taken:
            taken.add(base)
            resolved.append(entry)
            continue

        n = occurrences[base]
        while True:
            n += 1
            candidate = f"{base}-{n}"
            if candidate not in taken and candidate not in originals:
                break
        occurrences[base] = n
        taken.add(candidate)
        logger.debug("Slug collision: %s (%s) renamed to %s", base, entry.id, candidate)
        resolved.append(replace(entry, slug=candidate))

    return resolved


def sort_entries(entries: Sequence[Entry]) -> list[Entry]:
    """Order entries by ``published_at`` descending, then ``id`` ascending.

    Canonical dates share one fixed format, so string comparison is
    chronological.
    """
    by_id = sorted(entries, key=lambda e: e.id)
    return sorted(by_id, key=lambda e: e.published_at, reverse=True)
