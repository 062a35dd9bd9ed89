"""Entry snapshot and tag index persistence (JSON files)."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections import Counter
from pathlib import Path
from typing import Sequence

from fieldnotes.ingestion.normalize import Entry

logger = logging.getLogger(__name__)


def _write_json_atomic(path: str | Path, data: object) -> None:
    """Write pretty-printed UTF-8 JSON via a temp file and an atomic rename."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
    fd, tmp_name = tempfile.mkstemp(
        dir=target.parent, prefix=f".{target.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, target)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def load_entries(path: str | Path) -> list[Entry]:
    """Load the previously persisted snapshot.

    A missing file is an empty snapshot. Unreadable JSON is logged and also
    treated as empty. Individual malformed records are skipped.
    """
    target = Path(path)
    try:
        data = json.loads(target.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return []
    except ValueError:
        logger.warning("Snapshot %s is not valid JSON; ignoring it", target)
        return []
    if not isinstance(data, list):
        logger.warning("Snapshot %s is not a JSON array; ignoring it", target)
        return []

    entries: list[Entry] = []
    for record in data:
        try:
            entries.append(Entry.from_dict(record))
        except (KeyError, TypeError, ValueError):
            logger.warning("Skipping malformed snapshot record: %r", record)
    return entries


def write_entries(path: str | Path, entries: Sequence[Entry]) -> None:
    """Replace the snapshot with ``entries``, in the order given."""
    _write_json_atomic(path, [entry.to_dict() for entry in entries])
    logger.info("Wrote %d entries to %s", len(entries), path)


def build_tag_index(entries: Sequence[Entry]) -> list[dict]:
    """Count tag usage across entries.

    Each normalized tag keeps the first raw spelling seen. Ordered by count
    descending, then normalized tag ascending.
    """
    counts: Counter[str] = Counter()
    raw_by_norm: dict[str, str] = {}
    for entry in entries:
        for tag in entry.tags:
            counts[tag.norm] += 1
            raw_by_norm.setdefault(tag.norm, tag.raw)
    ordered = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    return [
        {"norm": norm, "raw": raw_by_norm[norm], "count": count}
        for norm, count in ordered
    ]


def write_tag_index(path: str | Path, entries: Sequence[Entry]) -> None:
    """Write the tag index derived from ``entries``."""
    index = build_tag_index(entries)
    _write_json_atomic(path, index)
    logger.info("Wrote %d tags to %s", len(index), path)
