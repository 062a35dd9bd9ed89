"""Ingestion pipeline — source fetching, normalization, and slug deduplication."""

from fieldnotes.ingestion.gist_adapter import GistAdapter
from fieldnotes.ingestion.registry import register_adapter
from fieldnotes.ingestion.zenn_adapter import ZennAdapter

register_adapter("gist", GistAdapter)
register_adapter("zenn", ZennAdapter)
