from fieldnotes.storage.cache import ConditionalCache

__all__ = ["ConditionalCache"]
