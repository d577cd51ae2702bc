"""Persistent cache: namespaced SQLite store plus the transcript specialization.

Use create_cache_store() to open one; it is a context manager and exposes
the transcript cache as store.transcript_cache.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from transcript_core.cache.store import CacheEntry, CacheStats, CacheStore
from transcript_core.cache.transcript_cache import (
    TRANSCRIPT_NAMESPACE,
    TranscriptCache,
    TranscriptCacheRecord,
    build_transcript_cache_key,
)

__all__ = [
    "CacheEntry",
    "CacheStats",
    "CacheStore",
    "TRANSCRIPT_NAMESPACE",
    "TranscriptCache",
    "TranscriptCacheRecord",
    "build_transcript_cache_key",
    "create_cache_store",
]


def create_cache_store(
    path: Union[str, Path],
    max_bytes: int,
    transcript_namespace: Optional[str] = None,
) -> CacheStore:
    """Open (creating if needed) the cache file at path.

    Raises:
        CacheIOError: If the file or its directory cannot be created or opened.
        ValueError: If max_bytes is not positive.
    """
    return CacheStore(path, max_bytes, transcript_namespace=transcript_namespace)
