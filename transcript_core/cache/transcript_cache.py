"""Transcript specialization of the cache store.

WHY: A transcript lookup is keyed by the media URL, but the same URL may be
fetched under different policies (web-only vs. yt-dlp) by callers sharing
one cache file. Records also need to survive schema drift: a record written
by an older version, or edited by hand, must read back as "no transcript"
rather than crash the caller.

HOW: Keys are the SHA-256 of a canonical JSON object holding the URL, the
caller's namespace and a format version. Payloads are JSON objects
{content, source, metadata, service, resourceKey}, validated with
jsonschema on the way out.

RULES:
- Same url + namespace → same key; different namespace → different key
- A payload that fails to decode or validate reads back as
  content=None, source=None (never raises)
- A source outside KNOWN_SOURCES reads back as None
- expired is True only when allow_expired surfaced a stale record
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional

import jsonschema

from transcript_core.core.ir import KNOWN_SOURCES
from transcript_core.errors import CacheCorruption

if TYPE_CHECKING:
    from transcript_core.cache.store import CacheStore

logger = logging.getLogger(__name__)

TRANSCRIPT_NAMESPACE = "transcript"
TRANSCRIPT_FORMAT_VERSION = 1

TRANSCRIPT_RECORD_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "content": {"type": ["string", "null"]},
        "source": {"type": ["string", "null"]},
        "metadata": {"type": ["object", "null"]},
        "service": {"type": ["string", "null"]},
        "resourceKey": {"type": ["string", "null"]},
    },
}


def build_transcript_cache_key(url: str, namespace: Optional[str] = None) -> str:
    """Return the hex SHA-256 key for a transcript of url under namespace."""
    canonical = json.dumps(
        {"formatVersion": TRANSCRIPT_FORMAT_VERSION, "namespace": namespace, "url": url},
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _decode_record(payload: bytes) -> Dict[str, Any]:
    try:
        data = json.loads(payload.decode("utf-8"))
        jsonschema.validate(data, TRANSCRIPT_RECORD_SCHEMA)
    except (UnicodeDecodeError, ValueError, jsonschema.ValidationError) as exc:
        raise CacheCorruption(str(exc).splitlines()[0]) from exc
    return data


@dataclass(frozen=True)
class TranscriptCacheRecord:
    """A transcript record as read back from the cache."""

    content: Optional[str]
    source: Optional[str]
    expired: bool
    metadata: Optional[Dict[str, Any]] = None


class TranscriptCache:
    """Reads and writes transcript records in the "transcript" namespace."""

    def __init__(self, store: CacheStore, namespace: Optional[str] = None) -> None:
        self._store = store
        self.namespace = namespace

    def key_for(self, url: str) -> str:
        return build_transcript_cache_key(url, self.namespace)

    def set(
        self,
        *,
        url: str,
        service: str,
        resource_key: Optional[str],
        ttl_ms: Optional[int],
        content: Optional[str],
        source: Optional[str],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Store a transcript record for url.

        Raises:
            CacheIOError: If the store cannot be written.
        """
        payload = {
            "content": content,
            "source": source,
            "metadata": metadata,
            "service": service,
            "resourceKey": resource_key,
        }
        self._store.set_json(TRANSCRIPT_NAMESPACE, self.key_for(url), payload, ttl_ms)
        logger.debug("Cached transcript for %s (source=%s, ttl=%s)", url, source, ttl_ms)

    def get(self, *, url: str, allow_expired: bool = False) -> Optional[TranscriptCacheRecord]:
        """Return the record for url, or None when there is none.

        RULES:
        - allow_expired=False: expired records read as None (and are deleted)
        - allow_expired=True: an expired record comes back with expired=True
        """
        entry = self._store.get_entry(
            TRANSCRIPT_NAMESPACE, self.key_for(url), include_expired=allow_expired
        )
        if entry is None:
            return None
        expired = entry.is_expired(int(time.time() * 1000))

        try:
            data = _decode_record(entry.payload)
        except CacheCorruption as exc:
            logger.warning("Ignoring corrupt transcript cache record for %s: %s", url, exc)
            return TranscriptCacheRecord(content=None, source=None, expired=expired)

        source = data.get("source")
        if source is not None and source not in KNOWN_SOURCES:
            logger.debug("Unknown transcript source %r in cache; dropping it", source)
            source = None

        return TranscriptCacheRecord(
            content=data.get("content"),
            source=source,
            expired=expired,
            metadata=data.get("metadata"),
        )

    def delete(self, url: str) -> bool:
        return self._store.delete(TRANSCRIPT_NAMESPACE, self.key_for(url))
