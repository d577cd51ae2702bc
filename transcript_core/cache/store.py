"""Persistent namespaced key/value cache with TTL and byte-budget eviction.

WHY: Transcript acquisition is slow (seconds), sometimes paid (Apify), and
sometimes rate-limited (YouTube). Re-running it for a link that was just
summarized wastes all three. A small persistent store keyed by
(namespace, key) makes repeated runs cheap and deterministic.

HOW: One SQLite table holds every entry with its payload, write time,
optional expiry, and size. Reads treat expired rows as absent and delete
them on the way out (lazy expiry). Every write recomputes the total size
and, when it exceeds the budget, deletes entries oldest-first by write
time until the store fits again.

RULES:
- ttl_ms=None means no expiry; expires_at = created_at + ttl_ms otherwise
- A row with expires_at <= now reads as absent
- Eviction order is created_at ascending, then insertion order,
  regardless of remaining TTL
- get_json never raises on bad payloads; it returns None
- sqlite3 / filesystem failures on open, read or write raise CacheIOError
- close() is idempotent; the store is a context manager
- Single process, single writer; no locking
"""

from __future__ import annotations

import json
import logging
import sqlite3
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

from transcript_core.cache.transcript_cache import TranscriptCache
from transcript_core.errors import CacheIOError

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS cache_entries (
    namespace  TEXT    NOT NULL,
    key        TEXT    NOT NULL,
    value      BLOB    NOT NULL,
    created_at INTEGER NOT NULL,
    expires_at INTEGER,
    size_bytes INTEGER NOT NULL,
    PRIMARY KEY (namespace, key)
);
CREATE INDEX IF NOT EXISTS idx_cache_entries_created_at ON cache_entries (created_at);
CREATE INDEX IF NOT EXISTS idx_cache_entries_expires_at ON cache_entries (expires_at);
"""


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class CacheEntry:
    """One stored record, as read back from the store.

    RULES:
    - created_at / expires_at are epoch milliseconds
    - expires_at is None for entries written without a TTL
    - size_bytes is the payload length in bytes
    """

    namespace: str
    key: str
    payload: bytes
    created_at: int
    expires_at: Optional[int]
    size_bytes: int

    def is_expired(self, now_ms: int) -> bool:
        return self.expires_at is not None and self.expires_at <= now_ms


@dataclass
class CacheStats:
    """Live entry counts and sizes, for the CLI's --cache-stats."""

    total_entries: int
    total_bytes: int
    max_bytes: int
    entries_by_namespace: Dict[str, int] = field(default_factory=dict)


class CacheStore:
    """SQLite-backed cache shared by transcript and other callers.

    WHY: Several layers (transcripts, extracted pages, summaries) want the
    same TTL + size-budget semantics on one file. Namespaces keep their
    keys apart; the budget is shared.

    HOW: Opens (and creates) the SQLite file on construction, purges
    expired rows once, and exposes text/JSON accessors. transcript_cache
    is the transcript specialization bound to this store.

    RULES:
    - Use as: with CacheStore(path, max_bytes) as store: ...
    - transcript_namespace partitions transcript records between callers
      sharing one file
    """

    def __init__(
        self,
        path: Union[str, Path],
        max_bytes: int,
        transcript_namespace: Optional[str] = None,
    ) -> None:
        if max_bytes <= 0:
            raise ValueError("max_bytes must be positive, got {}".format(max_bytes))
        self.path = Path(path) if str(path) != ":memory:" else None
        self.max_bytes = max_bytes
        self._conn: Optional[sqlite3.Connection] = self._open(path)
        self.transcript_cache = TranscriptCache(self, namespace=transcript_namespace)

        purged = self.purge_expired()
        if purged:
            logger.debug("Purged %d expired cache entries on open", purged)

    def _open(self, path: Union[str, Path]) -> sqlite3.Connection:
        try:
            if str(path) != ":memory:":
                Path(path).expanduser().parent.mkdir(parents=True, exist_ok=True)
                path = Path(path).expanduser()
            conn = sqlite3.connect(str(path))
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")
            conn.executescript(_SCHEMA)
        except (OSError, sqlite3.Error) as exc:
            raise CacheIOError("Cannot open cache at {}: {}".format(path, exc)) from exc
        return conn

    def __enter__(self) -> CacheStore:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        self.close()

    def _ensure_conn(self) -> sqlite3.Connection:
        """Return the open connection, raising if the store was closed."""
        if self._conn is None:
            raise RuntimeError("CacheStore is closed")
        return self._conn

    # ------------------------------------------------------------------
    # Generic entries
    # ------------------------------------------------------------------

    def _write(self, namespace: str, key: str, payload: bytes, ttl_ms: Optional[int]) -> None:
        conn = self._ensure_conn()
        now = _now_ms()
        expires_at = now + ttl_ms if ttl_ms is not None else None
        try:
            with conn:
                conn.execute(
                    "INSERT OR REPLACE INTO cache_entries "
                    "(namespace, key, value, created_at, expires_at, size_bytes) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (namespace, key, payload, now, expires_at, len(payload)),
                )
                self._enforce_budget(conn)
        except sqlite3.Error as exc:
            raise CacheIOError(
                "Cannot write cache entry {}/{}: {}".format(namespace, key, exc)
            ) from exc

    def _enforce_budget(self, conn: sqlite3.Connection) -> None:
        """Evict oldest entries until the total size fits max_bytes."""
        (total,) = conn.execute(
            "SELECT COALESCE(SUM(size_bytes), 0) FROM cache_entries"
        ).fetchone()
        if total <= self.max_bytes:
            return

        evicted = 0
        rows = conn.execute(
            "SELECT namespace, key, size_bytes FROM cache_entries "
            "ORDER BY created_at ASC, rowid ASC"
        ).fetchall()
        for namespace, key, size_bytes in rows:
            if total <= self.max_bytes:
                break
            conn.execute(
                "DELETE FROM cache_entries WHERE namespace = ? AND key = ?",
                (namespace, key),
            )
            total -= size_bytes
            evicted += 1
        logger.debug("Evicted %d cache entries (now %d/%d bytes)", evicted, total, self.max_bytes)

    def get_entry(
        self,
        namespace: str,
        key: str,
        include_expired: bool = False,
    ) -> Optional[CacheEntry]:
        """Read one entry, or None when it is missing or expired.

        RULES:
        - Expired entries are deleted on read unless include_expired is True
        - include_expired=True returns the stale entry without deleting it
        """
        conn = self._ensure_conn()
        try:
            row = conn.execute(
                "SELECT value, created_at, expires_at, size_bytes FROM cache_entries "
                "WHERE namespace = ? AND key = ?",
                (namespace, key),
            ).fetchone()
        except sqlite3.Error as exc:
            raise CacheIOError("Cannot read cache entry {}/{}: {}".format(namespace, key, exc)) from exc
        if row is None:
            return None

        value, created_at, expires_at, size_bytes = row
        entry = CacheEntry(
            namespace=namespace,
            key=key,
            payload=bytes(value),
            created_at=created_at,
            expires_at=expires_at,
            size_bytes=size_bytes,
        )
        if entry.is_expired(_now_ms()) and not include_expired:
            logger.debug("Cache entry %s/%s expired", namespace, key)
            self.delete(namespace, key)
            return None
        return entry

    def set_text(self, namespace: str, key: str, value: str, ttl_ms: Optional[int]) -> None:
        self._write(namespace, key, value.encode("utf-8"), ttl_ms)

    def get_text(self, namespace: str, key: str) -> Optional[str]:
        entry = self.get_entry(namespace, key)
        if entry is None:
            return None
        try:
            return entry.payload.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning("Cache entry %s/%s is not valid UTF-8; ignoring", namespace, key)
            return None

    def set_json(self, namespace: str, key: str, value: Any, ttl_ms: Optional[int]) -> None:
        self.set_text(namespace, key, json.dumps(value, ensure_ascii=False), ttl_ms)

    def get_json(self, namespace: str, key: str) -> Any:
        """Return the decoded JSON value, or None when missing, expired or corrupt."""
        text = self.get_text(namespace, key)
        if text is None:
            return None
        try:
            return json.loads(text)
        except ValueError:
            logger.debug("Cache entry %s/%s holds invalid JSON", namespace, key)
            return None

    def delete(self, namespace: str, key: str) -> bool:
        conn = self._ensure_conn()
        try:
            with conn:
                cursor = conn.execute(
                    "DELETE FROM cache_entries WHERE namespace = ? AND key = ?",
                    (namespace, key),
                )
        except sqlite3.Error as exc:
            raise CacheIOError("Cannot delete cache entry {}/{}: {}".format(namespace, key, exc)) from exc
        return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def purge_expired(self) -> int:
        """Delete every expired entry; returns how many were removed."""
        conn = self._ensure_conn()
        try:
            with conn:
                cursor = conn.execute(
                    "DELETE FROM cache_entries WHERE expires_at IS NOT NULL AND expires_at <= ?",
                    (_now_ms(),),
                )
        except sqlite3.Error as exc:
            raise CacheIOError("Cannot purge expired cache entries: {}".format(exc)) from exc
        return cursor.rowcount

    def clear(self) -> None:
        conn = self._ensure_conn()
        try:
            with conn:
                conn.execute("DELETE FROM cache_entries")
        except sqlite3.Error as exc:
            raise CacheIOError("Cannot clear cache: {}".format(exc)) from exc
        logger.info("Cleared cache %s", self.path or ":memory:")

    def stats(self) -> CacheStats:
        """Count live (unexpired) entries per namespace."""
        conn = self._ensure_conn()
        try:
            rows = conn.execute(
                "SELECT namespace, COUNT(*), COALESCE(SUM(size_bytes), 0) FROM cache_entries "
                "WHERE expires_at IS NULL OR expires_at > ? "
                "GROUP BY namespace ORDER BY namespace",
                (_now_ms(),),
            ).fetchall()
        except sqlite3.Error as exc:
            raise CacheIOError("Cannot read cache stats: {}".format(exc)) from exc

        by_namespace = {namespace: count for namespace, count, _ in rows}
        return CacheStats(
            total_entries=sum(by_namespace.values()),
            total_bytes=sum(size for _, _, size in rows),
            max_bytes=self.max_bytes,
            entries_by_namespace=by_namespace,
        )

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
