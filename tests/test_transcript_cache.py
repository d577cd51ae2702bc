"""Tests for the transcript cache layered on the store.

WHY: Transcript records are read back by code that trusts their shape.
Keys must separate callers sharing one file, and corrupt or foreign
records must degrade to "no transcript" instead of raising.
"""

from __future__ import annotations

import pytest

from transcript_core.cache import (
    TRANSCRIPT_NAMESPACE,
    TranscriptCache,
    build_transcript_cache_key,
    create_cache_store,
)

URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


def _set(cache, url=URL, **overrides):
    fields = dict(
        url=url,
        service="youtube",
        resource_key="dQw4w9WgXcQ",
        ttl_ms=60000,
        content="hello world",
        source="youtubei",
        metadata=None,
    )
    fields.update(overrides)
    cache.set(**fields)


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------


class TestCacheKey:
    """Keys are deterministic SHA-256 digests of url + namespace."""

    def test_deterministic(self):
        assert build_transcript_cache_key(URL, "ns") == build_transcript_cache_key(URL, "ns")

    def test_hex_sha256(self):
        key = build_transcript_cache_key(URL)
        assert len(key) == 64
        int(key, 16)

    @pytest.mark.parametrize("a, b", [
        (None, ""),
        ("yt:web", "yt:yt-dlp"),
        (None, "yt:web"),
    ])
    def test_namespaces_differ(self, a, b):
        assert build_transcript_cache_key(URL, a) != build_transcript_cache_key(URL, b)

    def test_urls_differ(self):
        assert build_transcript_cache_key(URL) != build_transcript_cache_key(URL + "&t=1")


# ---------------------------------------------------------------------------
# Read / write
# ---------------------------------------------------------------------------


class TestTranscriptCacheReadWrite:
    """set/get round-trip and shape validation."""

    def test_round_trip(self, cache_store):
        cache = cache_store.transcript_cache
        metadata = {"segments": [{"startMs": 0, "endMs": 1000, "text": "hello world"}]}
        _set(cache, metadata=metadata)
        record = cache.get(url=URL)
        assert record.content == "hello world"
        assert record.source == "youtubei"
        assert record.metadata == metadata
        assert record.expired is False

    def test_stored_payload_shape(self, cache_store):
        cache = cache_store.transcript_cache
        _set(cache)
        payload = cache_store.get_json(TRANSCRIPT_NAMESPACE, cache.key_for(URL))
        assert payload == {
            "content": "hello world",
            "source": "youtubei",
            "metadata": None,
            "service": "youtube",
            "resourceKey": "dQw4w9WgXcQ",
        }

    def test_missing(self, cache_store):
        assert cache_store.transcript_cache.get(url=URL) is None

    def test_negative_record(self, cache_store):
        cache = cache_store.transcript_cache
        _set(cache, content=None, source="unavailable")
        record = cache.get(url=URL)
        assert record.content is None
        assert record.source == "unavailable"

    def test_unknown_source_normalized(self, cache_store):
        cache = cache_store.transcript_cache
        cache_store.set_json(
            TRANSCRIPT_NAMESPACE,
            cache.key_for(URL),
            {"content": "text", "source": "somewhere-else", "metadata": None},
            None,
        )
        record = cache.get(url=URL)
        assert record.content == "text"
        assert record.source is None
        assert record.expired is False

    def test_malformed_json(self, cache_store):
        cache = cache_store.transcript_cache
        cache_store.set_text(TRANSCRIPT_NAMESPACE, cache.key_for(URL), "{not json", None)
        record = cache.get(url=URL)
        assert record.content is None
        assert record.source is None

    @pytest.mark.parametrize("payload", [
        '"just a string"',
        '[1, 2, 3]',
        '{"content": 42, "source": "apify"}',
        '{"content": "x", "source": ["apify"]}',
        '{"content": "x", "source": "apify", "metadata": "nope"}',
    ])
    def test_schema_invalid(self, cache_store, payload):
        cache = cache_store.transcript_cache
        cache_store.set_text(TRANSCRIPT_NAMESPACE, cache.key_for(URL), payload, None)
        record = cache.get(url=URL)
        assert record.content is None
        assert record.source is None

    def test_delete(self, cache_store):
        cache = cache_store.transcript_cache
        _set(cache)
        assert cache.delete(URL) is True
        assert cache.get(url=URL) is None

    def test_clear_removes_transcripts(self, cache_store):
        _set(cache_store.transcript_cache)
        cache_store.clear()
        assert cache_store.transcript_cache.get(url=URL) is None


# ---------------------------------------------------------------------------
# Expiry
# ---------------------------------------------------------------------------


class TestTranscriptCacheExpiry:
    """allow_expired surfaces stale records; the default hides them."""

    def test_expired_hidden_by_default(self, cache_store):
        _set(cache_store.transcript_cache, ttl_ms=-10)
        assert cache_store.transcript_cache.get(url=URL) is None

    def test_allow_expired(self, cache_store):
        cache = cache_store.transcript_cache
        _set(cache, ttl_ms=-10)
        record = cache.get(url=URL, allow_expired=True)
        assert record.content == "hello world"
        assert record.expired is True

    def test_allow_expired_on_fresh_record(self, cache_store):
        cache = cache_store.transcript_cache
        _set(cache)
        assert cache.get(url=URL, allow_expired=True).expired is False


# ---------------------------------------------------------------------------
# Namespaces
# ---------------------------------------------------------------------------


class TestTranscriptNamespaces:
    """Callers with different namespaces never see each other's records."""

    def test_isolated_in_one_file(self, cache_path):
        with create_cache_store(cache_path, 1024 * 1024, transcript_namespace="yt:web") as web:
            _set(web.transcript_cache, content="web transcript")

        with create_cache_store(cache_path, 1024 * 1024, transcript_namespace="yt:yt-dlp") as ytdlp:
            assert ytdlp.transcript_cache.get(url=URL) is None
            _set(ytdlp.transcript_cache, content="yt-dlp transcript", source="yt-dlp")
            assert ytdlp.stats().entries_by_namespace == {"transcript": 2}

        with create_cache_store(cache_path, 1024 * 1024, transcript_namespace="yt:web") as web:
            assert web.transcript_cache.get(url=URL).content == "web transcript"

    def test_default_namespace_differs_from_empty(self, cache_store):
        default = cache_store.transcript_cache
        empty = TranscriptCache(cache_store, namespace="")
        _set(default)
        assert empty.get(url=URL) is None


class TestRecordDecoding:

    def test_corrupt_payload_raises_cache_corruption(self):
        from transcript_core.cache.transcript_cache import _decode_record
        from transcript_core.errors import CacheCorruption

        with pytest.raises(CacheCorruption):
            _decode_record(b"\xff\xfe")
        with pytest.raises(CacheCorruption):
            _decode_record(b'{"content": 1}')

    def test_valid_payload(self):
        from transcript_core.cache.transcript_cache import _decode_record

        assert _decode_record(b'{"content": "x", "source": null}') == {"content": "x", "source": None}
