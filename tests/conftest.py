"""Shared test fixtures for the transcript_core test suite.

WHY: Provider, orchestrator and service tests all need a realistic watch
page, a throwaway cache file, and sample caption payloads. Centralizing
them keeps every test module on the same markup shapes.

HOW: make_watch_html builds a minimal watch page containing the ytcfg
bootstrap, the inline player response with captionTracks, and the
transcript panel endpoint token — each piece optional. cache_store opens
a CacheStore under tmp_path and closes it after the test.

RULES:
- No test touches the network: HTTP goes through httpx.MockTransport
- No test touches ~/.summarize: cache files live under tmp_path
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import pytest

from transcript_core.cache import CacheStore, create_cache_store

VIDEO_ID = "dQw4w9WgXcQ"
VIDEO_URL = "https://www.youtube.com/watch?v={}".format(VIDEO_ID)

SAMPLE_VTT = (
    "WEBVTT\n"
    "Kind: captions\n"
    "Language: en\n"
    "\n"
    "1\n"
    "00:00:01.000 --> 00:00:02.500 align:start position:0%\n"
    "Hello there\n"
    "\n"
    "2\n"
    "00:00:03.000 --> 00:00:04.000\n"
    "<c.colorE5E5E5>general</c> <00:00:03.500><c>kenobi</c>\n"
)

SAMPLE_JSON3: Dict[str, Any] = {
    "wireMagic": "pb3",
    "events": [
        {"tStartMs": 0, "dDurationMs": 90000, "id": 1, "wpWinPosId": 1},
        {"tStartMs": 1000, "dDurationMs": 1500, "segs": [{"utf8": "Hello "}, {"utf8": "there"}]},
        {"tStartMs": 3000, "dDurationMs": 1000, "segs": [{"utf8": "general kenobi"}]},
        {"tStartMs": 4000, "dDurationMs": 10, "segs": [{"utf8": "\n"}]},
    ],
}

DEFAULT_TRACKS: List[Dict[str, Any]] = [
    {
        "baseUrl": "https://www.youtube.com/api/timedtext?v={}&lang=en".format(VIDEO_ID),
        "languageCode": "en",
        "name": {"simpleText": "English"},
    },
]


def build_watch_html(
    api_key: Optional[str] = "test-api-key",
    params: Optional[str] = "test-transcript-params",
    caption_tracks: Optional[List[Dict[str, Any]]] = None,
) -> str:
    """Return watch page HTML with the requested pieces present."""
    parts = ["<html><head><script>"]
    if api_key:
        ytcfg = {
            "INNERTUBE_API_KEY": api_key,
            "INNERTUBE_CONTEXT": {"client": {"clientName": "WEB", "clientVersion": "2.20240101"}},
        }
        parts.append("ytcfg.set({});".format(json.dumps(ytcfg)))
    parts.append("</script></head><body><script>")
    player: Dict[str, Any] = {"videoDetails": {"videoId": VIDEO_ID}}
    if caption_tracks is not None:
        player["captions"] = {
            "playerCaptionsTracklistRenderer": {"captionTracks": caption_tracks},
        }
    parts.append("var ytInitialPlayerResponse = {};".format(json.dumps(player)))
    if params:
        data = {"engagementPanels": [{"getTranscriptEndpoint": {"params": params}}]}
        parts.append("var ytInitialData = {};".format(json.dumps(data)))
    parts.append("</script></body></html>")
    return "".join(parts)


@pytest.fixture
def make_watch_html():
    """Factory for watch page HTML (see build_watch_html)."""
    return build_watch_html


@pytest.fixture
def cache_path(tmp_path):
    """Cache file location in a not-yet-existing subdirectory."""
    return tmp_path / ".summarize" / "cache.sqlite"


@pytest.fixture
def cache_store(cache_path) -> CacheStore:
    """A 1 MiB cache store, closed after the test."""
    store = create_cache_store(cache_path, 1024 * 1024)
    yield store
    store.close()


@pytest.fixture
def sample_vtt() -> str:
    """Two-cue WebVTT file in the shape YouTube serves auto captions."""
    return SAMPLE_VTT


@pytest.fixture
def sample_json3() -> Dict[str, Any]:
    """json3 caption payload with a window event and a newline-only event."""
    return json.loads(json.dumps(SAMPLE_JSON3))


@pytest.fixture
def caption_tracks() -> List[Dict[str, Any]]:
    """A single manual English caption track."""
    return [dict(track) for track in DEFAULT_TRACKS]
