"""YouTube URL and page helpers shared by the native providers.

WHY: The native providers read their inputs out of the watch page HTML —
the Innertube bootstrap config (ytcfg), the inline player response with
its caption tracks, and the transcript panel's endpoint token. Those live
inside <script> blocks as JavaScript object literals, not as clean JSON
documents, so they have to be cut out by bracket matching.

HOW: extract_balanced_json() scans from a marker to the matching closing
bracket while respecting string literals and escapes, then json.loads the
slice. Callers look for specific markers ("ytcfg.set", "captionTracks",
"getTranscriptEndpoint").

RULES:
- Every helper returns None on malformed input; nothing raises
- Video ids are exactly 11 characters of [A-Za-z0-9_-]
- Responses prefixed with the ")]}'" anti-XSSI guard are accepted
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, urlparse

_VIDEO_ID_RE = re.compile(r"^[A-Za-z0-9_-]{11}$")
_YOUTUBE_HOSTS = frozenset({
    "youtube.com",
    "www.youtube.com",
    "m.youtube.com",
    "music.youtube.com",
    "youtube-nocookie.com",
    "www.youtube-nocookie.com",
})
_PATH_PREFIXES = ("/shorts/", "/embed/", "/live/", "/v/")

_YTCFG_SET_TOKEN = "ytcfg.set"
_YTCFG_VAR_TOKEN = "var ytcfg"
_CAPTION_TRACKS_TOKEN = '"captionTracks":'
_TRANSCRIPT_PARAMS_RE = re.compile(
    r'"getTranscriptEndpoint"\s*:\s*\{\s*"params"\s*:\s*"([^"]+)"'
)
_XSSI_PREFIX = ")]}'"


def is_youtube_url(url: str) -> bool:
    try:
        host = (urlparse(url).hostname or "").lower()
    except ValueError:
        return False
    return host in _YOUTUBE_HOSTS or host == "youtu.be"


def extract_youtube_video_id(url: str) -> Optional[str]:
    """Resolve the 11-character video id from a YouTube URL.

    RULES:
    - watch?v=ID, youtu.be/ID, /shorts/ID, /embed/ID, /live/ID, /v/ID
    - Non-YouTube hosts and malformed ids → None
    """
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return None
    host = (parsed.hostname or "").lower()

    candidate: Optional[str] = None
    if host == "youtu.be":
        candidate = parsed.path.lstrip("/").split("/")[0]
    elif host in _YOUTUBE_HOSTS:
        if parsed.path == "/watch":
            values = parse_qs(parsed.query).get("v")
            candidate = values[0] if values else None
        else:
            for prefix in _PATH_PREFIXES:
                if parsed.path.startswith(prefix):
                    candidate = parsed.path[len(prefix):].split("/")[0]
                    break

    if candidate and _VIDEO_ID_RE.match(candidate):
        return candidate
    return None


def sanitize_youtube_json_response(text: str) -> str:
    """Strip the ")]}'" guard YouTube prepends to some JSON responses."""
    trimmed = text.lstrip()
    if trimmed.startswith(_XSSI_PREFIX):
        return trimmed[len(_XSSI_PREFIX):]
    return trimmed


def extract_balanced_json(source: str, start_at: int, opener: str = "{") -> Optional[str]:
    """Return the bracket-balanced literal that starts at or after start_at.

    HOW: Finds the first opener, then tracks depth while skipping over
    quoted strings (single or double quotes, with backslash escapes).
    """
    closer = "}" if opener == "{" else "]"
    start = source.find(opener, start_at)
    if start < 0:
        return None

    depth = 0
    quote: Optional[str] = None
    escaping = False
    for i in range(start, len(source)):
        ch = source[i]
        if quote:
            if escaping:
                escaping = False
            elif ch == "\\":
                escaping = True
            elif ch == quote:
                quote = None
            continue
        if ch in ('"', "'"):
            quote = ch
        elif ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return source[start:i + 1]
    return None


def _loads_object(raw: Optional[str]) -> Optional[Dict[str, Any]]:
    if raw is None:
        return None
    try:
        parsed = json.loads(raw)
    except (ValueError, RecursionError):
        return None
    return parsed if isinstance(parsed, dict) else None


def extract_youtube_bootstrap_config(html: str) -> Optional[Dict[str, Any]]:
    """Find the ytcfg bootstrap object in a watch page.

    HOW: Tries every "ytcfg.set({...})" call until one parses, then the
    older "var ytcfg = {...}" form.
    """
    source = sanitize_youtube_json_response(html)

    index = source.find(_YTCFG_SET_TOKEN)
    while index >= 0:
        config = _loads_object(extract_balanced_json(source, index))
        if config is not None:
            return config
        index = source.find(_YTCFG_SET_TOKEN, index + len(_YTCFG_SET_TOKEN))

    var_index = source.find(_YTCFG_VAR_TOKEN)
    if var_index >= 0:
        return _loads_object(extract_balanced_json(source, var_index))
    return None


def extract_caption_tracks(html: str) -> Optional[List[Dict[str, Any]]]:
    """Return the captionTracks list from the inline player response."""
    index = html.find(_CAPTION_TRACKS_TOKEN)
    if index < 0:
        return None
    raw = extract_balanced_json(html, index + len(_CAPTION_TRACKS_TOKEN), opener="[")
    if raw is None:
        return None
    try:
        tracks = json.loads(raw)
    except (ValueError, RecursionError):
        return None
    if not isinstance(tracks, list):
        return None
    return [t for t in tracks if isinstance(t, dict) and isinstance(t.get("baseUrl"), str)]


def extract_transcript_params(html: str) -> Optional[str]:
    """Return the getTranscriptEndpoint params token, if the page has one."""
    match = _TRANSCRIPT_PARAMS_RE.search(html)
    return match.group(1) if match else None
