"""Configuration constants, provider defaults, and .env loading.

WHY: Credentials, binary locations, cache limits and timeouts all vary per
machine. Keeping them as plain module-level values makes them easy to find
and override without touching provider or cache logic.

HOW: python-dotenv loads the .env file on import. Constants are read from
the environment with sensible defaults. Helper functions return None
(instead of raising) for optional capabilities, because a missing
credential or binary only removes a provider from the chain.

RULES:
- Apify token is loaded from .env / environment, never hardcoded
- A missing token or yt-dlp binary is not an error
- All defaults can be overridden via environment variables
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env from the project root (where the script is run from)
load_dotenv()

# ---------------------------------------------------------------------------
# Provider defaults
# ---------------------------------------------------------------------------

DEFAULT_APIFY_YOUTUBE_ACTOR = "faVsWy9VTSNVIhWpR"
LEGACY_APIFY_TOPAZ_ACTOR = "dB9f4B02ocpTICIEY"
APIFY_BASE_URL = os.getenv("APIFY_BASE_URL", "https://api.apify.com/v2")
YOUTUBE_BASE_URL = os.getenv("YOUTUBE_BASE_URL", "https://www.youtube.com")

DEFAULT_TRANSCRIPT_MODE = os.getenv("TRANSCRIPT_MODE", "auto")
DEFAULT_CAPTION_LANGUAGE = os.getenv("TRANSCRIPT_LANGUAGE", "en")

# Per-provider time budgets (seconds)
PROVIDER_TIMEOUTS_S: dict[str, float] = {
    "youtubei": 10.0,
    "captionTracks": 10.0,
    "apify": 45.0,
    "yt-dlp": 120.0,
}

# ---------------------------------------------------------------------------
# Cache defaults
# ---------------------------------------------------------------------------

DEFAULT_CACHE_PATH = Path(
    os.getenv(
        "TRANSCRIPT_CACHE_PATH",
        str(Path.home() / ".summarize" / "cache.sqlite"),
    )
).expanduser()
DEFAULT_CACHE_MAX_BYTES = int(os.getenv("TRANSCRIPT_CACHE_MAX_BYTES", str(512 * 1024 * 1024)))
DEFAULT_TRANSCRIPT_TTL_MS = int(os.getenv("TRANSCRIPT_CACHE_TTL_MS", str(7 * 24 * 60 * 60 * 1000)))
DEFAULT_NEGATIVE_TTL_MS = int(os.getenv("TRANSCRIPT_NEGATIVE_TTL_MS", str(60 * 60 * 1000)))
TRANSCRIPT_CACHE_NAMESPACE: Optional[str] = os.getenv("TRANSCRIPT_CACHE_NAMESPACE") or None


def load_overall_timeout() -> Optional[float]:
    """Return the whole-chain time budget in seconds, or None for unbounded."""
    raw = os.getenv("TRANSCRIPT_TIMEOUT_S", "").strip()
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(
            "TRANSCRIPT_TIMEOUT_S must be a number of seconds, got {!r}".format(raw)
        )
    return value if value > 0 else None


def load_apify_token() -> Optional[str]:
    """Load the Apify API token from the environment.

    WHY: The Apify provider costs money per run. Its presence is what makes
    the provider eligible, so absence must be quiet.

    HOW: Reads APIFY_API_TOKEN from os.environ (populated by python-dotenv).

    RULES:
    - Returns None if the token is missing or blank
    - Never returns a placeholder value
    """
    token = os.getenv("APIFY_API_TOKEN", "").strip()
    return token or None


def load_apify_actor() -> str:
    """Return the configured Apify actor id, or the default transcript actor."""
    actor = os.getenv("APIFY_YOUTUBE_ACTOR", "").strip()
    return actor or DEFAULT_APIFY_YOUTUBE_ACTOR


def resolve_yt_dlp_path() -> Optional[str]:
    """Locate the yt-dlp binary.

    WHY: The local extractor is only eligible when the binary can actually
    be spawned.

    HOW: YT_DLP_PATH wins when it points at an existing file; otherwise the
    binary is looked up on PATH.

    RULES:
    - Returns None when nothing usable is found
    """
    explicit = os.getenv("YT_DLP_PATH", "").strip()
    if explicit:
        return explicit if Path(explicit).expanduser().is_file() else None
    return shutil.which("yt-dlp")
