"""Transcript provider registry — pluggable acquisition sources.

WHY: The orchestrator and the CLI need a single lookup to find a provider
by id. A central dict makes it trivial to add a new source: create the
provider class, import it here, add one line.

HOW: PROVIDERS maps provider ids to provider *classes*. get_provider()
builds each instance once on first use and reuses it for the life of the
process; providers hold no external resources, so nothing is torn down.

RULES:
- Keys are the ids recorded in attempted_providers and cached records
- Values are BaseProvider subclasses (not instances)
- Every provider listed here must be importable without side effects
"""

from __future__ import annotations

import functools
from typing import TYPE_CHECKING

from transcript_core.providers.apify import ApifyProvider
from transcript_core.providers.caption_tracks import CaptionTracksProvider
from transcript_core.providers.youtubei import YoutubeiProvider
from transcript_core.providers.yt_dlp import YtDlpProvider

if TYPE_CHECKING:
    from transcript_core.providers.base import BaseProvider

PROVIDERS: dict[str, type[BaseProvider]] = {
    "youtubei": YoutubeiProvider,
    "captionTracks": CaptionTracksProvider,
    "apify": ApifyProvider,
    "yt-dlp": YtDlpProvider,
}


@functools.lru_cache(maxsize=None)
def get_provider(provider_id: str) -> BaseProvider:
    """Return the shared provider instance for provider_id.

    Raises:
        KeyError: If no provider is registered under that id.
    """
    return PROVIDERS[provider_id]()
