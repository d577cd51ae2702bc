"""Provider orchestrator: ordered, sequential fallback across transcript sources.

WHY: No single source yields a transcript for every video. Native caption
data is free but often missing, the Apify actor is reliable but paid, and
yt-dlp needs a local binary and seconds of CPU. The orchestrator tries
them cheapest-first and stops at the first one that produces text.

HOW: build_provider_chain() turns the request mode into an ordered list of
eligible providers (missing credentials, binaries or page HTML silently
drop a provider). acquire_transcript() walks that list: it records each
provider id before calling it, bounds the call with asyncio.wait_for, and
converts every failure into "try the next one". When the list runs out,
the sentinel "unavailable" is appended and returned as the source.

RULES:
- Providers run strictly one at a time, in the fixed order of MODE_CHAINS
- A provider id is recorded in attempted_providers *before* it runs
- Nothing is attempted after a provider succeeds
- Success means non-empty normalized text
- No exception from a provider ever escapes acquire_transcript
- The overall budget (options.timeout_s) caps each provider's budget;
  when it is spent, remaining providers are skipped
- no-auto mode, an unresolvable video URL, or an empty eligible chain
  return the "nothing attempted" result (source=None)
- Never writes to the cache
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

import httpx

from transcript_core.core.ir import (
    UNAVAILABLE,
    TranscriptMode,
    TranscriptRequest,
    TranscriptResult,
    empty_result,
)
from transcript_core.core.youtube import extract_youtube_video_id, is_youtube_url
from transcript_core.errors import ProviderError, ProviderTimeout, ProviderUnavailable
from transcript_core.providers import get_provider
from transcript_core.providers.base import BaseProvider, ProviderOutcome, TranscriptOptions

logger = logging.getLogger(__name__)

NATIVE_PROVIDER_IDS: Tuple[str, ...] = ("youtubei", "captionTracks")

MODE_CHAINS: Dict[TranscriptMode, Tuple[str, ...]] = {
    TranscriptMode.AUTO: NATIVE_PROVIDER_IDS + ("apify", "yt-dlp"),
    TranscriptMode.WEB: NATIVE_PROVIDER_IDS,
    TranscriptMode.APIFY: ("apify",),
    TranscriptMode.YT_DLP: ("yt-dlp",),
    TranscriptMode.NO_AUTO: (),
}

_DEFAULT_HTTP_TIMEOUT = httpx.Timeout(30.0, connect=10.0)
_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)


def build_provider_chain(
    request: TranscriptRequest,
    options: TranscriptOptions,
) -> List[BaseProvider]:
    """Return the eligible providers for request, in priority order."""
    chain: List[BaseProvider] = []
    for provider_id in MODE_CHAINS[TranscriptMode(request.mode)]:
        provider = get_provider(provider_id)
        try:
            provider.check_eligible(request, options)
        except ProviderUnavailable as exc:
            logger.debug("Skipping provider %s: %s", provider_id, exc.message)
            continue
        except Exception:
            logger.exception("Eligibility check failed for provider %s; skipping it", provider_id)
            continue
        chain.append(provider)
    return chain


async def _attempt_with_timeout(
    provider: BaseProvider,
    request: TranscriptRequest,
    options: TranscriptOptions,
    budget_s: float,
) -> ProviderOutcome:
    try:
        return await asyncio.wait_for(provider.attempt(request, options), timeout=budget_s)
    except asyncio.TimeoutError:
        raise ProviderTimeout(
            provider.provider_id, "no result within {:.1f}s".format(budget_s)
        )


async def _run_chain(
    chain: List[BaseProvider],
    request: TranscriptRequest,
    options: TranscriptOptions,
) -> TranscriptResult:
    attempted: List[str] = []
    deadline: Optional[float] = None
    if options.timeout_s is not None:
        deadline = time.monotonic() + options.timeout_s

    for provider in chain:
        provider_id = provider.provider_id
        budget_s = options.budget_for(provider_id, provider.default_timeout_s)
        if deadline is not None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.info("Transcript budget spent; skipping %s and later providers", provider_id)
                break
            budget_s = min(budget_s, remaining)

        attempted.append(provider_id)
        logger.info("Trying transcript provider %s (budget %.1fs)", provider_id, budget_s)
        try:
            outcome = await _attempt_with_timeout(provider, request, options, budget_s)
        except ProviderError as exc:
            logger.info("Provider %s failed: %s", provider_id, exc.message)
            continue
        except Exception:
            logger.exception("Provider %s raised unexpectedly", provider_id)
            continue

        text = (outcome.text or "").strip()
        if not text:
            logger.info("Provider %s returned an empty transcript", provider_id)
            continue

        logger.info("Transcript acquired from %s (%d chars)", provider_id, len(text))
        return TranscriptResult(
            text=text,
            source=provider_id,
            attempted_providers=tuple(attempted),
            segments=tuple(outcome.segments) if outcome.segments else None,
        )

    attempted.append(UNAVAILABLE)
    return TranscriptResult(
        text=None,
        source=UNAVAILABLE,
        attempted_providers=tuple(attempted),
    )


async def acquire_transcript(
    request: TranscriptRequest,
    options: Optional[TranscriptOptions] = None,
) -> TranscriptResult:
    """Acquire a transcript by trying eligible providers in priority order.

    WHY: Callers want one answer (text plus where it came from) without
    knowing which providers exist or handling their failures.

    HOW: Resolve the chain for the request mode, then run it sequentially.
    When options.http_client is None an httpx.AsyncClient is opened for
    this call and closed afterwards.

    RULES:
    - Never raises for provider failures; inspect result.source
    - An unknown mode is logged and treated like no-auto

    Args:
        request: What to fetch and which providers are allowed.
        options: Injected capabilities and budgets; defaults to none.

    Returns:
        TranscriptResult with text, source, and attempted_providers.
    """
    options = options or TranscriptOptions()

    try:
        mode = TranscriptMode(request.mode)
    except ValueError:
        logger.warning("Unknown transcript mode %r; nothing attempted", request.mode)
        return empty_result()
    if mode is TranscriptMode.NO_AUTO:
        return empty_result()

    if not is_youtube_url(request.url):
        logger.debug("Not a YouTube link: %s; nothing attempted", request.url)
        return empty_result()
    if extract_youtube_video_id(request.url) is None:
        logger.debug("No video id in %s; nothing attempted", request.url)
        return empty_result()

    chain = build_provider_chain(request, options)
    if not chain:
        logger.info("No eligible transcript provider for mode %s", mode.value)
        return empty_result()

    if options.http_client is not None:
        return await _run_chain(chain, request, options)

    async with httpx.AsyncClient(
        timeout=_DEFAULT_HTTP_TIMEOUT,
        follow_redirects=True,
        headers={"User-Agent": _USER_AGENT},
    ) as client:
        return await _run_chain(chain, request, replace(options, http_client=client))
