"""Innertube transcript-panel provider (youtubei/v1/get_transcript).

WHY: Some videos expose the "Show transcript" panel even when the caption
track URLs are missing or signed. The panel is served by the Innertube
API, which needs the page's API key, client context and an opaque
endpoint token — all present in the watch page HTML.

HOW: Read INNERTUBE_API_KEY / INNERTUBE_CONTEXT from the ytcfg bootstrap
and the getTranscriptEndpoint params token from the page, POST them to
get_transcript, then walk the response tree for transcriptSegmentRenderer
nodes (startMs, endMs, snippet runs).

RULES:
- Eligible only when the HTML carries both the API key and the params token
- Renderer nodes without text or start time are dropped by the normalizer
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional, Tuple

from transcript_core.config import PROVIDER_TIMEOUTS_S, YOUTUBE_BASE_URL
from transcript_core.core.ir import TranscriptRequest, segments_to_text
from transcript_core.core.parse import json_transcript_to_segments
from transcript_core.core.youtube import (
    extract_transcript_params,
    extract_youtube_bootstrap_config,
    sanitize_youtube_json_response,
)
from transcript_core.errors import ParseError, ProviderUnavailable
from transcript_core.providers.base import BaseProvider, ProviderOutcome, TranscriptOptions

_DEFAULT_CLIENT_NAME = "WEB"
_DEFAULT_CLIENT_VERSION = "2.20240101.00.00"


def _iter_segment_renderers(node: Any) -> Iterator[Dict[str, Any]]:
    """Yield every transcriptSegmentRenderer dict in document order."""
    if isinstance(node, dict):
        renderer = node.get("transcriptSegmentRenderer")
        if isinstance(renderer, dict):
            yield renderer
        for value in node.values():
            yield from _iter_segment_renderers(value)
    elif isinstance(node, list):
        for item in node:
            yield from _iter_segment_renderers(item)


def _snippet_text(renderer: Dict[str, Any]) -> Optional[str]:
    snippet = renderer.get("snippet")
    if not isinstance(snippet, dict):
        return None
    if isinstance(snippet.get("simpleText"), str):
        return snippet["simpleText"]
    runs = snippet.get("runs")
    if isinstance(runs, list):
        return "".join(
            run["text"] for run in runs
            if isinstance(run, dict) and isinstance(run.get("text"), str)
        )
    return None


def renderers_to_cues(payload: Any) -> List[Dict[str, Any]]:
    """Convert a get_transcript response into {startMs, endMs, text} cue dicts."""
    return [
        {
            "startMs": renderer.get("startMs"),
            "endMs": renderer.get("endMs"),
            "text": _snippet_text(renderer),
        }
        for renderer in _iter_segment_renderers(payload)
    ]


class YoutubeiProvider(BaseProvider):
    """Fetches the transcript panel through the Innertube API."""

    default_timeout_s = PROVIDER_TIMEOUTS_S["youtubei"]

    @property
    def provider_id(self) -> str:
        return "youtubei"

    def _page_inputs(self, html: Optional[str]) -> Tuple[Dict[str, Any], str]:
        if not html:
            raise ProviderUnavailable(self.provider_id, "no page HTML supplied")
        config = extract_youtube_bootstrap_config(html)
        if not config or not isinstance(config.get("INNERTUBE_API_KEY"), str):
            raise ProviderUnavailable(self.provider_id, "page has no Innertube bootstrap config")
        params = extract_transcript_params(html)
        if not params:
            raise ProviderUnavailable(self.provider_id, "page has no transcript endpoint")
        return config, params

    def check_eligible(self, request: TranscriptRequest, options: TranscriptOptions) -> None:
        self._page_inputs(request.html)

    async def attempt(
        self,
        request: TranscriptRequest,
        options: TranscriptOptions,
    ) -> ProviderOutcome:
        config, params = self._page_inputs(request.html)

        context = config.get("INNERTUBE_CONTEXT")
        if not isinstance(context, dict):
            context = {
                "client": {
                    "clientName": config.get("INNERTUBE_CLIENT_NAME", _DEFAULT_CLIENT_NAME),
                    "clientVersion": config.get("INNERTUBE_CLIENT_VERSION", _DEFAULT_CLIENT_VERSION),
                },
            }

        resp = await self._request(
            options,
            "POST",
            "{}/youtubei/v1/get_transcript".format(YOUTUBE_BASE_URL.rstrip("/")),
            params={"key": config["INNERTUBE_API_KEY"]},
            json={"context": context, "params": params},
        )
        payload = self._json(resp, sanitize_youtube_json_response(resp.text))

        segments = json_transcript_to_segments(renderers_to_cues(payload))
        if not segments:
            raise ParseError(self.provider_id, "transcript panel has no segments")
        return ProviderOutcome(text=segments_to_text(segments), segments=segments)
