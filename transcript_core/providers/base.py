"""Abstract base provider, shared options, and HTTP helpers.

WHY: Every transcript source — a caption track, the Innertube transcript
panel, a paid Apify actor, a local yt-dlp binary — answers the same
question ("what does this video say?") in a different way. A shared
interface lets the orchestrator treat them as an ordered list and stay
ignorant of how many there are.

HOW: BaseProvider is an ABC with three requirements — a ``provider_id``,
an eligibility check, and an async ``attempt()``. TranscriptOptions bundles
the capabilities the host injects (HTTP client, credentials, binary path,
process runner, budgets). ProviderOutcome is what a successful attempt
returns.

RULES:
- check_eligible() raises ProviderUnavailable; it never does I/O
- attempt() raises a ProviderError subclass on any failure
- attempt() returns normalized text (and segments when timing is known)
- Providers never touch the cache

To add a new provider:
1. Create a new module in providers/
2. Subclass BaseProvider
3. Implement provider_id, check_eligible() and attempt()
4. Register it in PROVIDERS in providers/__init__.py and in a mode chain
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

import httpx

from transcript_core.config import (
    DEFAULT_CAPTION_LANGUAGE,
    load_apify_actor,
    load_apify_token,
    load_overall_timeout,
    resolve_yt_dlp_path,
)
from transcript_core.core.ir import TranscriptRequest, TranscriptSegment
from transcript_core.errors import ParseError, ProviderTransportError


@dataclass
class ProcessResult:
    """Exit status and captured output of a finished child process."""

    returncode: int
    stdout: str
    stderr: str


ProcessRunner = Callable[[Sequence[str]], Awaitable[ProcessResult]]
"""Async callable that runs argv to completion and returns its result."""


@dataclass
class TranscriptOptions:
    """Capabilities and limits injected into one acquisition call.

    RULES:
    - http_client: shared httpx.AsyncClient; when None the orchestrator
      opens one for the duration of the call
    - apify_api_token / yt_dlp_path: presence gates the provider
    - run_process: async process runner; None means the asyncio default
    - timeout_s: overall budget for the whole chain, None for unbounded
    - provider_timeouts: per-provider overrides of the default budgets
    - language: preferred caption language (ISO 639-1)
    """

    http_client: Optional[httpx.AsyncClient] = None
    apify_api_token: Optional[str] = None
    apify_youtube_actor: Optional[str] = None
    yt_dlp_path: Optional[str] = None
    run_process: Optional[ProcessRunner] = None
    timeout_s: Optional[float] = None
    provider_timeouts: Dict[str, float] = field(default_factory=dict)
    language: str = DEFAULT_CAPTION_LANGUAGE

    @classmethod
    def from_env(cls, http_client: Optional[httpx.AsyncClient] = None) -> TranscriptOptions:
        """Build options from the environment (.env, APIFY_*, YT_DLP_PATH, ...)."""
        return cls(
            http_client=http_client,
            apify_api_token=load_apify_token(),
            apify_youtube_actor=load_apify_actor(),
            yt_dlp_path=resolve_yt_dlp_path(),
            timeout_s=load_overall_timeout(),
        )

    def budget_for(self, provider_id: str, default_s: float) -> float:
        return self.provider_timeouts.get(provider_id, default_s)


@dataclass
class ProviderOutcome:
    """Normalized output of a successful provider attempt."""

    text: Optional[str]
    segments: Optional[List[TranscriptSegment]] = None


class BaseProvider(ABC):
    """Abstract base for all transcript providers.

    WHY: The orchestrator only needs to know a provider's id, whether it
    can run for this request, and how to run it. Everything else —
    endpoints, payload shapes, binaries — stays inside the subclass.
    """

    default_timeout_s: float = 10.0

    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Stable identifier recorded in attempted_providers and the cache."""

    @abstractmethod
    def check_eligible(self, request: TranscriptRequest, options: TranscriptOptions) -> None:
        """Raise ProviderUnavailable when a credential, binary or input is missing."""

    @abstractmethod
    async def attempt(
        self,
        request: TranscriptRequest,
        options: TranscriptOptions,
    ) -> ProviderOutcome:
        """Fetch and normalize a transcript.

        Args:
            request: The acquisition request (url, html, mode).
            options: Injected capabilities; http_client is always set.

        Returns:
            ProviderOutcome with normalized text and optional segments.

        Raises:
            ProviderError: On transport failures or unusable payloads.
        """

    def _client(self, options: TranscriptOptions) -> httpx.AsyncClient:
        if options.http_client is None:
            raise RuntimeError(
                "Provider {} was invoked without an HTTP client".format(self.provider_id)
            )
        return options.http_client

    async def _request(
        self,
        options: TranscriptOptions,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request and convert transport failures into ProviderTransportError.

        RULES:
        - httpx.HTTPError → ProviderTransportError
        - Non-2xx status → ProviderTransportError with status_code set
        """
        client = self._client(options)
        try:
            resp = await client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise ProviderTransportError(
                self.provider_id, "{}: {}".format(type(exc).__name__, exc)
            ) from exc

        if not resp.is_success:
            raise ProviderTransportError(
                self.provider_id,
                "HTTP {} from {}".format(resp.status_code, resp.request.url.host),
                status_code=resp.status_code,
            )
        return resp

    def _json(self, resp: httpx.Response, text: Optional[str] = None) -> Any:
        """Decode a JSON body, raising ParseError when it is not JSON."""
        try:
            return json.loads(resp.text if text is None else text)
        except ValueError as exc:
            raise ParseError(self.provider_id, "response is not valid JSON") from exc
