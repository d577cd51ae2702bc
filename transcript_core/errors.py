"""Exception taxonomy for transcript acquisition and caching.

WHY: The orchestrator must tell "skip this provider" apart from "this
provider broke", and the cache must tell "bad stored payload" apart from
"the disk is gone". Typed exceptions make those routes explicit.

HOW: Two families under one base. ProviderError subclasses are raised by
providers and always caught by the orchestrator. CacheError subclasses are
raised by the cache store; CacheCorruption is handled at the read boundary,
CacheIOError propagates to the caller.

RULES:
- No ProviderError ever escapes acquire_transcript
- CacheCorruption is never surfaced to callers of get_json / TranscriptCache.get
- CacheIOError signals an environment fault and is allowed to propagate
"""

from __future__ import annotations


class TranscriptCoreError(Exception):
    """Base class for all transcript_core errors."""


# ---------------------------------------------------------------------------
# Provider errors
# ---------------------------------------------------------------------------


class ProviderError(TranscriptCoreError):
    """Raised by a provider when an attempt cannot yield a transcript.

    WHY: The orchestrator logs the provider id and reason for every failed
    attempt, so each error carries both.

    RULES:
    - provider_id is the id of the provider that failed
    - message is a short human-readable reason
    """

    def __init__(self, provider_id: str, message: str) -> None:
        self.provider_id = provider_id
        self.message = message
        super().__init__("{}: {}".format(provider_id, message))


class ProviderUnavailable(ProviderError):
    """The provider is missing a credential, binary, or page input."""


class ProviderTimeout(ProviderError):
    """The provider exceeded its time budget."""


class ProviderTransportError(ProviderError):
    """Network or process failure while talking to the provider.

    RULES:
    - status_code is set for HTTP responses with a non-success status
    """

    def __init__(self, provider_id: str, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(provider_id, message)


class ParseError(ProviderError):
    """The provider answered, but its payload held no usable transcript."""


# ---------------------------------------------------------------------------
# Cache errors
# ---------------------------------------------------------------------------


class CacheError(TranscriptCoreError):
    """Base class for cache store failures."""


class CacheCorruption(CacheError):
    """A stored payload could not be decoded."""


class CacheIOError(CacheError):
    """The underlying storage could not be opened or written."""
