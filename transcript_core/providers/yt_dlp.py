"""Local yt-dlp provider: subtitles pulled by the yt-dlp binary.

WHY: yt-dlp keeps up with YouTube's player changes faster than any
hand-written scraper and can fetch auto-generated subtitles that the page
no longer links. It is a local process spawn, so it runs last in the auto
chain and only when the binary is installed.

HOW: Run yt-dlp with --skip-download and subtitle flags into a temporary
directory, then normalize the first .vtt file it wrote. The process runner
is injectable; the default uses asyncio subprocesses and kills the child
when the attempt is cancelled by a timeout.

RULES:
- Eligible only when yt_dlp_path is set
- Non-zero exit status → ProviderTransportError (stderr tail in the message)
- No .vtt written → ParseError
- The temporary directory is always removed
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import tempfile
from pathlib import Path
from typing import List, Sequence

from transcript_core.config import PROVIDER_TIMEOUTS_S
from transcript_core.core.ir import TranscriptRequest, segments_to_text
from transcript_core.core.parse import vtt_to_plain_text, vtt_to_segments
from transcript_core.core.youtube import extract_youtube_video_id
from transcript_core.errors import ParseError, ProviderTransportError, ProviderUnavailable
from transcript_core.providers.base import (
    BaseProvider,
    ProcessResult,
    ProviderOutcome,
    TranscriptOptions,
)

logger = logging.getLogger(__name__)

_STDERR_TAIL_CHARS = 400


async def run_subprocess(args: Sequence[str]) -> ProcessResult:
    """Run a process to completion; kill it if the awaiting task is cancelled."""
    proc = await asyncio.create_subprocess_exec(
        *args,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await proc.communicate()
    except asyncio.CancelledError:
        if proc.returncode is None:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
            with contextlib.suppress(Exception):
                await asyncio.shield(proc.wait())
        raise
    return ProcessResult(
        returncode=proc.returncode if proc.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )


def build_yt_dlp_args(binary: str, url: str, language: str, output_dir: Path) -> List[str]:
    return [
        binary,
        "--skip-download",
        "--write-subs",
        "--write-auto-subs",
        "--sub-format", "vtt",
        "--sub-langs", "{0}.*,{0}".format(language),
        "--no-playlist",
        "--no-progress",
        "--quiet",
        "-o", str(output_dir / "%(id)s.%(ext)s"),
        url,
    ]


class YtDlpProvider(BaseProvider):
    """Extracts subtitles with a local yt-dlp binary."""

    default_timeout_s = PROVIDER_TIMEOUTS_S["yt-dlp"]

    @property
    def provider_id(self) -> str:
        return "yt-dlp"

    def check_eligible(self, request: TranscriptRequest, options: TranscriptOptions) -> None:
        if not options.yt_dlp_path:
            raise ProviderUnavailable(self.provider_id, "yt-dlp binary not found")

    async def attempt(
        self,
        request: TranscriptRequest,
        options: TranscriptOptions,
    ) -> ProviderOutcome:
        self.check_eligible(request, options)
        video_id = extract_youtube_video_id(request.url)
        url = "https://www.youtube.com/watch?v={}".format(video_id) if video_id else request.url
        runner = options.run_process or run_subprocess

        with tempfile.TemporaryDirectory(prefix="transcript_yt_dlp_") as tmp:
            output_dir = Path(tmp)
            args = build_yt_dlp_args(options.yt_dlp_path, url, options.language, output_dir)
            logger.info("Running yt-dlp for %s", url)
            try:
                result = await runner(args)
            except OSError as exc:
                raise ProviderTransportError(
                    self.provider_id, "could not start yt-dlp: {}".format(exc)
                ) from exc

            if result.returncode != 0:
                raise ProviderTransportError(
                    self.provider_id,
                    "yt-dlp exited with {}: {}".format(
                        result.returncode, result.stderr.strip()[-_STDERR_TAIL_CHARS:]
                    ),
                )

            vtt_files = sorted(output_dir.glob("*.vtt"))
            if not vtt_files:
                raise ParseError(self.provider_id, "yt-dlp wrote no subtitles")
            raw = vtt_files[0].read_text(encoding="utf-8", errors="replace")

        segments = vtt_to_segments(raw)
        if segments:
            return ProviderOutcome(text=segments_to_text(segments), segments=segments)
        text = vtt_to_plain_text(raw)
        if not text:
            raise ParseError(self.provider_id, "subtitle file has no text")
        return ProviderOutcome(text=text)
