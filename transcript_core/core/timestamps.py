"""Timestamp codec: millisecond offsets ↔ timestamp strings.

WHY: Providers report time as "00:01:02.500" (VTT), as float seconds
("1.5", 1.5), or as integer milliseconds. The canonical segment model uses
integer milliseconds only, and the CLI prints short "M:SS" labels.

HOW: Small pure functions. Parsing returns None instead of raising so the
normalizers can drop bad cues without try/except at every call site.

RULES:
- format_timestamp_ms omits the hour when it is zero ("1:01", "1:01:01")
- Seconds are floored; minutes/seconds are zero-padded under a larger unit
- parse_timestamp_string_to_ms accepts 2 or 3 ":"-separated numeric parts
- Negative, non-finite, or non-numeric input parses to None
"""

from __future__ import annotations

import math
import re
from typing import Iterable, Optional, Union

from transcript_core.core.ir import TranscriptSegment

_INT_PART_RE = re.compile(r"^\d+$")
_SECONDS_PART_RE = re.compile(r"^\d+(?:[.,]\d+)?$")


def format_timestamp_ms(ms: Union[int, float]) -> str:
    """Format a millisecond offset as "M:SS" or "H:MM:SS"."""
    total_seconds = int(math.floor(max(0, ms) / 1000))
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60
    if hours > 0:
        return "{}:{:02d}:{:02d}".format(hours, minutes, seconds)
    return "{}:{:02d}".format(minutes, seconds)


def parse_timestamp_string_to_ms(value: str) -> Optional[int]:
    """Parse "MM:SS.mmm" or "HH:MM:SS.mmm" into milliseconds.

    RULES:
    - Exactly 2 or 3 parts separated by ":"
    - Only the last part may carry a fraction ("." or "," separator)
    - Any malformed part → None
    """
    if not isinstance(value, str):
        return None
    parts = value.strip().split(":")
    if len(parts) not in (2, 3):
        return None

    *leading, seconds_raw = parts
    if not _SECONDS_PART_RE.match(seconds_raw):
        return None
    if not all(_INT_PART_RE.match(part) for part in leading):
        return None

    seconds = float(seconds_raw.replace(",", "."))
    if len(leading) == 2:
        hours, minutes = int(leading[0]), int(leading[1])
    else:
        hours, minutes = 0, int(leading[0])

    return int(round((hours * 3600 + minutes * 60 + seconds) * 1000))


def parse_timestamp_to_ms(value: object, is_seconds: bool) -> Optional[int]:
    """Convert a numeric or numeric-string time to milliseconds.

    When is_seconds is True the value is multiplied by 1000 first.
    Booleans, negatives, NaN/inf, and unparsable strings return None.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        try:
            number = float(raw)
        except ValueError:
            return None
    else:
        return None

    if not math.isfinite(number) or number < 0:
        return None
    if is_seconds:
        number *= 1000
    return int(round(number))


def format_transcript_segments(segments: Iterable[TranscriptSegment]) -> str:
    """Render segments as "[M:SS] text" lines."""
    return "\n".join(
        "[{}] {}".format(format_timestamp_ms(segment.start_ms), segment.text)
        for segment in segments
    )
