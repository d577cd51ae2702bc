"""Tests for the VTT and JSON transcript normalizers.

WHY: Normalizers are the trust boundary between provider payloads and the
rest of the system. They must keep every well-formed cue, drop malformed
ones silently, and never hand back an empty list where None is expected.

HOW: Grouped by function. VTT tests use hand-written files with the
header, NOTE blocks, cue ids and inline markup YouTube actually emits.
"""

from __future__ import annotations

from transcript_core.core.ir import TranscriptSegment
from transcript_core.core.parse import (
    json_transcript_to_plain_text,
    json_transcript_to_segments,
    vtt_to_plain_text,
    vtt_to_segments,
)


def _triples(segments):
    return [(s.start_ms, s.end_ms, s.text) for s in segments]


# ---------------------------------------------------------------------------
# vtt_to_segments
# ---------------------------------------------------------------------------


class TestVttToSegments:
    """WebVTT cues become ordered segments."""

    def test_sample_file(self, sample_vtt):
        segments = vtt_to_segments(sample_vtt)
        assert _triples(segments) == [
            (1000, 2500, "Hello there"),
            (3000, 4000, "general kenobi"),
        ]

    def test_every_cue_kept_in_order(self):
        cues = "".join(
            "00:00:{:02d}.000 --> 00:00:{:02d}.500\nline {}\n\n".format(i, i, i)
            for i in range(10)
        )
        segments = vtt_to_segments("WEBVTT\n\n" + cues)
        assert len(segments) == 10
        assert [s.text for s in segments] == ["line {}".format(i) for i in range(10)]
        assert all(s.end_ms >= s.start_ms for s in segments)

    def test_note_and_style_blocks_skipped(self):
        raw = (
            "WEBVTT\n\n"
            "NOTE this is a comment\n\n"
            "STYLE\n::cue { color: red }\n\n"
            "00:01.000 --> 00:02.000\nOnly cue\n"
        )
        assert _triples(vtt_to_segments(raw)) == [(1000, 2000, "Only cue")]

    def test_multiline_cue_joined(self):
        raw = "WEBVTT\n\n00:01.000 --> 00:02.000\nfirst line\nsecond   line\n"
        assert vtt_to_segments(raw)[0].text == "first line second line"

    def test_inline_tags_and_entities(self):
        raw = (
            "WEBVTT\n\n"
            "00:01.000 --> 00:02.000\n"
            "<v Speaker>Tom &amp; Jerry</v> &lt;3\n"
        )
        assert vtt_to_segments(raw)[0].text == "Tom & Jerry <3"

    def test_crlf_line_endings(self):
        raw = "WEBVTT\r\n\r\n00:01.000 --> 00:02.000\r\nHello\r\n"
        assert _triples(vtt_to_segments(raw)) == [(1000, 2000, "Hello")]

    def test_out_of_order_cues_sorted(self):
        raw = (
            "WEBVTT\n\n"
            "00:05.000 --> 00:06.000\nsecond\n\n"
            "00:01.000 --> 00:02.000\nfirst\n"
        )
        assert [s.text for s in vtt_to_segments(raw)] == ["first", "second"]

    def test_end_before_start_becomes_none(self):
        raw = "WEBVTT\n\n00:05.000 --> 00:01.000\nbackwards\n"
        assert _triples(vtt_to_segments(raw)) == [(5000, None, "backwards")]

    def test_unparseable_start_dropped(self):
        raw = (
            "WEBVTT\n\n"
            "xx:yy --> 00:02.000\nbroken\n\n"
            "00:03.000 --> 00:04.000\nkept\n"
        )
        assert _triples(vtt_to_segments(raw)) == [(3000, 4000, "kept")]

    def test_empty_text_cue_dropped(self):
        raw = "WEBVTT\n\n00:01.000 --> 00:02.000\n<c></c>\n\n00:03.000 --> 00:04.000\nok\n"
        assert [s.text for s in vtt_to_segments(raw)] == ["ok"]

    def test_no_cues_returns_none(self):
        assert vtt_to_segments("WEBVTT\n\n") is None
        assert vtt_to_segments("") is None
        assert vtt_to_segments("WEBVTT\n\nbad --> worse\ntext\n") is None


# ---------------------------------------------------------------------------
# vtt_to_plain_text
# ---------------------------------------------------------------------------


class TestVttToPlainText:
    """Plain text survives even when cue timing does not."""

    def test_uses_segments_when_available(self, sample_vtt):
        assert vtt_to_plain_text(sample_vtt) == "Hello there\ngeneral kenobi"

    def test_falls_back_to_lines(self):
        raw = "WEBVTT\n\n1\nxx:yy --> zz\nHello there\n\nNOTE skip me\n"
        assert vtt_to_plain_text(raw) == "Hello there"

    def test_carriage_return_line_endings(self):
        assert vtt_to_plain_text("WEBVTT\r\r1\rxx --> yy\rHello there\r") == "Hello there"

    def test_empty(self):
        assert vtt_to_plain_text("WEBVTT\n") == ""


# ---------------------------------------------------------------------------
# json_transcript_to_segments
# ---------------------------------------------------------------------------


class TestJsonTranscriptToSegments:
    """JSON cue lists and {"segments": [...]} objects normalize to segments."""

    def test_seconds_and_utf8_fallback(self):
        payload = [
            {"text": "Hello", "start": 1.5, "end": 3.5},
            {"utf8": "world", "start": 4, "end": 5},
        ]
        assert json_transcript_to_segments(payload) == [
            TranscriptSegment(1500, 3500, "Hello"),
            TranscriptSegment(4000, 5000, "world"),
        ]

    def test_milliseconds_win_over_seconds(self):
        payload = [{"text": "a", "startMs": 100, "endMs": 900, "start": 5, "end": 6}]
        assert _triples(json_transcript_to_segments(payload)) == [(100, 900, "a")]

    def test_segments_object_shape(self):
        payload = {"segments": [{"text": "x", "startMs": "1200", "endMs": "1800"}]}
        assert _triples(json_transcript_to_segments(payload)) == [(1200, 1800, "x")]

    def test_string_seconds(self):
        payload = [{"text": "x", "start": "2.5", "end": "3"}]
        assert _triples(json_transcript_to_segments(payload)) == [(2500, 3000, "x")]

    def test_missing_end_is_none(self):
        payload = [{"text": "x", "start": 1}]
        assert _triples(json_transcript_to_segments(payload)) == [(1000, None, "x")]

    def test_invalid_entries_dropped(self):
        payload = [
            "not a dict",
            {"text": "no start"},
            {"text": "bool start", "start": True},
            {"text": "negative", "start": -1},
            {"text": "   ", "start": 1},
            {"text": 5, "start": 1},
            {"text": "good", "start": 2},
        ]
        assert _triples(json_transcript_to_segments(payload)) == [(2000, None, "good")]

    def test_whitespace_collapsed(self):
        payload = [{"text": "  spaced\n\tout  ", "start": 0}]
        assert json_transcript_to_segments(payload)[0].text == "spaced out"

    def test_nothing_valid_returns_none(self):
        assert json_transcript_to_segments([]) is None
        assert json_transcript_to_segments([{"text": "no timing"}]) is None
        assert json_transcript_to_segments({"segments": "nope"}) is None
        assert json_transcript_to_segments({"transcript": "text only"}) is None
        assert json_transcript_to_segments("string") is None
        assert json_transcript_to_segments(None) is None


# ---------------------------------------------------------------------------
# json_transcript_to_plain_text
# ---------------------------------------------------------------------------


class TestJsonTranscriptToPlainText:
    """Plain text comes from direct fields, then cues, then bare rows."""

    def test_direct_transcript_field(self):
        assert json_transcript_to_plain_text({"transcript": "  hi there "}) == "hi there"

    def test_direct_text_field(self):
        assert json_transcript_to_plain_text({"text": "hello"}) == "hello"

    def test_timed_cues(self):
        payload = [{"text": "b", "start": 2}, {"text": "a", "start": 1}]
        assert json_transcript_to_plain_text(payload) == "a\nb"

    def test_untimed_rows_in_list(self):
        payload = [{"text": "one"}, {"text": " two "}, {"other": 1}]
        assert json_transcript_to_plain_text(payload) == "one\ntwo"

    def test_untimed_rows_in_segments(self):
        payload = {"segments": [{"text": "a"}, {"text": "b"}]}
        assert json_transcript_to_plain_text(payload) == "a\nb"

    def test_unusable_payloads(self):
        assert json_transcript_to_plain_text(42) is None
        assert json_transcript_to_plain_text({"transcript": "   "}) is None
        assert json_transcript_to_plain_text([]) is None
        assert json_transcript_to_plain_text({}) is None
