"""Tests for subtitle parsing into the pivot document and serializing out of it."""

import json

import pytest

from seasonmux.errors import SubtitleCodecError
from seasonmux.parsers.subtitles import (
    parse_ass_bytes,
    parse_json_bytes,
    parse_srt_bytes,
    parse_subtitle_file,
    parse_vtt_bytes,
    to_ass_string,
    to_srt_string,
    to_vtt_string,
    write_subtitle,
)
from seasonmux.util.types import Cue, SubtitleDocument, SubtitleFormat


def _json_bytes(*lines):
    body = [{"from": start, "to": end, "content": text} for start, end, text in lines]
    return json.dumps({"body": body}).encode("utf-8")


def test_parse_json_rounds_to_milliseconds():
    doc = parse_json_bytes(_json_bytes((0.0, 1.5, "A"), (2.0006, 3.25, "B")))
    assert doc.cues == [Cue(0, 1500, "A"), Cue(2001, 3250, "B")]


def test_parse_json_keeps_line_breaks():
    doc = parse_json_bytes(_json_bytes((0.0, 1.0, "line one\r\nline two")))
    assert doc.cues[0].text == "line one\nline two"


@pytest.mark.parametrize(
    "payload",
    [
        b"{not json",
        b"[]",
        b'{"body": {}}',
        b'{"body": [{"from": "0", "to": 1, "content": "A"}]}',
        b'{"body": [{"from": 0, "to": 1}]}',
        b'{"body": [{"from": NaN, "to": 1.0, "content": "A"}]}',
        b'{"body": [{"from": 0, "to": Infinity, "content": "A"}]}',
        b'{"body": [{"from": 0, "to": 1e400, "content": "A"}]}',
    ],
)
def test_parse_json_rejects_malformed(payload):
    with pytest.raises(SubtitleCodecError):
        parse_json_bytes(payload)


def test_parse_srt_multi_line():
    content = b"""1
00:00:01,000 --> 00:00:03,500
Line one.
Line two.

2
00:00:04,000 --> 00:00:06,000
How are you?
"""
    doc = parse_srt_bytes(content)
    assert doc.cues == [
        Cue(1000, 3500, "Line one.\nLine two."),
        Cue(4000, 6000, "How are you?"),
    ]


def test_parse_srt_with_bom():
    content = "\ufeff1\n00:00:01,000 --> 00:00:02,000\nHi\n".encode("utf-8")
    assert parse_srt_bytes(content).cues == [Cue(1000, 2000, "Hi")]


def test_parse_srt_non_utf8_is_decoded():
    content = "1\n00:00:01,000 --> 00:00:02,000\nCafé crème, déjà vu\n".encode("latin-1")
    doc = parse_srt_bytes(content)
    assert len(doc.cues) == 1
    assert doc.cues[0].text.startswith("Caf")


def test_parse_vtt_basic():
    content = b"""WEBVTT

00:00:01.000 --> 00:00:03.500
Hello world.

00:00:04.250 --> 00:00:05.000
Two
lines
"""
    doc = parse_vtt_bytes(content)
    assert doc.cues == [Cue(1000, 3500, "Hello world."), Cue(4250, 5000, "Two\nlines")]


def test_parse_ass_plaintext_and_comments():
    content = r"""[Script Info]
ScriptType: v4.00+

[V4+ Styles]
Format: Name, Fontname, Fontsize, PrimaryColour, SecondaryColour, OutlineColour, BackColour, Bold, Italic, Underline, StrikeOut, ScaleX, ScaleY, Spacing, Angle, BorderStyle, Outline, Shadow, Alignment, MarginL, MarginR, MarginV, Encoding
Style: Default,Arial,20,&H00FFFFFF,&H000000FF,&H00000000,&H00000000,0,0,0,0,100,100,0,0,1,2,2,2,10,10,10,1

[Events]
Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text
Dialogue: 0,0:00:01.00,0:00:02.50,Default,,0,0,0,,{\i1}First\Nline
Comment: 0,0:00:02.00,0:00:03.00,Default,,0,0,0,,ignored
Dialogue: 0,0:00:03.00,0:00:04.00,Default,,0,0,0,,Second
"""
    doc = parse_ass_bytes(content.encode("utf-8"))
    assert doc.cues == [Cue(1000, 2500, "First\nline"), Cue(3000, 4000, "Second")]


def test_to_ass_uses_presentation_profile():
    doc = SubtitleDocument(cues=[Cue(0, 1200, "A"), Cue(1500, 3000, "B\nC")])
    text = to_ass_string(doc)
    assert "Noto Sans" in text
    assert "PlayResX: 1920" in text
    assert "PlayResY: 1080" in text
    assert r"B\NC" in text


def test_to_ass_keeps_literal_braces():
    doc = SubtitleDocument(cues=[Cue(0, 1000, "{note} hello")])
    back = parse_ass_bytes(to_ass_string(doc).encode("utf-8"))
    assert [c.text for c in back.cues] == ["\uff5bnote\uff5d hello"]


def test_json_to_ass_round_trip_preserves_order():
    doc = parse_json_bytes(_json_bytes((0.0, 1.0, "A"), (1.5, 2.5, "B")))
    back = parse_ass_bytes(to_ass_string(doc).encode("utf-8"))
    assert [c.text for c in back.cues] == ["A", "B"]
    assert back.start_times == [0, 1500]


def test_millisecond_neighbours_are_not_inverted():
    doc = parse_json_bytes(_json_bytes((1.000, 2.0, "first"), (1.001, 2.0, "second")))
    assert doc.start_times == [1000, 1001]
    back = parse_ass_bytes(to_ass_string(doc).encode("utf-8"))
    assert [c.text for c in back.cues] == ["first", "second"]
    assert back.start_times == sorted(back.start_times)


def test_to_srt_string():
    doc = SubtitleDocument(cues=[Cue(1500, 3000, "Hi\nthere")])
    text = to_srt_string(doc)
    assert "00:00:01,500 --> 00:00:03,000" in text
    assert parse_srt_bytes(text.encode("utf-8")).cues == doc.cues


def test_to_vtt_string():
    doc = SubtitleDocument(cues=[Cue(3_723_004, 3_724_000, "Late")])
    text = to_vtt_string(doc)
    assert text.startswith("WEBVTT")
    assert "01:02:03.004 --> 01:02:04.000" in text


def test_write_subtitle_by_format(tmp_path):
    doc = SubtitleDocument(cues=[Cue(0, 1000, "A")])
    out = write_subtitle(doc, tmp_path / "out.srt", SubtitleFormat.SRT)
    assert parse_subtitle_file(out).cues == doc.cues


def test_write_json_is_not_supported(tmp_path):
    with pytest.raises(SubtitleCodecError):
        write_subtitle(SubtitleDocument(), tmp_path / "out.json", SubtitleFormat.JSON)


def test_parse_subtitle_file_unknown_extension(tmp_path):
    path = tmp_path / "sub.txt"
    path.write_text("hello", encoding="utf-8")
    with pytest.raises(SubtitleCodecError):
        parse_subtitle_file(path)
