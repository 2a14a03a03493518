"""Subtitle parsing and format detection"""
import pytest

from subtitle_translator.errors import EmptyResultError, InputError, UnknownFormatError
from subtitle_translator.subtitles.parser import (
    SubtitleFormat,
    SubtitleParser,
    detect_format,
    parse,
    read_subtitle_file,
)


SRT_SAMPLE = """1
00:00:01,000 --> 00:00:03,500
Hello there.

2
00:00:04,000 --> 00:00:06,000
How are you?
I'm fine.
"""


ASS_SAMPLE = """[Script Info]
Title: Sample
ScriptType: v4.00+

[V4+ Styles]
Format: Name, Fontname, Fontsize
Style: Default,Arial,20

[Events]
Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text
Comment: 0,0:00:00.00,0:00:01.00,Default,,0,0,0,,ignored
Dialogue: 0,0:00:01.50,0:00:03.25,Default,,0,0,0,,Hello, world
Dialogue: 0,0:00:04.00,0:00:05.00,Default,,0,0,0,,{\\i1}Line one\\Nline two{\\i0}
"""


def test_parse_srt_basic():
    captions = parse(SRT_SAMPLE, "srt")

    assert len(captions) == 2
    assert captions[0].index == 1
    assert captions[0].start_ms == 1000
    assert captions[0].end_ms == 3500
    assert captions[0].text == "Hello there."
    assert captions[1].text == "How are you?\nI'm fine."


def test_parse_srt_accepts_dot_and_crlf():
    content = "1\r\n00:00:01.000 --> 00:00:02.000\r\nDot separator\r\n"
    captions = parse(content, SubtitleFormat.SRT)

    assert captions[0].start_ms == 1000
    assert captions[0].text == "Dot separator"


def test_parse_srt_skips_malformed_blocks():
    content = """1
00:00:01,000 --> 00:00:02,000
Good

x
00:00:02,000 --> 00:00:03,000
Bad index

3
not a timing line
Bad timing

4
00:00:05,000 --> 00:00:06,000

5
00:00:07,000 --> 00:00:08,000
Also good
"""
    captions = parse(content, "srt")

    assert [c.text for c in captions] == ["Good", "Also good"]
    assert [c.index for c in captions] == [1, 2]


def test_parse_srt_strips_bom():
    captions = parse("\ufeff" + SRT_SAMPLE, "srt")
    assert len(captions) == 2


def test_parse_vtt_optional_hours_and_identifiers():
    content = """WEBVTT

NOTE this is a comment

intro
00:01.000 --> 00:02.500
<b>Bold</b> text

00:00:03.000 --> 00:00:04.000 align:start
Second cue
"""
    captions = parse(content, "vtt")

    assert len(captions) == 2
    assert captions[0].start_ms == 1000
    assert captions[0].end_ms == 2500
    assert captions[0].text == "Bold text"
    assert captions[1].start_ms == 3000
    assert captions[1].text == "Second cue"


def test_parse_vtt_skips_style_blocks_and_empty_cues():
    content = """WEBVTT

STYLE
::cue { color: yellow }

00:00:01.000 --> 00:00:02.000
<i></i>

00:00:03.000 --> 00:00:04.000
Kept
"""
    captions = parse(content, "vtt")
    assert [c.text for c in captions] == ["Kept"]
    assert captions[0].index == 1


def test_parse_ass_uses_format_columns():
    captions = parse(ASS_SAMPLE, "ass")

    assert len(captions) == 2
    assert captions[0].start_ms == 1500
    assert captions[0].end_ms == 3250
    # commas inside the text column are kept
    assert captions[0].text == "Hello, world"
    assert captions[1].text == "Line one\nline two"


def test_parse_ass_with_reordered_columns():
    content = """[Events]
Format: Start, End, Text
Dialogue: 0:00:02.00,0:00:03.00,Reordered, still fine
"""
    captions = parse(content, "ass")

    assert captions[0].start_ms == 2000
    assert captions[0].text == "Reordered, still fine"


def test_parse_ass_ignores_dialogue_outside_events():
    content = """[Script Info]
Dialogue: 0,0:00:01.00,0:00:02.00,Default,,0,0,0,,Not an event

[Events]
Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text
Dialogue: 0,bad,0:00:02.00,Default,,0,0,0,,Bad time
Dialogue: 0,0:00:03.00,0:00:04.00,Default,,0,0,0,,Event
"""
    captions = parse(content, "ass")
    assert [c.text for c in captions] == ["Event"]


def test_parse_empty_raises():
    with pytest.raises(EmptyResultError):
        parse("", "srt")
    with pytest.raises(EmptyResultError):
        parse("WEBVTT\n", "vtt")


def test_lower_level_parsers_return_empty_lists():
    parser = SubtitleParser()
    assert parser.parse_srt("garbage") == []
    assert parser.parse_ass("[Events]\n") == []


def test_unknown_format_name():
    with pytest.raises(UnknownFormatError):
        parse(SRT_SAMPLE, "sub")
    with pytest.raises(ValueError):
        SubtitleFormat.from_name("txt")


def test_format_aliases():
    assert SubtitleFormat.from_name("SSA") is SubtitleFormat.ASS
    assert SubtitleFormat.from_name(".vtt") is SubtitleFormat.VTT
    assert SubtitleFormat.from_name(SubtitleFormat.SRT) is SubtitleFormat.SRT


@pytest.mark.parametrize("filename, expected", [
    ("movie.srt", SubtitleFormat.SRT),
    ("movie.VTT", SubtitleFormat.VTT),
    ("movie.ass", SubtitleFormat.ASS),
    ("movie.ssa", SubtitleFormat.ASS),
])
def test_detect_format_by_extension(filename, expected):
    # extension wins over content
    assert detect_format("WEBVTT\n" if expected is not SubtitleFormat.VTT else SRT_SAMPLE, filename) is expected


def test_detect_format_by_content():
    assert detect_format("\ufeffWEBVTT\n\n00:01.000 --> 00:02.000\nHi\n") is SubtitleFormat.VTT
    assert detect_format(ASS_SAMPLE) is SubtitleFormat.ASS
    assert detect_format(SRT_SAMPLE, "captions.txt") is SubtitleFormat.SRT


def test_parse_file(tmp_path):
    path = tmp_path / "sample.srt"
    path.write_text(SRT_SAMPLE, encoding="utf-8")

    captions = SubtitleParser().parse_file(path)
    assert len(captions) == 2


def test_caption_properties():
    caption = parse(SRT_SAMPLE, "srt")[0]
    assert caption.duration_ms == 2500
    assert caption.char_count == len("Hello there.")


def test_parse_file_rejects_non_utf8(tmp_path):
    path = tmp_path / "latin1.srt"
    path.write_bytes("1\n00:00:01,000 --> 00:00:02,000\nCafé\n".encode("latin-1"))

    with pytest.raises(InputError) as exc_info:
        SubtitleParser().parse_file(path)
    assert "latin1.srt" in str(exc_info.value)
    assert "UTF-8" in str(exc_info.value)


def test_read_subtitle_file_missing(tmp_path):
    with pytest.raises(InputError):
        read_subtitle_file(tmp_path / "missing.srt")


def test_read_subtitle_file_drops_bom(tmp_path):
    path = tmp_path / "bom.srt"
    path.write_bytes(b"\xef\xbb\xbf1\n")

    assert read_subtitle_file(path) == "1\n"
