"""Subtitle serialization"""
from subtitle_translator.subtitles.formatter import SubtitleFormatter, serialize
from subtitle_translator.subtitles.parser import Caption, parse


def test_srt_output():
    captions = [
        Caption(index=7, start_ms=1000, end_ms=3500, text="Hola."),
        Caption(index=9, start_ms=3723004, end_ms=3724000, text="Dos\nlineas"),
    ]

    assert serialize(captions, "srt") == (
        "1\n00:00:01,000 --> 00:00:03,500\nHola.\n\n"
        "2\n01:02:03,004 --> 01:02:04,000\nDos\nlineas\n"
    )


def test_vtt_output():
    captions = [Caption(index=1, start_ms=61001, end_ms=62000, text="Hi")]

    assert serialize(captions, "vtt") == "WEBVTT\n\n1\n00:01:01.001 --> 00:01:02.000\nHi\n"


def test_ass_output_truncates_centiseconds():
    captions = [Caption(index=1, start_ms=1999, end_ms=3725010, text="One\nTwo")]

    output = serialize(captions, "ass")

    assert output.startswith("[Script Info]")
    assert "[Events]" in output
    assert output.endswith("Dialogue: 0,0:00:01.99,1:02:05.01,Default,,0,0,0,,One\\NTwo\n")


def test_srt_round_trip_preserves_timing_and_text(make_captions):
    captions = make_captions("First", "Second, with comma", "Third\nline")

    parsed = parse(serialize(captions, "srt"), "srt")

    assert [(c.start_ms, c.end_ms, c.text) for c in parsed] == [
        (c.start_ms, c.end_ms, c.text) for c in captions
    ]


def test_srt_to_vtt_conversion(make_captions):
    captions = make_captions("Convert me")

    parsed = parse(serialize(captions, "vtt"), "vtt")

    assert parsed[0].start_ms == captions[0].start_ms
    assert parsed[0].text == "Convert me"


def test_ass_round_trip_keeps_commas(make_captions):
    captions = make_captions("a, b, c")

    parsed = parse(serialize(captions, "ass"), "ass")

    assert parsed[0].text == "a, b, c"
    assert parsed[0].end_ms == 1500


def test_save_writes_atomically(tmp_path, make_captions):
    output_path = tmp_path / "out" / "movie.spanish.srt"

    written = SubtitleFormatter().save(make_captions("Hola"), output_path, "srt")

    assert written == output_path
    assert output_path.read_text(encoding="utf-8").startswith("1\n00:00:00,000 --> 00:00:01,500\nHola")
    # no temporary files left behind
    assert [p.name for p in output_path.parent.iterdir()] == ["movie.spanish.srt"]


def test_srt_parse_then_serialize_is_identical():
    content = "1\n00:00:01,000 --> 00:00:02,000\nHello\n\n2\n00:00:03,000 --> 00:00:04,000\nWorld\n"

    captions = parse(content, "srt")

    assert [c.text for c in captions] == ["Hello", "World"]
    assert serialize(captions, "srt") == content
