"""Whisper transcription with the model replaced by a fake"""
import asyncio

import pytest

from subtitle_translator.errors import TranscriptionError
from subtitle_translator.subtitles.parser import SubtitleFormat, parse
from subtitle_translator.transcription.whisper_transcriber import TranscribeOptions, WhisperTranscriber


class FakeWhisperModel:
    def __init__(self, segments, language="es"):
        self.segments = segments
        self.language = language
        self.calls = []

    def transcribe(self, path, **options):
        self.calls.append((path, options))
        return {"segments": self.segments, "language": self.language}


def make_transcriber(model_name="base", segments=None):
    transcriber = WhisperTranscriber(model_name=model_name, device="cpu")
    transcriber._model = FakeWhisperModel(segments or [
        {"start": 0.0, "end": 1.2346, "text": " Hola "},
        {"start": 1.5, "end": 2.0, "text": "   "},
        {"start": 2.0, "end": 3.5, "text": "mundo"},
    ])
    return transcriber


def test_transcribe_writes_subtitle_file(tmp_path):
    audio = tmp_path / "talk.mp4"
    audio.write_bytes(b"fake")
    transcriber = make_transcriber()

    result = asyncio.run(transcriber.transcribe(audio, TranscribeOptions(output_format="vtt")))

    assert result.output_path == tmp_path / "talk.vtt"
    assert result.language == "es"
    assert [(c.index, c.start_ms, c.end_ms, c.text) for c in result.captions] == [
        (1, 0, 1235, "Hola"),
        (2, 2000, 3500, "mundo"),
    ]
    written = parse(result.output_path.read_text(encoding="utf-8"), SubtitleFormat.VTT)
    assert len(written) == 2


def test_transcribe_passes_task_and_language(tmp_path):
    audio = tmp_path / "talk.wav"
    audio.write_bytes(b"fake")
    out_dir = tmp_path / "subs"
    transcriber = make_transcriber(model_name="medium")

    result = asyncio.run(transcriber.transcribe(
        audio, TranscribeOptions(model="medium", task="translate", language="ja", output_dir=out_dir)
    ))

    _, options = transcriber._model.calls[0]
    assert options["task"] == "translate"
    assert options["language"] == "ja"
    assert options["fp16"] is False
    assert result.output_path == out_dir / "talk.srt"


def test_turbo_cannot_translate(tmp_path):
    audio = tmp_path / "talk.wav"
    audio.write_bytes(b"fake")

    with pytest.raises(TranscriptionError) as exc_info:
        asyncio.run(make_transcriber("turbo").transcribe(audio, TranscribeOptions(task="translate")))
    assert "turbo" in str(exc_info.value)


def test_missing_input(tmp_path):
    with pytest.raises(TranscriptionError):
        asyncio.run(make_transcriber().transcribe(tmp_path / "nope.wav"))


def test_unknown_task(tmp_path):
    with pytest.raises(TranscriptionError):
        asyncio.run(make_transcriber().transcribe(tmp_path / "a.wav", TranscribeOptions(task="dub")))


def test_no_speech(tmp_path):
    audio = tmp_path / "silence.wav"
    audio.write_bytes(b"fake")
    transcriber = make_transcriber(segments=[{"start": 0.0, "end": 1.0, "text": " "}])

    with pytest.raises(TranscriptionError):
        asyncio.run(transcriber.transcribe(audio))


def test_model_failure_is_wrapped(tmp_path):
    audio = tmp_path / "talk.wav"
    audio.write_bytes(b"fake")

    class BrokenModel:
        def transcribe(self, path, **options):
            raise RuntimeError("CUDA out of memory")

    transcriber = WhisperTranscriber(device="cpu")
    transcriber._model = BrokenModel()

    with pytest.raises(TranscriptionError) as exc_info:
        asyncio.run(transcriber.transcribe(audio))
    assert "CUDA out of memory" in str(exc_info.value)
