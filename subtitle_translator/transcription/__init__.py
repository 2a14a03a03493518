"""
Transcription Package

Provides:
- WhisperTranscriber: local Whisper transcription to a subtitle file
- transcribe: path in, subtitle file path out
"""
from .whisper_transcriber import (
    WHISPER_MODELS,
    TranscribeOptions,
    TranscriptionResult,
    WhisperTranscriber,
    is_whisper_installed,
    transcribe,
)

__all__ = [
    "WhisperTranscriber",
    "TranscribeOptions",
    "TranscriptionResult",
    "WHISPER_MODELS",
    "is_whisper_installed",
    "transcribe",
]
