"""
Subtitle Translator

Translates SRT, VTT and ASS subtitle files with LLM providers (OpenAI,
Anthropic, Gemini, Kimi) while keeping every caption's timing intact.
"""
from .errors import SubtitleTranslatorError
from .subtitles import Caption, SubtitleFormat, detect_format, parse, serialize, split
from .translation import (
    ProviderOptions,
    Translator,
    create_provider,
    select_provider,
    translate_and_merge,
    with_retry,
)

__version__ = "1.0.0"

__all__ = [
    "Caption",
    "SubtitleFormat",
    "detect_format",
    "parse",
    "serialize",
    "split",
    "ProviderOptions",
    "create_provider",
    "select_provider",
    "with_retry",
    "translate_and_merge",
    "Translator",
    "SubtitleTranslatorError",
]
