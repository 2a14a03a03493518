"""
Subtitle translation: batches captions through a provider and splices the
translations back into the original timeline.
"""
import asyncio
import re
import time
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, List, Optional, Union

from loguru import logger

from ..subtitles.batcher import split
from ..subtitles.formatter import SubtitleFormatter
from ..subtitles.parser import Caption, SubtitleFormat, SubtitleParser, detect_format, read_subtitle_file
from .providers import TranslationProvider, UsageStats


LANGUAGES = {
    "en": "English", "hi": "Hindi", "ja": "Japanese", "zh": "Chinese",
    "ko": "Korean", "es": "Spanish", "fr": "French", "de": "German",
    "it": "Italian", "pt": "Portuguese", "ru": "Russian", "ar": "Arabic",
    "th": "Thai", "vi": "Vietnamese", "id": "Indonesian", "ms": "Malay",
    "tr": "Turkish", "pl": "Polish", "nl": "Dutch", "sv": "Swedish",
}

SUBTITLE_EXTENSION = re.compile(r"\.(srt|vtt|ass|ssa)$", re.IGNORECASE)

ProgressCallback = Callable[[int, int, int, int], None]


def resolve_language(value: str) -> str:
    """Map a language code such as 'es' to its English name; names pass through"""
    return LANGUAGES.get(value.strip().lower(), value)


def default_output_path(
    input_path: Union[str, Path],
    target_lang: str,
    fmt: Union[str, SubtitleFormat],
) -> Path:
    """movie.srt + Spanish + vtt -> movie.spanish.vtt"""
    fmt = SubtitleFormat.from_name(fmt)
    suffix = f".{target_lang.lower()}.{fmt.extension}"
    input_str = str(input_path)
    if SUBTITLE_EXTENSION.search(input_str):
        return Path(SUBTITLE_EXTENSION.sub(suffix, input_str))
    return Path(input_str + suffix)


@dataclass
class MergeResult:
    """Translated captions plus what it cost"""
    captions: List[Caption]
    stats: UsageStats
    elapsed: float  # seconds
    output_path: Optional[Path] = None  # set once written to disk


async def translate_and_merge(
    captions: List[Caption],
    batches: List[List[Caption]],
    provider: TranslationProvider,
    delay: float = 0.3,
    on_progress: Optional[ProgressCallback] = None,
) -> MergeResult:
    """
    Translate batches one at a time and merge the results by original position.

    Each caption keeps its place in `captions` and its timing; only the text
    is replaced. A failing batch aborts the whole translation.

    Args:
        captions: The full, ordered caption sequence
        batches: Batches covering `captions` (as produced by split)
        provider: Translation provider
        delay: Seconds to wait between consecutive batches
        on_progress: Called with (done, total, batch_number, batch_count)

    Returns:
        MergeResult with new caption objects, provider stats and elapsed time
    """
    started = time.monotonic()
    positions = {id(caption): i for i, caption in enumerate(captions)}
    merged = list(captions)
    done = 0

    for batch_number, batch in enumerate(batches, 1):
        logger.info(f"Translating batch {batch_number}/{len(batches)} ({len(batch)} captions)")
        translations = await provider.translate_batch(batch)

        if len(translations) != len(batch):
            logger.warning(
                f"Batch {batch_number}: expected {len(batch)} translations, "
                f"got {len(translations)}; keeping original text for the rest"
            )

        for j, caption in enumerate(batch):
            try:
                position = positions[id(caption)]
            except KeyError:
                raise ValueError(f"Batch {batch_number} holds a caption not in the sequence")
            text = translations[j] if j < len(translations) else caption.text
            merged[position] = replace(caption, text=text)

        done += len(batch)
        if on_progress:
            on_progress(done, len(captions), batch_number, len(batches))

        if batch_number < len(batches) and delay > 0:
            await asyncio.sleep(delay)

    elapsed = time.monotonic() - started
    logger.info(f"Translated {len(captions)} captions in {elapsed:.1f}s")
    return MergeResult(captions=merged, stats=provider.get_stats(), elapsed=elapsed)


class Translator:
    """Subtitle translator bound to one provider"""

    def __init__(
        self,
        provider: TranslationProvider,
        batch_size: int = 100,
        max_batch_chars: int = 50000,
        delay: float = 0.3,
    ):
        """
        Initialize translator

        Args:
            provider: Translation provider
            batch_size: Captions per API call
            max_batch_chars: Characters per API call
            delay: Seconds between batches
        """
        self.provider = provider
        self.batch_size = batch_size
        self.max_batch_chars = max_batch_chars
        self.delay = delay
        self._parser = SubtitleParser()
        self._formatter = SubtitleFormatter()

    async def translate_captions(
        self,
        captions: List[Caption],
        on_progress: Optional[ProgressCallback] = None,
    ) -> MergeResult:
        batches = split(captions, self.batch_size, self.max_batch_chars)
        logger.info(f"Using {self.provider.name}: {len(captions)} captions in {len(batches)} batches")
        return await translate_and_merge(
            captions, batches, self.provider, delay=self.delay, on_progress=on_progress
        )

    async def translate_file(
        self,
        input_path: Union[str, Path],
        output_path: Optional[Union[str, Path]] = None,
        output_format: Optional[Union[str, SubtitleFormat]] = None,
        on_progress: Optional[ProgressCallback] = None,
        target_lang: Optional[str] = None,
    ) -> MergeResult:
        """
        Translate a subtitle file.

        The output is written only after every batch has been translated.

        Args:
            input_path: Source subtitle file
            output_path: Destination file, defaults to default_output_path()
            output_format: Output format, defaults to the input's format
            on_progress: Called with (done, total, batch_number, batch_count)
            target_lang: Language name used in the default output path

        Returns:
            MergeResult with output_path set

        Raises:
            InputError: the input cannot be read as UTF-8 text
            EmptyResultError: the input holds no captions
        """
        input_path = Path(input_path)
        content = read_subtitle_file(input_path)
        input_format = detect_format(content, input_path)
        fmt = SubtitleFormat.from_name(output_format) if output_format else input_format

        if output_path is None:
            if not target_lang:
                raise ValueError("output_path or target_lang is required")
            output_path = default_output_path(input_path, target_lang, fmt)

        captions = self._parser.parse(content, input_format)
        result = await self.translate_captions(captions, on_progress=on_progress)
        result.output_path = self._formatter.save(result.captions, output_path, fmt)
        return result
