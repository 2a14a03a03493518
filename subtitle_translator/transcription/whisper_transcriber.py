"""
Local Whisper Transcription Module

Turns audio/video into a subtitle file with openai-whisper. Whisper can
transcribe any language, and translate speech into English only.
"""
import asyncio
import importlib.util
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from loguru import logger

from ..config import settings
from ..errors import TranscriptionError
from ..subtitles.formatter import SubtitleFormatter
from ..subtitles.parser import Caption, SubtitleFormat


WHISPER_MODELS = [
    {"name": "tiny", "params": "39M", "vram": "~1GB", "speed": "~10x", "note": "Fastest, lowest quality"},
    {"name": "base", "params": "74M", "vram": "~1GB", "speed": "~7x", "note": "Good balance for quick tasks"},
    {"name": "small", "params": "244M", "vram": "~2GB", "speed": "~4x", "note": "Better accuracy"},
    {"name": "medium", "params": "769M", "vram": "~5GB", "speed": "~2x", "note": "High quality, supports translation"},
    {"name": "large", "params": "1550M", "vram": "~10GB", "speed": "1x", "note": "Best accuracy"},
    {"name": "turbo", "params": "809M", "vram": "~6GB", "speed": "~8x", "note": "Fast, NO translation support"},
]

TASKS = ("transcribe", "translate")


@dataclass
class TranscribeOptions:
    """Options for a transcription run"""
    model: str = "base"
    task: str = "transcribe"  # transcribe, or translate (to English)
    language: Optional[str] = None  # None = auto-detect
    output_format: str = "srt"
    output_dir: Optional[Path] = None  # defaults to the input's directory
    device: str = "auto"


@dataclass
class TranscriptionResult:
    """Full transcription result"""
    output_path: Path
    captions: List[Caption]
    language: str
    duration: float  # seconds spent transcribing


def is_whisper_installed() -> bool:
    """Check whether the openai-whisper package can be imported"""
    return importlib.util.find_spec("whisper") is not None


class WhisperTranscriber:
    """Local Whisper-based transcription"""

    def __init__(self, model_name: str = "base", device: str = "auto"):
        """
        Initialize Whisper transcriber

        Args:
            model_name: Whisper model size (tiny, base, small, medium, large, turbo)
            device: Device to run on (cpu, cuda, mps, auto)
        """
        self.model_name = model_name
        self.device = self._validate_device(device)
        self._model = None
        self._formatter = SubtitleFormatter()
        logger.info(f"Initializing Whisper transcriber with model: {model_name}, device: {self.device}")

    def _validate_device(self, requested_device: str) -> str:
        """Validate and return the best available device"""
        requested_device = requested_device.lower()
        if requested_device == "cpu":
            return "cpu"

        try:
            import torch
        except ImportError:
            logger.warning("torch not installed, using CPU")
            return "cpu"

        if requested_device == "auto":
            device = "cuda" if torch.cuda.is_available() else "cpu"
            logger.info(f"Auto-detected device: {device}")
            return device

        if requested_device == "cuda":
            if torch.cuda.is_available():
                return "cuda"
            logger.warning("CUDA requested but not available, falling back to CPU")
            return "cpu"

        if requested_device == "mps":
            if torch.backends.mps.is_available():
                logger.warning("MPS requested - MPS may have stability issues with Whisper (NaN values)")
                return "mps"
            logger.warning("MPS requested but not available, falling back to CPU")
            return "cpu"

        return "cpu"

    @property
    def model(self):
        """Lazy load the Whisper model"""
        if self._model is None:
            try:
                import whisper
            except ImportError:
                raise TranscriptionError(
                    "Whisper is not installed. Install with: pip install \"subtitle-translator[whisper]\" "
                    "(ffmpeg is also required)"
                )
            logger.info(f"Loading Whisper model: {self.model_name}")
            self._model = whisper.load_model(self.model_name, device=self.device)
            logger.info("Whisper model loaded successfully")
        return self._model

    async def transcribe(
        self,
        audio_path: Union[str, Path],
        options: Optional[TranscribeOptions] = None,
    ) -> TranscriptionResult:
        """
        Transcribe an audio/video file to a subtitle file.

        Args:
            audio_path: Path to audio or video file
            options: Transcription options

        Returns:
            TranscriptionResult with the written subtitle path

        Raises:
            TranscriptionError: invalid options, missing input or Whisper failure
        """
        options = options or TranscribeOptions(model=self.model_name)
        audio_path = Path(audio_path)

        if options.task not in TASKS:
            raise TranscriptionError(f"Unknown task {options.task!r}, expected one of {TASKS}")
        if options.task == "translate" and self.model_name == "turbo":
            raise TranscriptionError(
                'The "turbo" model does not support translation. '
                "Use --model medium or --model large for translation tasks."
            )
        fmt = SubtitleFormat.from_name(options.output_format)

        if not audio_path.exists():
            raise TranscriptionError(f"Input file not found: {audio_path}")

        logger.info(f"Transcribing: {audio_path} (task: {options.task})")
        started = time.monotonic()

        def do_transcribe():
            decode_options = {
                "task": options.task,
                "verbose": False,
                "fp16": self.device == "cuda",
                "temperature": 0,
            }
            if options.language:
                decode_options["language"] = options.language
            return self.model.transcribe(str(audio_path), **decode_options)

        loop = asyncio.get_running_loop()
        try:
            result = await loop.run_in_executor(None, do_transcribe)
        except TranscriptionError:
            raise
        except Exception as e:
            logger.error(f"Transcription failed: {e}")
            raise TranscriptionError(f"Whisper failed on {audio_path}: {e}") from e

        captions = []
        for seg in result.get("segments", []):
            text = seg["text"].strip()
            if not text:
                continue
            captions.append(Caption(
                index=len(captions) + 1,
                start_ms=int(round(seg["start"] * 1000)),
                end_ms=int(round(seg["end"] * 1000)),
                text=text,
            ))

        if not captions:
            raise TranscriptionError(f"Whisper produced no speech segments for {audio_path}")

        output_dir = Path(options.output_dir) if options.output_dir else audio_path.parent
        output_path = output_dir / f"{audio_path.stem}.{fmt.extension}"
        self._formatter.save(captions, output_path, fmt)

        detected_language = result.get("language", "unknown")
        duration = time.monotonic() - started
        logger.info(f"Transcription complete. Language: {detected_language}, Captions: {len(captions)}")

        return TranscriptionResult(
            output_path=output_path,
            captions=captions,
            language=detected_language,
            duration=duration,
        )


async def transcribe(
    audio_path: Union[str, Path],
    options: Optional[TranscribeOptions] = None,
) -> Path:
    """Transcribe audio/video and return the written subtitle file"""
    options = options or TranscribeOptions(model=settings.WHISPER_MODEL, device=settings.WHISPER_DEVICE)
    transcriber = WhisperTranscriber(model_name=options.model, device=options.device)
    result = await transcriber.transcribe(audio_path, options)
    return result.output_path
