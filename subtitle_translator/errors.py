"""
Error types raised by the subtitle translator.

Codec errors are absorbed where they happen (a malformed block is skipped);
provider errors propagate to the job boundary.
"""
from typing import Optional


class SubtitleTranslatorError(Exception):
    """Base class for all subtitle translator errors"""


class StructuralParseError(SubtitleTranslatorError):
    """A single subtitle block is malformed"""


class UnknownFormatError(SubtitleTranslatorError, ValueError):
    """The subtitle format could not be determined"""


class EmptyResultError(SubtitleTranslatorError):
    """Parsing produced no captions at all"""


class InputError(SubtitleTranslatorError):
    """An input file is missing, unreadable or not UTF-8 text"""


class UnsupportedOperationError(SubtitleTranslatorError):
    """The selected provider cannot perform the requested operation"""


class ConfigurationError(SubtitleTranslatorError):
    """Missing or invalid configuration, e.g. an API key"""


class ProviderAPIError(SubtitleTranslatorError):
    """A translation provider request failed"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TransientNetworkError(ProviderAPIError):
    """HTTP 429/500/502/503, worth retrying"""


class PermanentNetworkError(ProviderAPIError):
    """Any other HTTP or transport failure"""


class ExtractionError(SubtitleTranslatorError):
    """Subtitle stream extraction from a video file failed"""


class TranscriptionError(SubtitleTranslatorError):
    """Local speech-to-text transcription failed"""


class JobConfigError(SubtitleTranslatorError):
    """Invalid batch job configuration file"""
