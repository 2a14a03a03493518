"""
Subtitle Processing Module

Provides:
- Subtitle parsing (SRT, VTT, ASS/SSA) and format detection
- Subtitle formatting back to any of the three formats
- Batching of captions for translation requests
"""
from .parser import Caption, SubtitleFormat, SubtitleParser, detect_format, parse, read_subtitle_file
from .formatter import SubtitleFormatter, serialize
from .batcher import split

__all__ = [
    "Caption",
    "SubtitleFormat",
    "SubtitleParser",
    "SubtitleFormatter",
    "detect_format",
    "read_subtitle_file",
    "parse",
    "serialize",
    "split",
]
