"""
Utility modules
"""
from .subtitle_extractor import (
    ExtractResult,
    SubtitleStream,
    extract_all,
    extract_subtitle,
    is_video_file,
    list_streams,
)

__all__ = [
    "SubtitleStream",
    "ExtractResult",
    "extract_subtitle",
    "extract_all",
    "list_streams",
    "is_video_file",
]
