"""
Caption batching for translation requests.
"""
from typing import List

from loguru import logger

from .parser import Caption


DEFAULT_MAX_COUNT = 500
DEFAULT_MAX_CHARS = 50000


def split(
    captions: List[Caption],
    max_count: int = DEFAULT_MAX_COUNT,
    max_chars: int = DEFAULT_MAX_CHARS,
) -> List[List[Caption]]:
    """
    Split captions into ordered batches bounded by count and total text length.

    A caption longer than max_chars is never split; it ends up alone in
    its own batch. Concatenating the batches gives back the input.

    Args:
        captions: Ordered captions
        max_count: Maximum captions per batch (>= 1)
        max_chars: Maximum total text characters per batch (>= 1)

    Returns:
        List of batches, each a list of the original Caption objects
    """
    if max_count < 1:
        raise ValueError(f"max_count must be >= 1, got {max_count}")
    if max_chars < 1:
        raise ValueError(f"max_chars must be >= 1, got {max_chars}")

    batches: List[List[Caption]] = []
    current: List[Caption] = []
    current_chars = 0

    for caption in captions:
        text_length = len(caption.text)

        if len(current) >= max_count or (current and current_chars + text_length > max_chars):
            batches.append(current)
            current = []
            current_chars = 0

        current.append(caption)
        current_chars += text_length

    if current:
        batches.append(current)

    logger.debug(f"Split {len(captions)} captions into {len(batches)} batches")
    return batches
