import pytest
from loguru import logger

from subtitle_translator.subtitles.parser import Caption


@pytest.fixture
def make_captions():
    def build(*texts, step_ms=2000):
        return [
            Caption(index=i, start_ms=(i - 1) * step_ms, end_ms=(i - 1) * step_ms + 1500, text=text)
            for i, text in enumerate(texts, 1)
        ]
    return build


@pytest.fixture
def log_messages():
    """Collect loguru messages emitted during a test"""
    messages = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
