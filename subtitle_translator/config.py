"""
Subtitle Translator - Configuration Module
"""
from collections import OrderedDict
from typing import Dict, Optional

from pydantic_settings import BaseSettings
from loguru import logger


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "subtitle-translator"
    LOG_LEVEL: str = "INFO"

    # Provider credentials (loaded from environment / .env)
    OPENAI_API_KEY: Optional[str] = None
    ANTHROPIC_API_KEY: Optional[str] = None
    GEMINI_API_KEY: Optional[str] = None
    KIMI_API_KEY: Optional[str] = None

    # Translation Settings
    SOURCE_LANG: str = "English"
    TARGET_LANG: str = "Hindi"
    BATCH_SIZE: int = 100  # Captions per API call
    MAX_BATCH_CHARS: int = 50000  # Characters per API call
    MAX_RETRIES: int = 3
    RETRY_DELAY: float = 1.0  # seconds, doubled on every retry
    BATCH_DELAY: float = 0.3  # seconds between consecutive batches

    # HTTP Settings
    REQUEST_TIMEOUT: float = 180.0
    PROXY_URL: Optional[str] = None

    # Whisper Settings
    # Models: tiny, base, small, medium, large, turbo
    WHISPER_MODEL: str = "base"
    # Devices: cpu, cuda, mps, auto
    WHISPER_DEVICE: str = "auto"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    def available_credentials(self) -> Dict[str, str]:
        """
        Provider API keys that are set, in detection order.

        The translation core never reads the process environment itself;
        this map is resolved once here and handed to provider selection.
        """
        keys = OrderedDict()
        keys["openai"] = self.OPENAI_API_KEY
        keys["anthropic"] = self.ANTHROPIC_API_KEY
        keys["gemini"] = self.GEMINI_API_KEY
        keys["kimi"] = self.KIMI_API_KEY
        return OrderedDict((name, key) for name, key in keys.items() if key)


settings = Settings()


def get_httpx_client_kwargs(timeout: Optional[float] = None) -> dict:
    """Get httpx client kwargs including proxy if configured"""
    kwargs = {"timeout": timeout if timeout is not None else settings.REQUEST_TIMEOUT}
    if settings.PROXY_URL:
        kwargs["proxy"] = settings.PROXY_URL
        logger.debug(f"Using proxy: {settings.PROXY_URL}")
    return kwargs
