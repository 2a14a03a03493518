"""
Translation Package

Provides:
- Translation providers (OpenAI, Anthropic, Gemini, Kimi, local Whisper)
- Provider registry and automatic provider selection
- Retry with exponential backoff for provider calls
- Batch translation that merges results back by original position
"""
from .providers import (
    ProviderOptions,
    RemoteProvider,
    TranslationProvider,
    UsageStats,
    WhisperProvider,
    create_provider,
)
from .registry import PROVIDERS, detect_provider, list_providers, select_provider
from .retry import is_retryable, with_retry
from .translator import (
    MergeResult,
    Translator,
    default_output_path,
    resolve_language,
    translate_and_merge,
)

__all__ = [
    # Providers
    "TranslationProvider",
    "RemoteProvider",
    "WhisperProvider",
    "ProviderOptions",
    "UsageStats",
    "create_provider",
    # Selection
    "PROVIDERS",
    "detect_provider",
    "select_provider",
    "list_providers",
    # Retry
    "with_retry",
    "is_retryable",
    # Merge
    "translate_and_merge",
    "MergeResult",
    "Translator",
    "resolve_language",
    "default_output_path",
]
