"""
Translation providers.

Remote providers (OpenAI, Anthropic, Gemini, Kimi) share one implementation
that talks to each vendor through its API dialect. The local Whisper
provider only handles audio and refuses text translation.
"""
import asyncio
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Mapping, Optional

import httpx
from loguru import logger

from ..config import get_httpx_client_kwargs
from ..errors import (
    ConfigurationError,
    PermanentNetworkError,
    TransientNetworkError,
    UnsupportedOperationError,
)
from ..subtitles.parser import Caption
from .registry import PROVIDERS, select_provider
from .retry import RETRYABLE_STATUS, with_retry


SYSTEM_PROMPT = """You are an expert subtitle translator. Translate naturally while:
- Adapting idioms and cultural references for the target audience
- Keeping translations concise for subtitle timing
- Preserving tone, emotion, and formality level
- Handling sentence fragments gracefully

CRITICAL: You will receive N numbered lines. Return EXACTLY N translations, one per line.
Format each line as: [number] translation
Keep any <br> markers, they are line breaks inside one subtitle.
Example input: [1] Hello [2] Goodbye
Example output: [1] Hola [2] Adiós"""

LINE_BREAK_MARKER = "<br>"

NUMBERED_LINE = re.compile(r"^\[(\d+)\]\s*(.+)$")
LINE_BREAK_PATTERN = re.compile(r"\s*<br\s*/?>\s*", re.IGNORECASE)


@dataclass
class TokenUsage:
    """Token counts reported by one API response"""
    input_tokens: int = 0
    output_tokens: int = 0
    cached_tokens: int = 0
    total_tokens: int = 0


@dataclass
class UsageStats:
    """Accumulated usage for one provider instance"""
    total_tokens: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    cached_tokens: int = 0
    api_calls: int = 0
    retries: int = 0

    def add_usage(self, usage: TokenUsage):
        self.input_tokens += usage.input_tokens
        self.output_tokens += usage.output_tokens
        self.cached_tokens += usage.cached_tokens
        self.total_tokens += usage.total_tokens


def build_prompt(captions: List[Caption], source_lang: str, target_lang: str) -> str:
    """Build the numbered user prompt for a batch"""
    numbered = "\n".join(
        f"[{i}] {caption.text.replace(chr(10), LINE_BREAK_MARKER)}"
        for i, caption in enumerate(captions, 1)
    )
    count = len(captions)
    return (
        f"Translate these {count} subtitle lines from {source_lang} to {target_lang}:\n\n"
        f"{numbered}\n\n"
        f"Output exactly {count} translated lines:"
    )


def parse_numbered_response(response: str, originals: List[str]) -> List[str]:
    """
    Map a numbered model response back onto the batch positions.

    "[n] text" lines fill position n-1. Other non-empty lines fill the lowest
    position still empty. Positions left empty keep their original text, so
    the result always has len(originals) entries.
    """
    count = len(originals)
    results: List[Optional[str]] = [None] * count

    for raw_line in response.split("\n"):
        line = raw_line.strip()
        if not line or line.startswith("```"):
            continue

        match = NUMBERED_LINE.match(line)
        if match:
            position = int(match.group(1)) - 1
            text = match.group(2).strip()
            if 0 <= position < count and text:
                results[position] = text
            continue

        for position in range(count):
            if results[position] is None:
                results[position] = line
                break

    translations = []
    for position, text in enumerate(results):
        if text is None:
            logger.warning(f"Missing translation for line {position + 1}, using original")
            translations.append(originals[position])
        else:
            translations.append(LINE_BREAK_PATTERN.sub("\n", text))
    return translations


# ==================== API dialects ====================

def _openai_headers(api_key: str) -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }


def _openai_payload(model: str, system: str, prompt: str) -> Dict[str, Any]:
    return {
        "model": model,
        "messages": [
            {"role": "system", "content": system},
            {"role": "user", "content": prompt},
        ],
        "temperature": 0.3,
    }


def _openai_text(data: Dict[str, Any]) -> str:
    return data["choices"][0]["message"]["content"] or ""


def _openai_usage(data: Dict[str, Any]) -> Optional[TokenUsage]:
    usage = data.get("usage")
    if not usage:
        return None
    prompt_tokens = usage.get("prompt_tokens") or 0
    completion_tokens = usage.get("completion_tokens") or 0
    details = usage.get("prompt_tokens_details") or {}
    return TokenUsage(
        input_tokens=prompt_tokens,
        output_tokens=completion_tokens,
        cached_tokens=details.get("cached_tokens") or 0,
        total_tokens=usage.get("total_tokens") or prompt_tokens + completion_tokens,
    )


def _anthropic_headers(api_key: str) -> Dict[str, str]:
    return {
        "x-api-key": api_key,
        "anthropic-version": "2023-06-01",
        "Content-Type": "application/json",
    }


def _messages_payload(max_tokens: int) -> Callable[[str, str, str], Dict[str, Any]]:
    def build(model: str, system: str, prompt: str) -> Dict[str, Any]:
        return {
            "model": model,
            "max_tokens": max_tokens,
            "system": system,
            "messages": [{"role": "user", "content": prompt}],
        }
    return build


def _messages_text(data: Dict[str, Any]) -> str:
    return "".join(
        block.get("text", "")
        for block in data["content"]
        if block.get("type", "text") == "text"
    )


def _anthropic_usage(data: Dict[str, Any]) -> Optional[TokenUsage]:
    usage = data.get("usage")
    if not usage:
        return None
    input_tokens = usage.get("input_tokens") or 0
    output_tokens = usage.get("output_tokens") or 0
    return TokenUsage(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        cached_tokens=usage.get("cache_read_input_tokens") or 0,
        total_tokens=input_tokens + output_tokens,
    )


def _kimi_usage(data: Dict[str, Any]) -> Optional[TokenUsage]:
    usage = data.get("usage")
    if not usage:
        return None
    input_tokens = usage.get("input_tokens") or 0
    output_tokens = usage.get("output_tokens") or 0
    return TokenUsage(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        cached_tokens=usage.get("cached_tokens") or 0,
        total_tokens=usage.get("total_tokens") or input_tokens + output_tokens,
    )


def _gemini_headers(api_key: str) -> Dict[str, str]:
    return {
        "x-goog-api-key": api_key,
        "Content-Type": "application/json",
    }


def _gemini_payload(model: str, system: str, prompt: str) -> Dict[str, Any]:
    return {
        "systemInstruction": {"parts": [{"text": system}]},
        "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        "generationConfig": {"temperature": 0.3},
    }


def _gemini_text(data: Dict[str, Any]) -> str:
    parts = data["candidates"][0]["content"]["parts"]
    return "".join(part.get("text", "") for part in parts)


def _gemini_usage(data: Dict[str, Any]) -> Optional[TokenUsage]:
    usage = data.get("usageMetadata")
    if not usage:
        return None
    input_tokens = usage.get("promptTokenCount") or 0
    output_tokens = usage.get("candidatesTokenCount") or 0
    return TokenUsage(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        cached_tokens=usage.get("cachedContentTokenCount") or 0,
        total_tokens=usage.get("totalTokenCount") or input_tokens + output_tokens,
    )


@dataclass(frozen=True)
class ApiDialect:
    """How one vendor shapes requests and responses"""
    path: str
    headers: Callable[[str], Dict[str, str]]
    payload: Callable[[str, str, str], Dict[str, Any]]
    text: Callable[[Dict[str, Any]], str]
    usage: Callable[[Dict[str, Any]], Optional[TokenUsage]]


DIALECTS: Dict[str, ApiDialect] = {
    "openai": ApiDialect(
        path="/v1/chat/completions",
        headers=_openai_headers,
        payload=_openai_payload,
        text=_openai_text,
        usage=_openai_usage,
    ),
    "anthropic": ApiDialect(
        path="/v1/messages",
        headers=_anthropic_headers,
        payload=_messages_payload(16000),
        text=_messages_text,
        usage=_anthropic_usage,
    ),
    "gemini": ApiDialect(
        path="/v1beta/models/{model}:generateContent",
        headers=_gemini_headers,
        payload=_gemini_payload,
        text=_gemini_text,
        usage=_gemini_usage,
    ),
    "kimi": ApiDialect(
        path="/v1/messages",
        headers=_anthropic_headers,
        payload=_messages_payload(32000),
        text=_messages_text,
        usage=_kimi_usage,
    ),
}


# ==================== Providers ====================

class TranslationProvider(ABC):
    """A backend that translates a batch of captions"""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name"""
        pass

    @abstractmethod
    async def translate_batch(self, captions: List[Caption]) -> List[str]:
        """Translate captions; result[i] belongs to captions[i]"""
        pass

    @abstractmethod
    def get_stats(self) -> UsageStats:
        """Snapshot of usage statistics"""
        pass

    @abstractmethod
    def reset_stats(self):
        """Start statistics from zero"""
        pass


class RemoteProvider(TranslationProvider):
    """LLM translation over a vendor's HTTPS JSON API"""

    def __init__(
        self,
        name: str,
        api_key: str,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        source_lang: str = "English",
        target_lang: str = "Hindi",
        max_retries: int = 3,
        retry_delay: float = 1.0,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ):
        if name not in DIALECTS:
            raise ConfigurationError(f"{name} is not a remote translation provider")
        if not api_key:
            raise ConfigurationError(f"{PROVIDERS[name].display_name} API key is required")

        self._info = PROVIDERS[name]
        self._dialect = DIALECTS[name]
        self.api_key = api_key
        self.model = model or self._info.default_model
        self.base_url = (base_url or self._info.base_url).rstrip("/")
        self.source_lang = source_lang
        self.target_lang = target_lang
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._transport = transport
        self._sleep = sleep
        self._stats = UsageStats()
        logger.info(f"Initialized {self._info.display_name} provider with model: {self.model}")

    @property
    def name(self) -> str:
        return self._info.name

    @property
    def endpoint(self) -> str:
        return self.base_url + self._dialect.path.format(model=self.model)

    async def translate_batch(self, captions: List[Caption]) -> List[str]:
        if not captions:
            return []

        prompt = build_prompt(captions, self.source_lang, self.target_lang)

        data = await with_retry(
            lambda: self._post(prompt),
            max_retries=self.max_retries,
            base_delay=self.retry_delay,
            on_retry=self._on_retry,
            sleep=self._sleep,
        )

        self._stats.api_calls += 1
        usage = self._dialect.usage(data)
        if usage:
            self._stats.add_usage(usage)

        try:
            response_text = self._dialect.text(data)
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            logger.warning(f"{self._info.display_name} response had no text ({e}), keeping originals")
            response_text = ""

        return parse_numbered_response(response_text, [caption.text for caption in captions])

    def get_stats(self) -> UsageStats:
        return replace(self._stats)

    def reset_stats(self):
        self._stats = UsageStats()

    def _on_retry(self, attempt: int, error: Exception):
        self._stats.retries += 1
        logger.warning(f"Retry {attempt}/{self.max_retries}: {str(error)[:80]}")

    async def _post(self, prompt: str) -> Dict[str, Any]:
        display_name = self._info.display_name
        try:
            client_kwargs = get_httpx_client_kwargs(self.timeout)
            if self._transport is not None:
                client_kwargs.pop("proxy", None)
                client_kwargs["transport"] = self._transport

            async with httpx.AsyncClient(**client_kwargs) as client:
                response = await client.post(
                    self.endpoint,
                    headers=self._dialect.headers(self.api_key),
                    json=self._dialect.payload(self.model, SYSTEM_PROMPT, prompt),
                )
        except httpx.HTTPError as e:
            logger.error(f"{display_name} request failed: {e}")
            raise PermanentNetworkError(f"{display_name} request failed: {e}") from e

        if response.status_code != 200:
            error_text = response.text[:500]
            logger.error(f"{display_name} API error {response.status_code}: {error_text}")
            error_cls = (
                TransientNetworkError
                if response.status_code in RETRYABLE_STATUS
                else PermanentNetworkError
            )
            raise error_cls(
                f"{display_name} API error {response.status_code}: {error_text}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise PermanentNetworkError(f"{display_name} returned invalid JSON: {e}") from e


class WhisperProvider(TranslationProvider):
    """
    Local Whisper provider.

    Whisper works on audio, not text, and can only translate into English.
    Use transcription.transcribe for audio files.
    """

    ENGLISH_NAMES = ("english", "en")

    def __init__(self, source_lang: str = "English", target_lang: str = "English", model: str = "base"):
        if target_lang.strip().lower() not in self.ENGLISH_NAMES:
            raise UnsupportedOperationError(
                f"Whisper can only translate TO English, not to {target_lang}. "
                f"For translation to other languages, use: --provider openai|anthropic|gemini|kimi"
            )
        self.source_lang = source_lang
        self.target_lang = target_lang
        self.model = model
        self._stats = UsageStats()

    @property
    def name(self) -> str:
        return "whisper"

    async def translate_batch(self, captions: List[Caption]) -> List[str]:
        raise UnsupportedOperationError(
            "Whisper provider does not support text translation. "
            "Use the transcribe command for audio/video files, or "
            "--provider openai|anthropic|gemini|kimi for subtitle text."
        )

    def get_stats(self) -> UsageStats:
        return replace(self._stats)

    def reset_stats(self):
        self._stats = UsageStats()


@dataclass
class ProviderOptions:
    """Options for create_provider"""
    provider: Optional[str] = None
    api_key: Optional[str] = None
    model: Optional[str] = None
    base_url: Optional[str] = None
    source_lang: str = "English"
    target_lang: str = "Hindi"
    max_retries: int = 3
    retry_delay: float = 1.0
    timeout: Optional[float] = None


def create_provider(
    options: ProviderOptions,
    credentials: Optional[Mapping[str, str]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    sleep: Callable[[float], Any] = asyncio.sleep,
) -> TranslationProvider:
    """
    Create a translation provider, selecting it automatically when not given.

    Args:
        options: Provider options
        credentials: Resolved provider -> API key map (see Settings.available_credentials)
        transport: Optional httpx transport for remote providers
        sleep: Coroutine used for retry backoff

    Raises:
        ConfigurationError: unknown provider or missing API key
        UnsupportedOperationError: whisper selected with a non-English target
    """
    name, api_key = select_provider(options.provider, options.api_key, credentials)

    if name == "whisper":
        return WhisperProvider(
            source_lang=options.source_lang,
            target_lang=options.target_lang,
            model=options.model or PROVIDERS["whisper"].default_model,
        )

    return RemoteProvider(
        name,
        api_key,
        model=options.model,
        base_url=options.base_url,
        source_lang=options.source_lang,
        target_lang=options.target_lang,
        max_retries=options.max_retries,
        retry_delay=options.retry_delay,
        timeout=options.timeout,
        transport=transport,
        sleep=sleep,
    )
