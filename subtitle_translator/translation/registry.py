"""
Translation provider registry and provider selection.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

from loguru import logger

from ..errors import ConfigurationError


@dataclass(frozen=True)
class ProviderInfo:
    """Static description of a translation provider"""
    name: str
    display_name: str
    description: str
    requires_api_key: bool
    env_var: str
    default_model: str
    models: List[str] = field(default_factory=list)
    base_url: Optional[str] = None


PROVIDERS: Dict[str, ProviderInfo] = {
    "openai": ProviderInfo(
        name="openai",
        display_name="OpenAI",
        description="GPT-4o and GPT-4o-mini models",
        requires_api_key=True,
        env_var="OPENAI_API_KEY",
        default_model="gpt-4o-mini",
        models=["gpt-4o", "gpt-4o-mini", "gpt-4-turbo", "gpt-3.5-turbo"],
        base_url="https://api.openai.com",
    ),
    "anthropic": ProviderInfo(
        name="anthropic",
        display_name="Anthropic",
        description="Claude 3.5 Sonnet and Claude 3 models",
        requires_api_key=True,
        env_var="ANTHROPIC_API_KEY",
        default_model="claude-3-5-sonnet-20241022",
        models=[
            "claude-3-5-sonnet-20241022",
            "claude-3-5-haiku-20241022",
            "claude-3-opus-20240229",
            "claude-3-haiku-20240307",
        ],
        base_url="https://api.anthropic.com",
    ),
    "gemini": ProviderInfo(
        name="gemini",
        display_name="Google Gemini",
        description="Gemini 1.5 Pro and Flash models",
        requires_api_key=True,
        env_var="GEMINI_API_KEY",
        default_model="gemini-1.5-flash",
        models=["gemini-1.5-pro", "gemini-1.5-flash", "gemini-1.5-flash-8b", "gemini-2.0-flash-exp"],
        base_url="https://generativelanguage.googleapis.com",
    ),
    "kimi": ProviderInfo(
        name="kimi",
        display_name="Kimi",
        description="Moonshot Kimi models (pay per request)",
        requires_api_key=True,
        env_var="KIMI_API_KEY",
        default_model="kimi-for-coding",
        models=["kimi-for-coding", "kimi-for-coding-thinking"],
        base_url="https://api.kimi.com/coding",
    ),
    "whisper": ProviderInfo(
        name="whisper",
        display_name="Whisper (Local)",
        description="Free local transcription/translation using OpenAI Whisper",
        requires_api_key=False,
        env_var="",
        default_model="base",
        models=["tiny", "base", "small", "medium", "large", "turbo"],
    ),
}

# Order in which configured credentials are considered when nothing is explicit
CREDENTIAL_SCAN_ORDER = ("openai", "anthropic", "gemini", "kimi")

FALLBACK_PROVIDER = "whisper"


def get_provider_info(name: str) -> ProviderInfo:
    try:
        return PROVIDERS[name.lower()]
    except KeyError:
        raise ConfigurationError(
            f"Unknown provider: {name}. Available: {', '.join(PROVIDERS)}"
        )


def detect_provider(api_key: str) -> Optional[str]:
    """Guess the provider from an API key prefix, None if unrecognised"""
    if api_key.startswith("sk-kimi-"):
        return "kimi"
    if api_key.startswith("sk-ant-"):
        return "anthropic"
    # Plain sk- is ambiguous; OpenAI wins
    if api_key.startswith("sk-"):
        return "openai"
    if api_key.startswith("AIza"):
        return "gemini"
    return None


def select_provider(
    provider: Optional[str] = None,
    api_key: Optional[str] = None,
    credentials: Optional[Mapping[str, str]] = None,
) -> Tuple[str, Optional[str]]:
    """
    Decide which provider to use and with which key.

    Priority:
    1. Explicit provider name
    2. Provider detected from an explicit API key prefix (unknown -> openai)
    3. First configured credential in CREDENTIAL_SCAN_ORDER
    4. Local whisper

    Args:
        provider: Explicit provider name
        api_key: Explicit API key
        credentials: Resolved provider -> API key map

    Returns:
        (provider name, api key or None)

    Raises:
        ConfigurationError: unknown provider, or a required key is missing
    """
    credentials = credentials or {}

    if provider:
        name = get_provider_info(provider).name
        key = api_key or credentials.get(name)
    elif api_key:
        name = detect_provider(api_key) or "openai"
        key = api_key
    else:
        name, key = FALLBACK_PROVIDER, None
        for candidate in CREDENTIAL_SCAN_ORDER:
            if credentials.get(candidate):
                name, key = candidate, credentials[candidate]
                break

    info = PROVIDERS[name]
    if info.requires_api_key and not key:
        raise ConfigurationError(
            f"{info.display_name} requires an API key. "
            f"Set {info.env_var} environment variable or use --api-key flag."
        )

    logger.debug(f"Selected provider: {name}")
    return name, key


def list_providers(credentials: Optional[Mapping[str, str]] = None) -> List[dict]:
    """List all providers with their configuration status"""
    credentials = credentials or {}
    return [
        {
            "name": info.name,
            "display_name": info.display_name,
            "description": info.description,
            "configured": bool(credentials.get(info.name)) if info.requires_api_key else True,
            "env_var": info.env_var,
            "models": list(info.models),
        }
        for info in PROVIDERS.values()
    ]


def get_provider_help(name: str) -> str:
    """Configuration help text for a provider"""
    info = get_provider_info(name)

    if info.name == "whisper":
        return f"""
{info.display_name} - {info.description}

This is a FREE local option that uses OpenAI's Whisper for speech recognition.

Installation:
  pip install "subtitle-translator[whisper]"
  apt install ffmpeg

Usage:
  subtitle-translator transcribe video.mp4 --model base
  subtitle-translator transcribe foreign_video.mp4 --model medium --translate

Models: {', '.join(info.models)}

Note: Whisper can only translate TO English. For other target languages,
use OpenAI, Anthropic, Gemini or Kimi.
"""

    return f"""
{info.display_name} - {info.description}

Configuration:
  export {info.env_var}=your-api-key
  # or add {info.env_var}=your-api-key to .env
  # or pass --provider {info.name} --api-key your-key

Models: {', '.join(info.models)}
Default: {info.default_model}
"""
