from typing import Optional

from nlql.common.errors import ConfigurationError
from .provider import TranslationProvider

PROVIDER_ALIASES = {
    "openai": "openai",
    "gpt": "openai",
    "chatgpt": "openai",
    "anthropic": "anthropic",
    "claude": "anthropic",
}

API_KEY_ENV = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}


def resolve_provider(provider: str) -> str:
    """Maps a provider name or alias (``claude``, ``gpt``, ...) to its canonical name.

    Raises:
        ConfigurationError: Unknown provider.
    """
    name = PROVIDER_ALIASES.get((provider or "").strip().lower())
    if name is None:
        raise ConfigurationError(
            f"Unsupported LLM provider: {provider!r} (supported: {', '.join(sorted(PROVIDER_ALIASES))})"
        )
    return name


def create_provider(
    provider: str,
    model: Optional[str],
    api_key: Optional[str],
    base_url: Optional[str] = None,
    timeout_sec: float = 30.0,
    max_attempts: int = 3,
    backoff_sec: float = 0.5,
    backoff_max_sec: float = 8.0,
    breaker_fail_max: int = 5,
    breaker_reset_sec: int = 60,
) -> TranslationProvider:
    """Builds the configured TranslationProvider.

    ``model`` falls back to the provider's default model when empty.

    Raises:
        ConfigurationError: Unknown provider or missing API key.
    """
    name = resolve_provider(provider)
    if not api_key:
        raise ConfigurationError(f"{API_KEY_ENV[name]} is not set (or pass --api-key)")

    if name == "anthropic":
        from .anthropic_provider import AnthropicTranslationProvider as provider_cls
    else:
        from .openai_provider import OpenAITranslationProvider as provider_cls

    return provider_cls(
        api_key=api_key,
        model=model,
        base_url=base_url,
        timeout_sec=timeout_sec,
        max_attempts=max_attempts,
        backoff_sec=backoff_sec,
        backoff_max_sec=backoff_max_sec,
        breaker_fail_max=breaker_fail_max,
        breaker_reset_sec=breaker_reset_sec,
    )
