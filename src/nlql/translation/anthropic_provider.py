from __future__ import annotations

from typing import Any, Dict, Optional

import anthropic
from langchain_anthropic import ChatAnthropic

from nlql.common.errors import TranslationError, TranslationErrorKind
from .chat_provider import ChatTranslationProvider


class AnthropicTranslationProvider(ChatTranslationProvider):
    """Translation through the Anthropic Messages API (Claude models)."""

    name = "anthropic"
    default_model = "claude-sonnet-4-20250514"

    max_tokens = 1024

    def _make_llm(self, timeout: Optional[float]) -> ChatAnthropic:
        kwargs: Dict[str, Any] = {}
        if self.base_url:
            kwargs["base_url"] = self.base_url
        return ChatAnthropic(
            model=self.model,
            api_key=self.api_key,
            temperature=0,
            max_tokens=self.max_tokens,
            timeout=timeout,
            max_retries=0,
            **kwargs,
        )

    def _map_error(self, error: Exception) -> Optional[TranslationError]:
        # APITimeoutError subclasses APIConnectionError, so it is checked first.
        if isinstance(error, anthropic.APITimeoutError):
            return TranslationError(TranslationErrorKind.TIMEOUT, f"model call timed out: {error}")
        if isinstance(error, anthropic.RateLimitError):
            return TranslationError(TranslationErrorKind.RATE_LIMITED, f"rate limited by provider: {error}")
        if isinstance(error, (anthropic.AuthenticationError, anthropic.PermissionDeniedError)):
            return TranslationError(TranslationErrorKind.AUTH_FAILED, f"provider rejected credentials: {error}")
        # Any 5xx, including 529 overloaded, is transient.
        if isinstance(error, anthropic.APIConnectionError) or (
            isinstance(error, anthropic.APIStatusError) and error.status_code >= 500
        ):
            return TranslationError(TranslationErrorKind.UNAVAILABLE, f"provider unreachable: {error}")
        if isinstance(error, anthropic.APIStatusError):
            return TranslationError(
                TranslationErrorKind.MALFORMED_RESPONSE,
                f"provider refused the request ({error.status_code}): {error}",
            )
        return None
