from __future__ import annotations

from typing import Optional

import openai
from langchain_openai import ChatOpenAI

from nlql.common.errors import TranslationError, TranslationErrorKind
from .chat_provider import ChatTranslationProvider


class OpenAITranslationProvider(ChatTranslationProvider):
    """Translation through any OpenAI-compatible chat completion endpoint.

    ``base_url`` points the client at a compatible gateway. Requests use
    temperature 0 and a fixed seed so repeated questions get the same SQL.
    """

    name = "openai"
    default_model = "gpt-4o"

    def _make_llm(self, timeout: Optional[float]) -> ChatOpenAI:
        return ChatOpenAI(
            model=self.model,
            api_key=self.api_key,
            base_url=self.base_url,
            temperature=0,
            seed=42,
            timeout=timeout,
            max_retries=0,
        )

    def _map_error(self, error: Exception) -> Optional[TranslationError]:
        if isinstance(error, openai.APITimeoutError):
            return TranslationError(TranslationErrorKind.TIMEOUT, f"model call timed out: {error}")
        if isinstance(error, openai.RateLimitError):
            return TranslationError(TranslationErrorKind.RATE_LIMITED, f"rate limited by provider: {error}")
        if isinstance(error, (openai.AuthenticationError, openai.PermissionDeniedError)):
            return TranslationError(TranslationErrorKind.AUTH_FAILED, f"provider rejected credentials: {error}")
        if isinstance(error, (openai.APIConnectionError, openai.InternalServerError)):
            return TranslationError(TranslationErrorKind.UNAVAILABLE, f"provider unreachable: {error}")
        if isinstance(error, openai.APIStatusError):
            return TranslationError(
                TranslationErrorKind.MALFORMED_RESPONSE,
                f"provider refused the request ({error.status_code}): {error}",
            )
        return None
