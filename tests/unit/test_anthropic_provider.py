import anthropic
import httpx
import pytest
from unittest.mock import MagicMock, patch
from langchain_core.messages import AIMessage

from nlql.common.errors import ConfigurationError, TranslationError, TranslationErrorKind
from nlql.pipeline.runner import PipelineConfig
from nlql.translation.anthropic_provider import AnthropicTranslationProvider
from nlql.translation.prompt_builder import TranslationPrompt
from nlql.translation.registry import create_provider

REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
PROMPT = TranslationPrompt(system="Output only SQL.", user="show all users", dialect="sqlite")


def status_error(cls, code):
    return cls("boom", response=httpx.Response(code, request=REQUEST), body=None)


@pytest.fixture
def mock_chat():
    with patch("nlql.translation.anthropic_provider.ChatAnthropic") as chat_cls:
        llm = MagicMock()
        chat_cls.return_value = llm
        yield chat_cls, llm


@pytest.fixture
def mock_sleep():
    with patch("nlql.translation.chat_provider.time.sleep") as sleep, \
            patch("nlql.translation.chat_provider.random.uniform", return_value=0.0):
        yield sleep


class TestAnthropicTranslationProvider:

    def test_success_extracts_sql(self, mock_chat, mock_sleep):
        chat_cls, llm = mock_chat
        llm.invoke.return_value = AIMessage(content=[{"type": "text", "text": "SELECT * FROM users;"}])

        candidate = AnthropicTranslationProvider(api_key="sk-ant").translate(PROMPT)

        assert candidate.sql == "SELECT * FROM users;"
        assert candidate.model == "claude-sonnet-4-20250514"
        kwargs = chat_cls.call_args.kwargs
        assert kwargs["temperature"] == 0
        assert kwargs["max_retries"] == 0
        assert kwargs["max_tokens"] == 1024
        assert "base_url" not in kwargs

    def test_base_url_is_passed_when_set(self, mock_chat, mock_sleep):
        chat_cls, llm = mock_chat
        llm.invoke.return_value = AIMessage(content="SELECT 1")

        AnthropicTranslationProvider(api_key="sk-ant", base_url="http://gateway").translate(PROMPT)

        assert chat_cls.call_args.kwargs["base_url"] == "http://gateway"

    def test_timeouts_are_retried_then_surface(self, mock_chat, mock_sleep):
        _, llm = mock_chat
        llm.invoke.side_effect = anthropic.APITimeoutError(request=REQUEST)

        with pytest.raises(TranslationError) as exc:
            AnthropicTranslationProvider(api_key="sk-ant", max_attempts=3).translate(PROMPT)

        assert exc.value.error_kind == TranslationErrorKind.TIMEOUT
        assert llm.invoke.call_count == 3
        assert mock_sleep.call_count == 2

    @pytest.mark.parametrize("code", [500, 529])
    def test_server_errors_are_transient(self, mock_chat, mock_sleep, code):
        _, llm = mock_chat
        llm.invoke.side_effect = [status_error(anthropic.APIStatusError, code), AIMessage(content="SELECT 1")]

        candidate = AnthropicTranslationProvider(api_key="sk-ant").translate(PROMPT)

        assert candidate.sql == "SELECT 1"
        assert llm.invoke.call_count == 2

    def test_auth_failure_not_retried(self, mock_chat, mock_sleep):
        _, llm = mock_chat
        llm.invoke.side_effect = status_error(anthropic.AuthenticationError, 401)

        with pytest.raises(TranslationError) as exc:
            AnthropicTranslationProvider(api_key="bad").translate(PROMPT)

        assert exc.value.error_kind == TranslationErrorKind.AUTH_FAILED
        assert llm.invoke.call_count == 1
        mock_sleep.assert_not_called()

    def test_bad_request_is_malformed(self, mock_chat, mock_sleep):
        _, llm = mock_chat
        llm.invoke.side_effect = status_error(anthropic.BadRequestError, 400)

        with pytest.raises(TranslationError) as exc:
            AnthropicTranslationProvider(api_key="sk-ant").translate(PROMPT)

        assert exc.value.error_kind == TranslationErrorKind.MALFORMED_RESPONSE

    def test_refusal_starting_with_keyword_is_malformed(self, mock_chat, mock_sleep):
        _, llm = mock_chat
        llm.invoke.return_value = AIMessage(content="Update: I'm sorry, but I can't generate SQL that deletes data.")

        with pytest.raises(TranslationError) as exc:
            AnthropicTranslationProvider(api_key="sk-ant").translate(PROMPT)

        assert exc.value.error_kind == TranslationErrorKind.MALFORMED_RESPONSE
        assert llm.invoke.call_count == 1


class TestProviderSelection:

    @pytest.mark.parametrize("name", ["claude", "Anthropic"])
    def test_claude_aliases(self, name):
        provider = create_provider(name, model=None, api_key="sk-ant")
        assert isinstance(provider, AnthropicTranslationProvider)
        assert provider.model == "claude-sonnet-4-20250514"

    def test_missing_anthropic_key(self):
        with pytest.raises(ConfigurationError) as exc:
            create_provider("claude", model=None, api_key="")
        assert exc.value.message.startswith("ANTHROPIC_API_KEY is not set")

    def test_config_picks_key_of_selected_provider(self):
        config = PipelineConfig(llm_provider="claude", openai_api_key="sk-openai", anthropic_api_key="sk-ant")
        assert config.provider_api_key() == "sk-ant"
        assert config.model_copy(update={"llm_provider": "gpt"}).provider_api_key() == "sk-openai"

    def test_explicit_key_wins(self):
        config = PipelineConfig(llm_provider="claude", anthropic_api_key="sk-ant", llm_api_key="sk-flag")
        assert config.provider_api_key() == "sk-flag"
