"""Unit tests for generation provider adapters -- OpenAI, Anthropic, Ollama."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from ragchat.config.settings import Settings
from ragchat.utils.errors import GenerationProviderError
from tests.conftest import make_settings


def _openai_response(content, total_tokens: int = 42) -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content=content))]
    response.usage = MagicMock(total_tokens=total_tokens)
    return response


def _api_error(message: str = "server exploded") -> openai.APIError:
    request = httpx.Request("POST", "https://api.example.com/v1/chat/completions")
    return openai.APIError(message, request=request, body=None)


# ======================================================================
# OpenAI
# ======================================================================


class TestOpenAILLMProvider:
    @pytest.fixture()
    def settings(self) -> Settings:
        return make_settings()

    def test_provider_name(self, settings: Settings) -> None:
        from ragchat.providers.llm.openai_provider import OpenAILLMProvider

        assert OpenAILLMProvider(settings).get_provider_name() == "openai"
        compatible = OpenAILLMProvider(make_settings(openai_base_url="https://api.together.xyz/v1"))
        assert compatible.get_provider_name() == "openai-compatible"

    def test_is_available(self, settings: Settings) -> None:
        from ragchat.providers.llm.openai_provider import OpenAILLMProvider

        assert OpenAILLMProvider(settings).is_available() is True
        assert OpenAILLMProvider(make_settings(openai_api_key="")).is_available() is False

    @pytest.mark.asyncio
    async def test_generate_success(self, settings: Settings) -> None:
        from ragchat.providers.llm.openai_provider import OpenAILLMProvider

        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=_openai_response("Paris."))

        with patch("ragchat.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            provider = OpenAILLMProvider(settings)
            result = await provider.generate("PROMPT")

        assert result == "Paris."
        kwargs = mock_client.chat.completions.create.await_args.kwargs
        assert kwargs["messages"] == [{"role": "user", "content": "PROMPT"}]
        assert kwargs["model"] == settings.openai_chat_model

    @pytest.mark.asyncio
    async def test_generate_flattens_list_content(self, settings: Settings) -> None:
        from ragchat.providers.llm.openai_provider import OpenAILLMProvider

        content = [{"type": "text", "text": "line one"}, {"type": "text", "text": "line two"}]
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=_openai_response(content))

        with patch("ragchat.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            result = await OpenAILLMProvider(settings).generate("PROMPT")

        assert result == "line one\nline two"

    @pytest.mark.asyncio
    async def test_generate_api_error(self, settings: Settings) -> None:
        from ragchat.providers.llm.openai_provider import OpenAILLMProvider

        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(side_effect=_api_error())

        with patch("ragchat.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            provider = OpenAILLMProvider(settings)
            with pytest.raises(GenerationProviderError) as exc_info:
                await provider.generate("PROMPT")

        assert exc_info.value.provider_name == "openai"
        assert isinstance(exc_info.value.__cause__, openai.APIError)

    @pytest.mark.asyncio
    async def test_generate_empty_response(self, settings: Settings) -> None:
        from ragchat.providers.llm.openai_provider import OpenAILLMProvider

        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=_openai_response(None))

        with patch("ragchat.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            with pytest.raises(GenerationProviderError, match="empty"):
                await OpenAILLMProvider(settings).generate("PROMPT")

    @pytest.mark.asyncio
    async def test_generate_no_choices(self, settings: Settings) -> None:
        from ragchat.providers.llm.openai_provider import OpenAILLMProvider

        response = MagicMock()
        response.choices = []
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=response)

        with patch("ragchat.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            with pytest.raises(GenerationProviderError, match="no choices"):
                await OpenAILLMProvider(settings).generate("PROMPT")

    @pytest.mark.asyncio
    async def test_validate_credentials(self, settings: Settings) -> None:
        from ragchat.providers.llm.openai_provider import OpenAILLMProvider

        mock_client = AsyncMock()
        mock_client.models.list = AsyncMock(return_value=[])

        with patch("ragchat.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            assert await OpenAILLMProvider(settings).validate_credentials() is True

    @pytest.mark.asyncio
    async def test_validate_credentials_without_key(self) -> None:
        from ragchat.providers.llm.openai_provider import OpenAILLMProvider

        provider = OpenAILLMProvider(make_settings(openai_api_key=""))
        assert await provider.validate_credentials() is False


# ======================================================================
# Anthropic
# ======================================================================


class TestAnthropicLLMProvider:
    @pytest.fixture()
    def settings(self) -> Settings:
        return make_settings()

    def test_identity(self, settings: Settings) -> None:
        from ragchat.providers.llm.anthropic_provider import AnthropicLLMProvider

        provider = AnthropicLLMProvider(settings)
        assert provider.get_provider_name() == "anthropic"
        assert provider.is_available() is True
        assert AnthropicLLMProvider(make_settings(anthropic_api_key="")).is_available() is False

    @pytest.mark.asyncio
    async def test_generate_joins_text_blocks(self, settings: Settings) -> None:
        from ragchat.providers.llm.anthropic_provider import AnthropicLLMProvider

        response = MagicMock()
        response.content = [
            {"type": "text", "text": "Paris"},
            {"type": "text", "text": "is the capital."},
        ]
        response.usage = MagicMock(input_tokens=10, output_tokens=5)
        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(return_value=response)

        with patch(
            "ragchat.providers.llm.anthropic_provider.anthropic.AsyncAnthropic",
            return_value=mock_client,
        ):
            result = await AnthropicLLMProvider(settings).generate("PROMPT")

        assert result == "Paris\nis the capital."
        kwargs = mock_client.messages.create.await_args.kwargs
        assert kwargs["messages"] == [{"role": "user", "content": "PROMPT"}]
        assert kwargs["max_tokens"] == settings.llm_max_tokens

    @pytest.mark.asyncio
    async def test_generate_empty_content(self, settings: Settings) -> None:
        from ragchat.providers.llm.anthropic_provider import AnthropicLLMProvider

        response = MagicMock()
        response.content = []
        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(return_value=response)

        with patch(
            "ragchat.providers.llm.anthropic_provider.anthropic.AsyncAnthropic",
            return_value=mock_client,
        ):
            with pytest.raises(GenerationProviderError, match="no content"):
                await AnthropicLLMProvider(settings).generate("PROMPT")


# ======================================================================
# Ollama
# ======================================================================


class TestOllamaLLMProvider:
    @pytest.fixture()
    def settings(self) -> Settings:
        return make_settings()

    def test_client_points_at_v1(self, settings: Settings) -> None:
        from ragchat.providers.llm.ollama_provider import OllamaLLMProvider

        with patch("ragchat.providers.llm.ollama_provider.openai.AsyncOpenAI") as client_cls:
            provider = OllamaLLMProvider(settings)

        assert client_cls.call_args.kwargs["base_url"] == "http://localhost:11434/v1"
        assert provider.get_provider_name() == "ollama"
        assert provider.is_available() is True

    @pytest.mark.asyncio
    async def test_generate_success(self, settings: Settings) -> None:
        from ragchat.providers.llm.ollama_provider import OllamaLLMProvider

        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=_openai_response("local answer"))

        with patch("ragchat.providers.llm.ollama_provider.openai.AsyncOpenAI", return_value=mock_client):
            result = await OllamaLLMProvider(settings).generate("PROMPT")

        assert result == "local answer"
        assert mock_client.chat.completions.create.await_args.kwargs["model"] == "llama3.2"

    @pytest.mark.asyncio
    async def test_generate_api_error(self, settings: Settings) -> None:
        from ragchat.providers.llm.ollama_provider import OllamaLLMProvider

        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(side_effect=_api_error("connection refused"))

        with patch("ragchat.providers.llm.ollama_provider.openai.AsyncOpenAI", return_value=mock_client):
            with pytest.raises(GenerationProviderError, match="Ollama API error"):
                await OllamaLLMProvider(settings).generate("PROMPT")
