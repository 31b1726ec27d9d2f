"""Generation provider adapters."""

from ragchat.providers.llm.anthropic_provider import AnthropicLLMProvider
from ragchat.providers.llm.ollama_provider import OllamaLLMProvider
from ragchat.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["AnthropicLLMProvider", "OllamaLLMProvider", "OpenAILLMProvider"]
