"""Abstract base class for LLM service providers.

Defines the contract for the text-generation backend that answers chat
messages.  Implementations wrap the Anthropic API, OpenAI (or any
OpenAI-compatible endpoint), or a local Ollama server.  The chat
orchestrator only ever sees this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations: AnthropicLLMProvider, OpenAILLMProvider, OllamaLLMProvider
# Located in: ragchat/providers/llm/
class ILLMProvider(ABC):
    """Contract for generation services used by the chat orchestrator."""

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """Generate a reply for a fully composed prompt.

        Parameters
        ----------
        prompt:
            The complete prompt (system instructions, context, history and
            the user's message) as a single string.

        Returns
        -------
        str
            The model's reply.  Structured content is flattened
            deterministically: text blocks are joined, anything else is
            JSON-serialised with sorted keys.

        Raises
        ------
        ragchat.utils.errors.GenerationProviderError
            If the API call fails or returns no content.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"anthropic"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider has what it needs to make calls."""

    @abstractmethod
    async def validate_credentials(self) -> bool:
        """Make a cheap authenticated call and return whether it succeeded."""
