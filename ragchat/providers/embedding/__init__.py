"""Embedding provider implementations.

Embeddings turn text into vectors used for similarity search, for both
document chunks and stored chat turns.

    1. OpenAIEmbeddingProvider -- text-embedding-3-small (1536 dims), needs an API key.
    2. OllamaEmbeddingProvider -- nomic-embed-text via a local Ollama server (768 dims).
"""

from ragchat.providers.embedding.ollama_embedding_provider import OllamaEmbeddingProvider
from ragchat.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["OllamaEmbeddingProvider", "OpenAIEmbeddingProvider"]
