"""Vector store provider implementations."""

from ragchat.providers.vector_store.chromadb_provider import ChromaDBProvider

__all__ = ["ChromaDBProvider"]
