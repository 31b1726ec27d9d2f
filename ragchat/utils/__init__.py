"""Utility modules for ragchat.

- **errors** -- Domain-specific exception hierarchy rooted at RagChatError;
  each component raises its own subclass so the HTTP layer can map
  not-found errors to 404 and everything else to a sanitised 500.
- **concurrency** -- per-session ``asyncio.Lock`` registry used by the
  chat orchestrator to serialise turns on one session.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
"""

from ragchat.utils.concurrency import SessionLockRegistry
from ragchat.utils.errors import (
    CollectionExistsError,
    CollectionNotFoundError,
    ConfigurationError,
    EmbeddingProviderError,
    GenerationProviderError,
    RagChatError,
    SessionNotFoundError,
    StoreError,
)
from ragchat.utils.logging import configure_logging, get_logger

__all__ = [
    "CollectionExistsError",
    "CollectionNotFoundError",
    "ConfigurationError",
    "EmbeddingProviderError",
    "GenerationProviderError",
    "RagChatError",
    "SessionLockRegistry",
    "SessionNotFoundError",
    "StoreError",
    "configure_logging",
    "get_logger",
]
