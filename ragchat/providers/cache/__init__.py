"""Cache provider implementations."""

from ragchat.providers.cache.memory_cache import MemoryCacheProvider

__all__ = ["MemoryCacheProvider"]
