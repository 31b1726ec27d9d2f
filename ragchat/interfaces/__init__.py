"""Public interface definitions for all external service providers.

Every external service ragchat talks to is accessed through the abstract
base classes in this package.  Concrete adapters implement them and are
injected at startup by ``ragchat.main``, so services and tests never depend
on a particular SDK.

CONCRETE PROVIDER MAP:
    Interface              ->  Concrete implementations (in ragchat/providers/)
    ---------------------------------------------------------------------
    ILLMProvider           ->  AnthropicLLMProvider, OpenAILLMProvider,
                               OllamaLLMProvider
    IEmbeddingProvider     ->  OpenAIEmbeddingProvider, OllamaEmbeddingProvider
    IVectorStoreProvider   ->  ChromaDBProvider
    ICacheProvider         ->  MemoryCacheProvider
"""

from ragchat.interfaces.cache_provider import ICacheProvider
from ragchat.interfaces.embedding_provider import IEmbeddingProvider
from ragchat.interfaces.llm_provider import ILLMProvider
from ragchat.interfaces.vector_store_provider import IVectorStoreProvider

__all__ = [
    "ICacheProvider",
    "IEmbeddingProvider",
    "ILLMProvider",
    "IVectorStoreProvider",
]
