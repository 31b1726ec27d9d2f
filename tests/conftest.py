"""Shared pytest fixtures for the ragchat test suite."""

from __future__ import annotations

import hashlib
import re
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from ragchat.config.settings import Settings
from ragchat.interfaces.embedding_provider import IEmbeddingProvider
from ragchat.interfaces.llm_provider import ILLMProvider
from ragchat.providers.cache.memory_cache import MemoryCacheProvider
from ragchat.providers.vector_store.chromadb_provider import ChromaDBProvider
from ragchat.services.chat_history_store import ChatHistoryStore
from ragchat.services.chat_service import ChatService
from ragchat.services.collection_service import CollectionService
from ragchat.services.retrieval_service import RetrievalService
from ragchat.services.session_manager import SessionManager

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


def make_settings(**overrides) -> Settings:
    """Build a Settings instance with test defaults that ignore the host env."""
    defaults = {
        "openai_api_key": "sk-test",
        "openai_base_url": "",
        "anthropic_api_key": "test-anthropic",
        "ollama_base_url": "http://localhost:11434",
        "llm_provider": "",
        "embedding_provider": "",
    }
    defaults.update(overrides)
    return Settings(_env_file=None, **defaults)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


# ---------------------------------------------------------------------------
# Deterministic embeddings
# ---------------------------------------------------------------------------

_EMBEDDING_DIM = 256
_WORD_RE = re.compile(r"[a-z0-9]+")


def _bag_of_words_vector(text: str, dim: int = _EMBEDDING_DIM) -> list[float]:
    """Hash each lowercase word into one of *dim* buckets and normalise.

    Texts that share words end up close in cosine space, which is enough
    for retrieval tests to find the chunk that mentions the query term.
    Bucket 0 carries a small constant so an empty text is not a zero vector.
    """
    values = [0.0] * dim
    values[0] = 0.1
    for word in _WORD_RE.findall(text.lower()):
        bucket = int.from_bytes(hashlib.sha256(word.encode("utf-8")).digest()[:4], "little")
        values[1 + bucket % (dim - 1)] += 1.0
    magnitude = max(sum(v * v for v in values) ** 0.5, 1e-10)
    return [v / magnitude for v in values]


class FakeEmbeddingProvider(IEmbeddingProvider):
    """In-memory deterministic embedding provider for tests."""

    def __init__(self) -> None:
        self.calls: list[list[str]] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [_bag_of_words_vector(text) for text in texts]

    async def embed_single(self, text: str) -> list[float]:
        result = await self.embed([text])
        return result[0]

    def get_dimension(self) -> int:
        return _EMBEDDING_DIM

    def get_provider_name(self) -> str:
        return "fake-embedding"

    def is_available(self) -> bool:
        return True


@pytest.fixture
def embedding_provider() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def mock_embedding_provider() -> IEmbeddingProvider:
    """MagicMock embedding provider returning constant vectors."""
    mock = MagicMock(spec=IEmbeddingProvider)
    mock.embed = AsyncMock(side_effect=lambda texts: [[0.1] * 8 for _ in texts])
    mock.embed_single = AsyncMock(return_value=[0.1] * 8)
    mock.get_dimension.return_value = 8
    mock.get_provider_name.return_value = "mock-embedding"
    mock.is_available.return_value = True
    return mock


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_llm_provider() -> ILLMProvider:
    """Mock ILLMProvider; override ``generate.return_value`` per test."""
    mock = MagicMock(spec=ILLMProvider)
    mock.get_provider_name.return_value = "mock-llm"
    mock.is_available.return_value = True
    mock.validate_credentials = AsyncMock(return_value=True)
    mock.generate = AsyncMock(return_value="mock answer")
    return mock


# ---------------------------------------------------------------------------
# Real ChromaDB store in a temp directory
# ---------------------------------------------------------------------------


@pytest.fixture
def chroma_dir(tmp_path: Path) -> Path:
    return tmp_path / "chroma"


@pytest.fixture
def vector_store(chroma_dir: Path) -> ChromaDBProvider:
    return ChromaDBProvider(persist_directory=str(chroma_dir))


# ---------------------------------------------------------------------------
# Wired services on top of the real store
# ---------------------------------------------------------------------------


@pytest.fixture
def retrieval(embedding_provider, vector_store) -> RetrievalService:
    return RetrievalService(embedding_provider=embedding_provider, vector_store=vector_store)


@pytest.fixture
def history_store(embedding_provider, vector_store) -> ChatHistoryStore:
    return ChatHistoryStore(embedding_provider=embedding_provider, vector_store=vector_store)


@pytest.fixture
def session_manager(vector_store, history_store) -> SessionManager:
    return SessionManager(
        vector_store=vector_store,
        history_store=history_store,
        cache=MemoryCacheProvider(max_size=100, ttl=3600),
        default_system_prompt="You are a test assistant.",
    )


@pytest.fixture
def chat_service(session_manager, retrieval, history_store, mock_llm_provider) -> ChatService:
    return ChatService(
        session_manager=session_manager,
        retrieval=retrieval,
        history_store=history_store,
        llm=mock_llm_provider,
    )


@pytest.fixture
def collection_service(vector_store, embedding_provider, retrieval) -> CollectionService:
    return CollectionService(
        vector_store=vector_store,
        embedding_provider=embedding_provider,
        retrieval=retrieval,
    )
