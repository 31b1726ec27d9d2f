"""ragchat FastAPI application entry point.

Wires providers, services and routes together via dependency injection.
Loads configuration from ``.env`` / the environment and
``config/config.yaml``, configures structured logging, and builds every
component once at startup inside the app lifespan.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI

from ragchat.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from ragchat.api.routes import router as api_router
from ragchat.config.loader import apply_overrides, load_config
from ragchat.config.settings import Settings
from ragchat.interfaces.embedding_provider import IEmbeddingProvider
from ragchat.interfaces.llm_provider import ILLMProvider
from ragchat.providers.cache.memory_cache import MemoryCacheProvider
from ragchat.providers.embedding.ollama_embedding_provider import OllamaEmbeddingProvider
from ragchat.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from ragchat.providers.llm.anthropic_provider import AnthropicLLMProvider
from ragchat.providers.llm.ollama_provider import OllamaLLMProvider
from ragchat.providers.llm.openai_provider import OpenAILLMProvider
from ragchat.providers.vector_store.chromadb_provider import ChromaDBProvider
from ragchat.services.chat_history_store import ChatHistoryStore
from ragchat.services.chat_service import ChatService
from ragchat.services.collection_service import CollectionService
from ragchat.services.retrieval_service import RetrievalService
from ragchat.services.session_manager import SessionManager
from ragchat.utils.concurrency import SessionLockRegistry
from ragchat.utils.errors import ConfigurationError
from ragchat.utils.logging import configure_logging, get_logger

_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

config = load_config()
settings = apply_overrides(Settings(), config)

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


_LLM_PROVIDERS: dict[str, type[ILLMProvider]] = {
    "anthropic": AnthropicLLMProvider,
    "openai": OpenAILLMProvider,
    "ollama": OllamaLLMProvider,
}

_EMBEDDING_PROVIDERS: dict[str, type[IEmbeddingProvider]] = {
    "openai": OpenAIEmbeddingProvider,
    "ollama": OllamaEmbeddingProvider,
}


def build_llm_provider(app_settings: Settings) -> ILLMProvider:
    """Select the generation provider.

    ``LLM_PROVIDER`` forces a choice; otherwise the first configured of
    Anthropic -> OpenAI -> Ollama wins.
    """
    forced = app_settings.llm_provider.strip().lower()
    if forced:
        provider_cls = _LLM_PROVIDERS.get(forced)
        if provider_cls is None:
            raise ConfigurationError(
                message=f"Unknown LLM_PROVIDER {forced!r}; expected one of {sorted(_LLM_PROVIDERS)}"
            )
        return provider_cls(settings=app_settings)

    if app_settings.anthropic_api_key:
        return AnthropicLLMProvider(settings=app_settings)
    if app_settings.openai_api_key:
        return OpenAILLMProvider(settings=app_settings)
    return OllamaLLMProvider(settings=app_settings)


def build_embedding_provider(app_settings: Settings) -> IEmbeddingProvider:
    """Select the embedding provider.

    ``EMBEDDING_PROVIDER`` forces a choice; otherwise OpenAI when an API key
    is set, else Ollama.
    """
    forced = app_settings.embedding_provider.strip().lower()
    if forced:
        provider_cls = _EMBEDDING_PROVIDERS.get(forced)
        if provider_cls is None:
            raise ConfigurationError(
                message=(
                    f"Unknown EMBEDDING_PROVIDER {forced!r}; "
                    f"expected one of {sorted(_EMBEDDING_PROVIDERS)}"
                )
            )
        return provider_cls(settings=app_settings)

    if app_settings.openai_api_key:
        return OpenAIEmbeddingProvider(settings=app_settings)
    return OllamaEmbeddingProvider(settings=app_settings)


# ---------------------------------------------------------------------------
# Full DI assembly
# ---------------------------------------------------------------------------


def build_services(
    app_settings: Settings,
    *,
    llm: ILLMProvider,
    embedding: IEmbeddingProvider,
    vector_store: ChromaDBProvider,
) -> dict[str, Any]:
    """Wire the service layer on top of already-built providers."""
    cache = MemoryCacheProvider(
        max_size=app_settings.system_prompt_cache_size,
        ttl=app_settings.system_prompt_cache_ttl,
    )
    retrieval = RetrievalService(embedding_provider=embedding, vector_store=vector_store)
    history_store = ChatHistoryStore(
        embedding_provider=embedding,
        vector_store=vector_store,
        collection_name=app_settings.chroma_chat_collection,
    )
    session_manager = SessionManager(
        vector_store=vector_store,
        history_store=history_store,
        cache=cache,
        default_system_prompt=app_settings.chat_system_prompt,
        locks=SessionLockRegistry(),
    )
    chat_service = ChatService(
        session_manager=session_manager,
        retrieval=retrieval,
        history_store=history_store,
        llm=llm,
        default_k=app_settings.chat_default_k,
        history_max_turns=app_settings.chat_history_max_turns,
        serialize_sessions=app_settings.chat_serialize_sessions,
    )
    collection_service = CollectionService(
        vector_store=vector_store,
        embedding_provider=embedding,
        retrieval=retrieval,
        chat_collection=app_settings.chroma_chat_collection,
        default_chunk_size=app_settings.chunk_size,
        default_chunk_overlap=app_settings.chunk_overlap,
        default_search_k=app_settings.search_default_k,
    )
    return {
        "llm_provider": llm,
        "embedding_provider": embedding,
        "vector_store": vector_store,
        "cache": cache,
        "retrieval_service": retrieval,
        "history_store": history_store,
        "session_manager": session_manager,
        "chat_service": chat_service,
        "collection_service": collection_service,
    }


def _build_all(app_settings: Settings) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    llm = build_llm_provider(app_settings)
    embedding = build_embedding_provider(app_settings)
    vector_store = ChromaDBProvider(
        persist_directory=app_settings.chromadb_persist_dir,
        host=app_settings.chromadb_host,
        port=app_settings.chromadb_port,
    )
    return build_services(app_settings, llm=llm, embedding=embedding, vector_store=vector_store)


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup."""
    components = _build_all(settings)

    for key, value in components.items():
        setattr(application.state, key, value)

    await components["history_store"].ensure_collection()

    _logger.info(
        "app_startup",
        version=_VERSION,
        environment=settings.app_env,
        llm=components["llm_provider"].get_provider_name(),
        embedding=components["embedding_provider"].get_provider_name(),
        chat_collection=settings.chroma_chat_collection,
    )

    yield

    _logger.info("app_shutdown")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="ragchat API",
        version=_VERSION,
        description=(
            "Retrieval-augmented chat over document collections: open a session "
            "on a collection, send messages, and get answers grounded in the "
            "most relevant chunks and the conversation so far."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    origins = [origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()]
    configure_cors(application, allowed_origins=origins)

    application.include_router(api_router)
    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "ragchat.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
