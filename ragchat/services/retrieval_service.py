"""Similarity retrieval over a document collection.

Embeds the query with the configured embedding provider, asks the vector
store for the nearest records, and converts each into a
:class:`~ragchat.models.rag.RetrievedChunk` with a relevance score of
``1 - distance`` clamped to [0, 1].  Results keep the store's ascending
distance order, so the first chunk is the most relevant.

Also owns the two small helpers the chat orchestrator uses to turn chunks
into prompt text and a list of sources.
"""

from __future__ import annotations

from typing import Any

import structlog

from ragchat.interfaces.embedding_provider import IEmbeddingProvider
from ragchat.interfaces.vector_store_provider import IVectorStoreProvider
from ragchat.models.rag import RetrievedChunk, StoredRecord
from ragchat.utils.logging import get_logger

logger: structlog.BoundLogger = get_logger(__name__)

CONTEXT_SEPARATOR = "\n\n---\n\n"


def _relevance(distance: float) -> float:
    return max(0.0, min(1.0, 1.0 - distance))


def _to_chunk(record: StoredRecord) -> RetrievedChunk:
    distance = record.distance if record.distance is not None else 0.0
    return RetrievedChunk(
        id=record.id,
        text=record.text,
        metadata=record.metadata,
        relevance_score=_relevance(distance),
        distance=distance,
    )


class RetrievalService:
    """Top-k semantic retrieval against named collections.

    Parameters
    ----------
    embedding_provider:
        Embeds query text.  Must be the provider the collection was built with.
    vector_store:
        Store holding the collections.
    """

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        vector_store: IVectorStoreProvider,
    ) -> None:
        self._embedding_provider = embedding_provider
        self._vector_store = vector_store

    async def retrieve(
        self,
        collection_name: str,
        query_text: str,
        k: int,
        where: dict[str, Any] | None = None,
    ) -> list[RetrievedChunk]:
        """Return up to *k* chunks from *collection_name* most similar to *query_text*.

        Raises
        ------
        ValueError
            If *k* is not a positive integer.
        ragchat.utils.errors.CollectionNotFoundError
            If the collection does not exist.
        """
        if isinstance(k, bool) or not isinstance(k, int) or k < 1:
            raise ValueError(f"k must be a positive integer, got {k!r}")

        # Check before embedding so a bad name does not cost an API call.
        # count() raises CollectionNotFoundError for a missing collection.
        if await self._vector_store.count(collection_name) == 0:
            logger.info("retrieval_empty_collection", collection=collection_name)
            return []

        vector = await self._embedding_provider.embed_single(query_text)
        records = await self._vector_store.query(collection_name, vector, k, where=where)
        chunks = [_to_chunk(record) for record in records]

        logger.info(
            "retrieval_complete",
            collection=collection_name,
            k=k,
            results_count=len(chunks),
            top_score=chunks[0].relevance_score if chunks else 0.0,
        )
        return chunks

    @staticmethod
    def build_context(chunks: list[RetrievedChunk]) -> str:
        """Join chunk texts in relevance order; empty string for no chunks."""
        return CONTEXT_SEPARATOR.join(chunk.text for chunk in chunks)

    @staticmethod
    def extract_sources(chunks: list[RetrievedChunk]) -> list[str]:
        """Return the non-empty ``source`` metadata values in relevance order.

        Duplicates are kept so each entry lines up with a retrieved chunk.
        """
        return [chunk.source for chunk in chunks if chunk.source]
