"""Unit tests for RetrievalService -- top-k retrieval and prompt helpers."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from ragchat.interfaces.vector_store_provider import IVectorStoreProvider
from ragchat.models.rag import DocumentInput, RetrievedChunk, StoredRecord
from ragchat.services.retrieval_service import CONTEXT_SEPARATOR, RetrievalService
from ragchat.utils.errors import CollectionNotFoundError


def _chunk(text: str, source: str | None = None, distance: float = 0.2) -> RetrievedChunk:
    metadata = {"source": source} if source is not None else {}
    return RetrievedChunk(
        id=text,
        text=text,
        metadata=metadata,
        relevance_score=1 - distance,
        distance=distance,
    )


class TestRetrieve:
    @pytest.mark.asyncio
    async def test_most_relevant_chunk_first(self, collection_service, retrieval) -> None:
        await collection_service.create_collection("geo")
        await collection_service.add_documents(
            "geo",
            [
                DocumentInput(content="Paris is the capital of France.", metadata={"source": "fr.txt"}),
                DocumentInput(content="Berlin is the capital of Germany.", metadata={"source": "de.txt"}),
                DocumentInput(content="Bananas are yellow fruit.", metadata={"source": "fruit.txt"}),
            ],
        )

        chunks = await retrieval.retrieve("geo", "What is the capital of France?", k=3)

        assert chunks[0].source == "fr.txt"
        scores = [chunk.relevance_score for chunk in chunks]
        assert scores == sorted(scores, reverse=True)
        assert all(0.0 <= score <= 1.0 for score in scores)

    @pytest.mark.asyncio
    async def test_returns_at_most_k(self, collection_service, retrieval) -> None:
        await collection_service.create_collection("geo")
        await collection_service.add_documents(
            "geo", [DocumentInput(content=f"fact number {i}") for i in range(5)]
        )
        assert len(await retrieval.retrieve("geo", "fact", k=2)) == 2

    @pytest.mark.asyncio
    async def test_empty_collection_skips_embedding(
        self, vector_store, embedding_provider, retrieval
    ) -> None:
        await vector_store.create_collection("empty")
        assert await retrieval.retrieve("empty", "anything", k=4) == []
        assert embedding_provider.calls == []

    @pytest.mark.asyncio
    async def test_missing_collection_raises(self, retrieval, embedding_provider) -> None:
        with pytest.raises(CollectionNotFoundError):
            await retrieval.retrieve("missing", "anything", k=4)
        assert embedding_provider.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("k", [0, -1, True])
    async def test_rejects_invalid_k(self, retrieval, k) -> None:
        with pytest.raises(ValueError, match="k must be"):
            await retrieval.retrieve("geo", "q", k=k)

    @pytest.mark.asyncio
    async def test_relevance_is_clamped(self, mock_embedding_provider) -> None:
        store = MagicMock(spec=IVectorStoreProvider)
        store.count = AsyncMock(return_value=2)
        store.query = AsyncMock(
            return_value=[
                StoredRecord(id="a", text="a", distance=-0.01),
                StoredRecord(id="b", text="b", distance=1.7),
            ]
        )
        service = RetrievalService(embedding_provider=mock_embedding_provider, vector_store=store)

        chunks = await service.retrieve("c", "q", k=2)

        assert [chunk.relevance_score for chunk in chunks] == [1.0, 0.0]
        store.query.assert_awaited_once_with("c", [0.1] * 8, 2, where=None)


class TestHelpers:
    def test_build_context_joins_in_order(self) -> None:
        chunks = [_chunk("first"), _chunk("second")]
        assert RetrievalService.build_context(chunks) == f"first{CONTEXT_SEPARATOR}second"

    def test_build_context_empty(self) -> None:
        assert RetrievalService.build_context([]) == ""

    def test_extract_sources_skips_missing(self) -> None:
        chunks = [_chunk("a", "a.txt"), _chunk("b"), _chunk("c", ""), _chunk("d", "a.txt")]
        assert RetrievalService.extract_sources(chunks) == ["a.txt", "a.txt"]
