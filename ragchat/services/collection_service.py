"""Collection and document management.

Creates, lists, inspects and deletes document collections, ingests raw
documents (chunk -> embed -> upsert), removes chunks by id, and runs direct
similarity searches.  The chat-history collection lives in the same store
but is reserved: it is hidden from listings and every other operation treats
it as missing.
"""

from __future__ import annotations

import json
import re
import uuid
from typing import Any

import structlog

from ragchat.interfaces.embedding_provider import IEmbeddingProvider
from ragchat.interfaces.vector_store_provider import IVectorStoreProvider
from ragchat.models.rag import (
    CollectionInfo,
    DocumentInput,
    IngestionResult,
    RetrievedChunk,
    VectorRecord,
)
from ragchat.services.ingestion.chunker import TextChunker
from ragchat.services.retrieval_service import RetrievalService
from ragchat.utils.errors import CollectionExistsError, CollectionNotFoundError
from ragchat.utils.logging import get_logger

logger: structlog.BoundLogger = get_logger(__name__)

# 3-512 characters, alphanumeric at both ends (ChromaDB's naming rule).
COLLECTION_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_-]{1,510}[a-zA-Z0-9]$")


def validate_collection_name(name: str) -> str:
    """Return *name* unchanged, or raise ``ValueError`` if ChromaDB would reject it."""
    if not COLLECTION_NAME_PATTERN.match(name or ""):
        raise ValueError(
            f"Invalid collection name {name!r}: use 3-512 letters, digits, '_' or '-', "
            "starting and ending with a letter or digit"
        )
    return name


def _flatten_metadata(metadata: dict[str, Any]) -> dict[str, Any]:
    # The store only accepts scalar metadata values.
    flat: dict[str, Any] = {}
    for key, value in metadata.items():
        if value is None:
            continue
        if isinstance(value, (str, int, float, bool)):
            flat[key] = value
        else:
            flat[key] = json.dumps(value, sort_keys=True, default=str)
    return flat


class CollectionService:
    """Document collection management on top of the vector store.

    Parameters
    ----------
    vector_store:
        Store holding the collections.
    embedding_provider:
        Embeds chunks at ingestion time.
    retrieval:
        Retrieval engine used by :meth:`search`.
    chat_collection:
        Name of the chat-history collection.  Hidden from
        :meth:`list_collections` and reported as missing everywhere else.
    default_chunk_size, default_chunk_overlap:
        Chunking defaults for :meth:`add_documents`.
    default_search_k:
        Result count for :meth:`search` when ``k`` is omitted.
    """

    def __init__(
        self,
        vector_store: IVectorStoreProvider,
        embedding_provider: IEmbeddingProvider,
        retrieval: RetrievalService,
        chat_collection: str = "chat_history",
        default_chunk_size: int = 1000,
        default_chunk_overlap: int = 200,
        default_search_k: int = 5,
    ) -> None:
        self._vector_store = vector_store
        self._embedding_provider = embedding_provider
        self._retrieval = retrieval
        self._chat_collection = chat_collection
        self._default_chunk_size = default_chunk_size
        self._default_chunk_overlap = default_chunk_overlap
        self._default_search_k = default_search_k

    def _reject_reserved(self, name: str) -> None:
        if name == self._chat_collection:
            raise CollectionNotFoundError(name, provider_name=self._vector_store.get_provider_name())

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    async def list_collections(self) -> list[CollectionInfo]:
        collections = await self._vector_store.list_collections()
        return [info for info in collections if info.name != self._chat_collection]

    async def create_collection(
        self, name: str, metadata: dict[str, Any] | None = None
    ) -> CollectionInfo:
        """Create a collection.

        Raises
        ------
        ValueError
            If the name breaks ``COLLECTION_NAME_PATTERN``.
        ragchat.utils.errors.CollectionExistsError
            If the name is already taken, including the chat-history name.
        """
        validate_collection_name(name)
        if name == self._chat_collection:
            raise CollectionExistsError(name, provider_name=self._vector_store.get_provider_name())
        info = await self._vector_store.create_collection(
            name, _flatten_metadata(metadata) if metadata else None
        )
        logger.info("collection_created", collection=name)
        return info

    async def get_collection(self, name: str) -> CollectionInfo:
        self._reject_reserved(name)
        return await self._vector_store.get_collection(name)

    async def delete_collection(self, name: str) -> None:
        self._reject_reserved(name)
        await self._vector_store.delete_collection(name)
        logger.info("collection_deleted", collection=name)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def add_documents(
        self,
        name: str,
        documents: list[DocumentInput],
        chunk_size: int | None = None,
        chunk_overlap: int | None = None,
    ) -> IngestionResult:
        """Chunk, embed and store *documents* in collection *name*.

        Each chunk carries its document's metadata plus ``chunk_index``
        (position of the chunk within its document).

        Raises
        ------
        ValueError
            If *documents* is empty or the chunking parameters are invalid.
        ragchat.utils.errors.CollectionNotFoundError
            If the collection does not exist.
        """
        self._reject_reserved(name)
        if not documents:
            raise ValueError("documents must contain at least one document")
        chunker = TextChunker(
            chunk_size=chunk_size or self._default_chunk_size,
            chunk_overlap=self._default_chunk_overlap if chunk_overlap is None else chunk_overlap,
        )
        if not await self._vector_store.collection_exists(name):
            raise CollectionNotFoundError(name, provider_name=self._vector_store.get_provider_name())

        texts: list[str] = []
        metadatas: list[dict[str, Any]] = []
        for document in documents:
            base = _flatten_metadata(document.metadata)
            for index, chunk in enumerate(chunker.split_text(document.content)):
                texts.append(chunk)
                metadatas.append({**base, "chunk_index": index})

        if not texts:
            logger.info("ingestion_no_chunks", collection=name, documents=len(documents))
            return IngestionResult(collection_name=name, documents=len(documents), chunks=0)

        vectors = await self._embedding_provider.embed(texts)
        records = [
            VectorRecord(id=str(uuid.uuid4()), vector=vector, text=text, metadata=metadata)
            for text, vector, metadata in zip(texts, vectors, metadatas, strict=True)
        ]
        await self._vector_store.upsert(name, records)

        logger.info(
            "documents_ingested",
            collection=name,
            documents=len(documents),
            chunks=len(records),
            chunk_size=chunker.chunk_size,
            chunk_overlap=chunker.chunk_overlap,
        )
        return IngestionResult(
            collection_name=name,
            documents=len(documents),
            chunks=len(records),
            ids=[record.id for record in records],
        )

    async def delete_documents(self, name: str, ids: list[str]) -> int:
        self._reject_reserved(name)
        if not ids:
            raise ValueError("ids must contain at least one id")
        return await self._vector_store.delete(name, ids)

    async def search(self, name: str, query: str, k: int | None = None) -> list[RetrievedChunk]:
        """Direct similarity search, most relevant first."""
        self._reject_reserved(name)
        return await self._retrieval.retrieve(name, query, k or self._default_search_k)
