"""ChromaDB vector store provider adapter.

Wraps ``chromadb.PersistentClient`` (or ``chromadb.HttpClient`` when a
server host is configured) to implement :class:`IVectorStoreProvider`.
Collections use cosine distance, and every vector is computed by an
:class:`~ragchat.interfaces.embedding_provider.IEmbeddingProvider` before it
reaches this adapter.
"""

from __future__ import annotations

import os
from typing import Any

# Disable ChromaDB telemetry before importing chromadb:
#   1. ANONYMIZED_TELEMETRY env var
#   2. posthog.disabled = True
#   3. Settings(anonymized_telemetry=False) passed to the client
os.environ["ANONYMIZED_TELEMETRY"] = "False"

import posthog

posthog.disabled = True

import chromadb
import chromadb.errors
import structlog

from ragchat.interfaces.vector_store_provider import IVectorStoreProvider
from ragchat.models.rag import CollectionInfo, StoredRecord, VectorRecord
from ragchat.utils.errors import CollectionExistsError, CollectionNotFoundError, StoreError

logger = structlog.get_logger(logger_name=__name__)

_COSINE_METADATA = {"hnsw:space": "cosine"}

# Raised by chromadb when a collection name is unknown.  Older releases
# used ValueError, 1.x raises NotFoundError.
_MISSING_COLLECTION_ERRORS = (chromadb.errors.NotFoundError, ValueError)


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """No-op embedding function that prevents ChromaDB from loading a model.

    ragchat always passes pre-computed vectors, so ChromaDB's built-in
    embedding is never invoked.  Without this, ChromaDB downloads its
    default ONNX model on collection creation.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError(
            "ragchat uses pre-computed embeddings; "
            "ChromaDB's built-in embedding should never be called."
        )

    def name(self) -> str:
        """Return function name (required by ChromaDB's EmbeddingFunction protocol)."""
        return "noop_precomputed"


def _normalize_where(where: dict[str, Any] | None) -> dict[str, Any] | None:
    """Turn a flat multi-key equality dict into Chroma's ``$and`` form.

    Chroma only accepts one top-level key per filter, so
    ``{"a": 1, "b": 2}`` becomes ``{"$and": [{"a": 1}, {"b": 2}]}``.
    """
    if not where:
        return None
    if len(where) == 1:
        return where
    return {"$and": [{key: value} for key, value in where.items()]}


class ChromaDBProvider(IVectorStoreProvider):
    """Vector store provider backed by ChromaDB.

    Parameters
    ----------
    persist_directory:
        On-disk location for the local persistent client.
    host:
        When non-empty, connect to a Chroma server at ``host:port``
        instead of opening a local store.
    port:
        Chroma server port (ignored for local persistence).
    client:
        Pre-built ``chromadb`` client, mainly for tests.
    """

    def __init__(
        self,
        persist_directory: str = "./data/chromadb",
        host: str = "",
        port: int = 8000,
        client: Any | None = None,
    ) -> None:
        self._persist_directory = persist_directory
        self._host = host
        client_settings = chromadb.config.Settings(anonymized_telemetry=False)
        if client is not None:
            self._client = client
        elif host:
            self._client = chromadb.HttpClient(host=host, port=port, settings=client_settings)
        else:
            self._client = chromadb.PersistentClient(
                path=persist_directory,
                settings=client_settings,
            )
        logger.info(
            "chromadb_client_ready",
            mode="http" if host else "persistent",
            location=f"{host}:{port}" if host else persist_directory,
        )

    # ------------------------------------------------------------------
    # Collection handles
    # ------------------------------------------------------------------

    def _open(self, name: str) -> Any:
        """Return an existing collection handle or raise CollectionNotFoundError.

        Newer ChromaDB versions reject an embedding function that differs
        from the one persisted with the collection; in that case the
        collection is reopened without one.
        """
        try:
            try:
                return self._client.get_collection(
                    name=name, embedding_function=_NoopEmbeddingFunction()
                )
            except ValueError as exc:
                if "does not exist" in str(exc):
                    raise
                return self._client.get_collection(name=name)
        except _MISSING_COLLECTION_ERRORS as exc:
            raise CollectionNotFoundError(name, provider_name=self.get_provider_name()) from exc

    def _open_or_create(self, name: str, metadata: dict[str, Any] | None = None) -> Any:
        merged = {**(metadata or {}), **_COSINE_METADATA}
        try:
            return self._client.get_or_create_collection(
                name=name,
                metadata=merged,
                embedding_function=_NoopEmbeddingFunction(),
            )
        except ValueError:
            return self._client.get_or_create_collection(name=name, metadata=merged)

    @staticmethod
    def _info(collection: Any) -> CollectionInfo:
        return CollectionInfo(
            name=collection.name,
            count=collection.count(),
            metadata=dict(collection.metadata) if collection.metadata else None,
        )

    # ------------------------------------------------------------------
    # Collection management
    # ------------------------------------------------------------------

    async def collection_exists(self, name: str) -> bool:
        try:
            self._open(name)
        except CollectionNotFoundError:
            return False
        return True

    async def create_collection(
        self, name: str, metadata: dict[str, Any] | None = None
    ) -> CollectionInfo:
        if await self.collection_exists(name):
            raise CollectionExistsError(name, provider_name=self.get_provider_name())
        merged = {**(metadata or {}), **_COSINE_METADATA}
        try:
            collection = self._client.create_collection(
                name=name,
                metadata=merged,
                embedding_function=_NoopEmbeddingFunction(),
            )
        except (chromadb.errors.UniqueConstraintError, chromadb.errors.InternalError) as exc:
            if "already exists" in str(exc):
                raise CollectionExistsError(name, provider_name=self.get_provider_name()) from exc
            raise StoreError(
                message=f"ChromaDB create_collection failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except Exception as exc:
            raise StoreError(
                message=f"ChromaDB create_collection failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("chromadb_collection_created", collection=name)
        return self._info(collection)

    async def get_or_create_collection(self, name: str) -> CollectionInfo:
        try:
            return self._info(self._open_or_create(name))
        except Exception as exc:
            raise StoreError(
                message=f"ChromaDB get_or_create_collection failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def get_collection(self, name: str) -> CollectionInfo:
        return self._info(self._open(name))

    async def delete_collection(self, name: str) -> None:
        self._open(name)
        try:
            self._client.delete_collection(name=name)
        except _MISSING_COLLECTION_ERRORS as exc:
            raise CollectionNotFoundError(name, provider_name=self.get_provider_name()) from exc
        except Exception as exc:
            raise StoreError(
                message=f"ChromaDB delete_collection failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("chromadb_collection_deleted", collection=name)

    async def list_collections(self) -> list[CollectionInfo]:
        try:
            listed = self._client.list_collections()
            infos: list[CollectionInfo] = []
            for entry in listed:
                # 0.6+ may hand back names instead of Collection objects.
                collection = self._open(entry) if isinstance(entry, str) else entry
                infos.append(self._info(collection))
            return infos
        except CollectionNotFoundError:
            raise
        except Exception as exc:
            raise StoreError(
                message=f"ChromaDB list_collections failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def count(self, collection: str) -> int:
        return self._open(collection).count()

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    async def upsert(self, collection: str, records: list[VectorRecord]) -> int:
        if not records:
            return 0
        handle = self._open(collection)
        try:
            handle.upsert(
                ids=[record.id for record in records],
                embeddings=[record.vector for record in records],
                documents=[record.text for record in records],
                metadatas=[dict(record.metadata) for record in records],
            )
        except Exception as exc:
            raise StoreError(
                message=f"ChromaDB upsert failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("chroma_upsert", collection=collection, records=len(records))
        return len(records)

    async def query(
        self,
        collection: str,
        vector: list[float],
        k: int,
        where: dict[str, Any] | None = None,
    ) -> list[StoredRecord]:
        handle = self._open(collection)
        try:
            total = handle.count()
            if total == 0:
                return []

            kwargs: dict[str, Any] = {
                "query_embeddings": [vector],
                "n_results": min(k, total),
                "include": ["documents", "metadatas", "distances"],
            }
            where_clause = _normalize_where(where)
            if where_clause:
                kwargs["where"] = where_clause

            results = handle.query(**kwargs)
        except Exception as exc:
            raise StoreError(
                message=f"ChromaDB query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if not results["ids"] or not results["ids"][0]:
            return []

        ids = results["ids"][0]
        documents = results["documents"][0] if results.get("documents") else [""] * len(ids)
        metadatas = results["metadatas"][0] if results.get("metadatas") else [{}] * len(ids)
        distances = results["distances"][0] if results.get("distances") else [0.0] * len(ids)

        records = [
            StoredRecord(
                id=record_id,
                text=document or "",
                metadata=dict(metadata or {}),
                distance=float(distance),
            )
            for record_id, document, metadata, distance in zip(
                ids, documents, metadatas, distances, strict=True
            )
        ]
        records.sort(key=lambda record: record.distance)
        logger.debug(
            "chromadb_query",
            collection=collection,
            k=k,
            results_count=len(records),
        )
        return records

    async def get_by_metadata(
        self,
        collection: str,
        where: dict[str, Any],
        limit: int | None = None,
    ) -> list[StoredRecord]:
        handle = self._open(collection)
        kwargs: dict[str, Any] = {
            "where": _normalize_where(where),
            "include": ["documents", "metadatas"],
        }
        if limit is not None:
            kwargs["limit"] = limit
        try:
            results = handle.get(**kwargs)
        except Exception as exc:
            raise StoreError(
                message=f"ChromaDB get failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        ids = results.get("ids") or []
        documents = results.get("documents") or [""] * len(ids)
        metadatas = results.get("metadatas") or [{}] * len(ids)
        return [
            StoredRecord(id=record_id, text=document or "", metadata=dict(metadata or {}))
            for record_id, document, metadata in zip(ids, documents, metadatas, strict=True)
        ]

    async def delete(self, collection: str, ids: list[str]) -> int:
        if not ids:
            return 0
        handle = self._open(collection)
        try:
            handle.delete(ids=list(ids))
        except Exception as exc:
            raise StoreError(
                message=f"ChromaDB delete failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("chroma_delete", collection=collection, records=len(ids))
        return len(ids)

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def get_provider_name(self) -> str:
        return "chromadb"

    def is_available(self) -> bool:
        """Return ``True`` if the client answers a heartbeat."""
        try:
            self._client.heartbeat()
            return True
        except Exception:  # noqa: BLE001
            return False
