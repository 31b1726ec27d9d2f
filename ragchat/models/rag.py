"""Retrieval data models for the ragchat document store.

Defines Pydantic v2 models for the records that flow through the vector
store (input and output shapes), the chunks returned by retrieval,
collection summaries, and ingestion results.  All models use frozen config
to enforce immutability.

Retrieval overview:

    1. INGESTION: documents are split into overlapping character windows
       by :class:`~ragchat.services.ingestion.chunker.TextChunker`.
    2. EMBEDDING: each chunk is turned into a vector by an
       :class:`~ragchat.interfaces.embedding_provider.IEmbeddingProvider`.
    3. STORAGE: chunks + vectors are upserted as :class:`VectorRecord` into a
       named collection.
    4. RETRIEVAL: the query is embedded and the store answers with the
       nearest :class:`StoredRecord` entries, which the retrieval service
       turns into :class:`RetrievedChunk` with a relevance score.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Store input / output shapes
# ---------------------------------------------------------------------------
class VectorRecord(BaseModel):
    """A record ready to be written to a vector-store collection."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Primary key inside the collection.")
    vector: list[float] = Field(description="Embedding vector for the text.")
    text: str = Field(description="The stored document text.")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Flat metadata (str / int / float / bool values).",
    )


class StoredRecord(BaseModel):
    """A record read back from the vector store.

    ``distance`` is only populated for similarity queries; metadata lookups
    leave it ``None``.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    text: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    distance: float | None = None


# ---------------------------------------------------------------------------
# RetrievedChunk: what the retrieval engine hands to callers.
# ---------------------------------------------------------------------------
class RetrievedChunk(BaseModel):
    """A chunk returned from a similarity search, with its relevance score.

    ``relevance_score`` is ``1 - distance`` clamped to [0, 1] (cosine space),
    so higher means more relevant.  Lists of chunks are ordered by ascending
    distance.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Identifier of the chunk in its collection.")
    text: str = Field(description="The chunk's textual content.")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Metadata exactly as stored alongside the chunk.",
    )
    relevance_score: float = Field(
        ge=0.0,
        le=1.0,
        description="Similarity between the query and this chunk (0.0-1.0).",
    )
    distance: float = Field(description="Raw distance reported by the store.")

    @property
    def source(self) -> str | None:
        """The ``source`` metadata value, or ``None`` when absent or empty."""
        value = self.metadata.get("source")
        return str(value) if value else None


# ---------------------------------------------------------------------------
# Collection management
# ---------------------------------------------------------------------------
class CollectionInfo(BaseModel):
    """Summary of a named collection."""

    model_config = ConfigDict(frozen=True)

    name: str
    count: int = Field(default=0, ge=0, description="Number of records stored.")
    metadata: dict[str, Any] | None = None


class DocumentInput(BaseModel):
    """A raw document submitted for ingestion."""

    model_config = ConfigDict(frozen=True)

    content: str = Field(description="Full document text.")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Metadata copied onto every chunk of the document.",
    )


class IngestionResult(BaseModel):
    """Outcome of adding documents to a collection."""

    model_config = ConfigDict(frozen=True)

    collection_name: str
    documents: int = Field(ge=0, description="Documents submitted.")
    chunks: int = Field(ge=0, description="Chunks embedded and stored.")
    ids: list[str] = Field(default_factory=list, description="Ids of the stored chunks.")
