"""Abstract base class for vector-store service providers.

Defines the contract for storing pre-embedded records in named collections
and reading them back by similarity or by exact metadata match.  The store
never embeds anything itself: callers pass vectors in and query with a
vector.

**Filter syntax** (the *where* dict accepted by :meth:`query` and
:meth:`get_by_metadata`) follows Chroma's operator style:

* ``{"session_id": "abc"}`` -- exact match on one field.
* ``{"$and": [{"session_id": "abc"}, {"record_type": "turn"}]}`` --
  conjunction of several exact matches.
* ``{"source": {"$in": ["a.md", "b.md"]}}`` -- membership.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from ragchat.models.rag import CollectionInfo, StoredRecord, VectorRecord


# Concrete implementation: ChromaDBProvider (ragchat/providers/vector_store/)
# Data persists to CHROMADB_PERSIST_DIR, or lives on a Chroma server when
# CHROMADB_HOST is set.
class IVectorStoreProvider(ABC):
    """Contract for vector-store services.

    All data methods are async so network-backed stores do not block the
    event loop.  Methods that address an existing collection raise
    :class:`~ragchat.utils.errors.CollectionNotFoundError` when it is
    missing; backend failures raise :class:`~ragchat.utils.errors.StoreError`.
    """

    # -- collection management ------------------------------------------------

    @abstractmethod
    async def collection_exists(self, name: str) -> bool:
        """Return ``True`` if a collection called *name* exists."""

    @abstractmethod
    async def create_collection(
        self, name: str, metadata: dict[str, Any] | None = None
    ) -> CollectionInfo:
        """Create a new collection.

        Raises
        ------
        ragchat.utils.errors.CollectionExistsError
            If the name is already taken.
        """

    @abstractmethod
    async def get_or_create_collection(self, name: str) -> CollectionInfo:
        """Return the collection, creating it first when missing."""

    @abstractmethod
    async def get_collection(self, name: str) -> CollectionInfo:
        """Return name, record count and metadata for a collection."""

    @abstractmethod
    async def delete_collection(self, name: str) -> None:
        """Drop a collection and everything in it."""

    @abstractmethod
    async def list_collections(self) -> list[CollectionInfo]:
        """Return every collection in the store."""

    @abstractmethod
    async def count(self, collection: str) -> int:
        """Return the number of records in *collection*."""

    # -- records --------------------------------------------------------------

    @abstractmethod
    async def upsert(self, collection: str, records: list[VectorRecord]) -> int:
        """Insert or replace records by id.

        Parameters
        ----------
        collection:
            Target collection (must exist).
        records:
            Records with pre-computed vectors.  Metadata values must be
            scalars (str, int, float, bool).

        Returns
        -------
        int
            Number of records written.
        """

    @abstractmethod
    async def query(
        self,
        collection: str,
        vector: list[float],
        k: int,
        where: dict[str, Any] | None = None,
    ) -> list[StoredRecord]:
        """Return up to *k* nearest records, ordered by ascending distance.

        Parameters
        ----------
        collection:
            Collection to search.
        vector:
            Query embedding.
        k:
            Maximum number of results.
        where:
            Optional metadata filter (see module docstring).

        Returns
        -------
        list[StoredRecord]
            Records with ``distance`` populated.  Empty for an empty collection.
        """

    @abstractmethod
    async def get_by_metadata(
        self,
        collection: str,
        where: dict[str, Any],
        limit: int | None = None,
    ) -> list[StoredRecord]:
        """Return records whose metadata matches *where* exactly.

        Result order is whatever the backend returns; callers needing a
        particular order must sort.
        """

    @abstractmethod
    async def delete(self, collection: str, ids: list[str]) -> int:
        """Delete records by id and return how many ids were submitted."""

    # -- identity -------------------------------------------------------------

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"chromadb"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the store is reachable."""
