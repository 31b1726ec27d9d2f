"""ragchat domain models -- re-exports all public model classes.

Submodules:
    - chat.py -- sessions, turns, answers and the per-message phase machine
    - rag.py  -- vector-store records, retrieved chunks, collections, ingestion
"""

from __future__ import annotations

from ragchat.models.chat import (
    ChatAnswer,
    ChatPhase,
    RecordType,
    Role,
    Session,
    Turn,
)
from ragchat.models.rag import (
    CollectionInfo,
    DocumentInput,
    IngestionResult,
    RetrievedChunk,
    StoredRecord,
    VectorRecord,
)

__all__ = [
    "ChatAnswer",
    "ChatPhase",
    "CollectionInfo",
    "DocumentInput",
    "IngestionResult",
    "RecordType",
    "RetrievedChunk",
    "Role",
    "Session",
    "StoredRecord",
    "Turn",
    "VectorRecord",
]
