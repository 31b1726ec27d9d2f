"""Durable chat history kept in a dedicated vector-store collection.

Sessions and turns are stored as tagged records in the chat-history
collection (``chat_history`` by default) of the same vector store that
holds the documents.  Every record carries ``record_type`` and
``session_id`` metadata:

    record_type="session"  collection_name, created_at, system_prompt (when custom)
    record_type="turn"     collection_name, role, timestamp

Turn text is embedded like any other record so the collection stays a
regular, queryable collection.  Reads go through exact metadata matches and
are sorted here by timestamp, never by storage order.
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone
from typing import TypeVar

import structlog

from ragchat.interfaces.embedding_provider import IEmbeddingProvider
from ragchat.interfaces.vector_store_provider import IVectorStoreProvider
from ragchat.models.chat import RecordType, Role, Session, Turn
from ragchat.models.rag import StoredRecord, VectorRecord
from ragchat.utils.errors import CollectionNotFoundError
from ragchat.utils.logging import get_logger

logger: structlog.BoundLogger = get_logger(__name__)

_T = TypeVar("_T")


def _session_record_id(session_id: str) -> str:
    return f"session-{session_id}"


def parse_timestamp(value: object) -> datetime:
    parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class ChatHistoryStore:
    """Reads and writes session records and turns.

    Parameters
    ----------
    embedding_provider:
        Embeds turn and session-record text before upsert.
    vector_store:
        Backing store; the chat-history collection is created on first use.
    collection_name:
        Name of the chat-history collection.
    """

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        vector_store: IVectorStoreProvider,
        collection_name: str = "chat_history",
    ) -> None:
        self._embedding_provider = embedding_provider
        self._vector_store = vector_store
        self._collection_name = collection_name
        self._ready = False
        self._last_timestamp: datetime | None = None

    @property
    def collection_name(self) -> str:
        return self._collection_name

    async def ensure_collection(self) -> None:
        """Create the chat-history collection if it does not exist yet."""
        if self._ready:
            return
        await self._vector_store.get_or_create_collection(self._collection_name)
        self._ready = True

    async def _call(self, operation: Callable[[], Awaitable[_T]]) -> _T:
        """Run a store operation against the chat-history collection.

        If the collection has disappeared since it was last ensured (deleted
        behind this process's back), it is recreated and the operation is
        retried once.
        """
        await self.ensure_collection()
        try:
            return await operation()
        except CollectionNotFoundError:
            logger.warning("chat_collection_recreated", collection=self._collection_name)
            self._ready = False
            await self.ensure_collection()
            return await operation()

    def next_timestamp(self) -> datetime:
        """Return the current UTC instant, strictly later than the previous call."""
        now = datetime.now(timezone.utc)
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    # ------------------------------------------------------------------
    # Session records
    # ------------------------------------------------------------------

    async def save_session(self, session: Session, custom_system_prompt: str | None) -> None:
        """Write the session record; the system prompt is stored only when customised."""
        metadata: dict[str, object] = {
            "record_type": RecordType.SESSION.value,
            "session_id": session.session_id,
            "collection_name": session.collection_name,
            "created_at": session.created_at.isoformat(),
        }
        if custom_system_prompt:
            metadata["system_prompt"] = custom_system_prompt

        text = f"Chat session {session.session_id} on collection {session.collection_name}"
        vector = await self._embedding_provider.embed_single(text)
        record = VectorRecord(
            id=_session_record_id(session.session_id),
            vector=vector,
            text=text,
            metadata=metadata,
        )
        await self._call(lambda: self._vector_store.upsert(self._collection_name, [record]))

    async def get_session_record(self, session_id: str) -> StoredRecord | None:
        return await self._first(session_id, RecordType.SESSION)

    async def find_any_turn(self, session_id: str) -> StoredRecord | None:
        """Return one turn of the session, or ``None``; used for sessions without a record."""
        return await self._first(session_id, RecordType.TURN)

    async def _first(self, session_id: str, record_type: RecordType) -> StoredRecord | None:
        where = {"session_id": session_id, "record_type": record_type.value}
        records = await self._call(
            lambda: self._vector_store.get_by_metadata(self._collection_name, where, limit=1)
        )
        return records[0] if records else None

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    async def append_exchange(
        self,
        session_id: str,
        collection_name: str,
        user_message: str,
        answer: str,
    ) -> tuple[Turn, Turn]:
        """Persist a user turn and then the assistant turn.

        Both texts are embedded in one call; the two records are written
        as separate upserts, user first.  A failure on the second write
        leaves the first in place.
        """
        vectors = await self._embedding_provider.embed([user_message, answer])

        turns: list[Turn] = []
        for role, content, vector in (
            (Role.USER, user_message, vectors[0]),
            (Role.ASSISTANT, answer, vectors[1]),
        ):
            turn = Turn(
                id=str(uuid.uuid4()),
                session_id=session_id,
                role=role,
                content=content,
                timestamp=self.next_timestamp(),
            )
            record = VectorRecord(
                id=turn.id,
                vector=vector,
                text=content,
                metadata={
                    "record_type": RecordType.TURN.value,
                    "session_id": session_id,
                    "collection_name": collection_name,
                    "role": role.value,
                    "timestamp": turn.timestamp.isoformat(),
                },
            )
            await self._call(
                lambda record=record: self._vector_store.upsert(self._collection_name, [record])
            )
            turns.append(turn)

        logger.debug("chat_turns_persisted", session_id=session_id, turns=len(turns))
        return turns[0], turns[1]

    async def list_turns(self, session_id: str) -> list[Turn]:
        """Return every turn of the session ordered by timestamp (ties by id)."""
        where = {"session_id": session_id, "record_type": RecordType.TURN.value}
        records = await self._call(
            lambda: self._vector_store.get_by_metadata(self._collection_name, where)
        )
        turns = [
            Turn(
                id=record.id,
                session_id=session_id,
                role=Role(record.metadata["role"]),
                content=record.text,
                timestamp=parse_timestamp(record.metadata["timestamp"]),
            )
            for record in records
        ]
        turns.sort(key=lambda turn: (turn.timestamp, turn.id))
        return turns

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    async def delete_session(self, session_id: str) -> int:
        """Delete the session record and all turns; returns the number removed."""
        records = await self._call(
            lambda: self._vector_store.get_by_metadata(
                self._collection_name, {"session_id": session_id}
            )
        )
        if not records:
            return 0
        ids = [record.id for record in records]
        return await self._call(lambda: self._vector_store.delete(self._collection_name, ids))
