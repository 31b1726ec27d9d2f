"""Session lifecycle: start, resolve, inspect and delete chat sessions.

A session binds a UUID to one document collection and a system prompt.
Starting a session writes an explicit session record to the chat-history
collection, so a session exists before its first message and a custom
system prompt survives a restart.  The prompt is also kept in the process
cache so composing a prompt does not need a store read.

Resolution order for the collection binding:

    session record  ->  any persisted turn tagged with the id  ->  None

The turn fallback covers sessions written before session records existed.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import structlog

from ragchat.interfaces.cache_provider import ICacheProvider
from ragchat.interfaces.vector_store_provider import IVectorStoreProvider
from ragchat.models.chat import Session
from ragchat.services.chat_history_store import ChatHistoryStore, parse_timestamp
from ragchat.utils.concurrency import SessionLockRegistry
from ragchat.utils.errors import CollectionNotFoundError
from ragchat.utils.logging import get_logger

logger: structlog.BoundLogger = get_logger(__name__)


def _prompt_key(session_id: str) -> str:
    return f"system_prompt:{session_id}"


class SessionManager:
    """Creates, resolves and deletes chat sessions.

    Parameters
    ----------
    vector_store:
        Used to check that the document collection exists.
    history_store:
        Durable home of session records and turns.
    cache:
        Process-local cache for per-session system prompts.
    default_system_prompt:
        Prompt used when a session was started without one.
    locks:
        Per-session lock registry shared with the chat orchestrator;
        cleared on delete.
    """

    def __init__(
        self,
        vector_store: IVectorStoreProvider,
        history_store: ChatHistoryStore,
        cache: ICacheProvider,
        default_system_prompt: str,
        locks: SessionLockRegistry | None = None,
    ) -> None:
        self._vector_store = vector_store
        self._history_store = history_store
        self._cache = cache
        self._default_system_prompt = default_system_prompt
        self._locks = locks or SessionLockRegistry()

    @property
    def locks(self) -> SessionLockRegistry:
        return self._locks

    @property
    def default_system_prompt(self) -> str:
        return self._default_system_prompt

    async def start_session(self, collection_name: str, system_prompt: str | None = None) -> Session:
        """Open a session on an existing collection.

        Raises
        ------
        ragchat.utils.errors.CollectionNotFoundError
            If *collection_name* does not exist or names the chat-history
            collection.
        """
        if collection_name == self._history_store.collection_name or not (
            await self._vector_store.collection_exists(collection_name)
        ):
            raise CollectionNotFoundError(
                collection_name, provider_name=self._vector_store.get_provider_name()
            )

        custom_prompt = system_prompt or None
        session = Session(
            session_id=str(uuid.uuid4()),
            collection_name=collection_name,
            system_prompt=custom_prompt or self._default_system_prompt,
            created_at=datetime.now(timezone.utc),
        )
        await self._history_store.save_session(session, custom_prompt)
        await self._cache.set(_prompt_key(session.session_id), session.system_prompt)

        logger.info(
            "session_started",
            session_id=session.session_id,
            collection=collection_name,
            custom_system_prompt=custom_prompt is not None,
        )
        return session

    async def resolve_collection(self, session_id: str) -> str | None:
        """Return the collection the session is bound to, or ``None`` if unknown."""
        record = await self._history_store.get_session_record(session_id)
        if record is None:
            record = await self._history_store.find_any_turn(session_id)
        if record is None:
            return None
        value = record.metadata.get("collection_name")
        return str(value) if value else None

    async def get_system_prompt(self, session_id: str) -> str:
        """Return the session's prompt: cache, then session record, then default."""
        cached = await self._cache.get(_prompt_key(session_id))
        if cached is not None:
            return str(cached)

        record = await self._history_store.get_session_record(session_id)
        stored = record.metadata.get("system_prompt") if record is not None else None
        if stored:
            await self._cache.set(_prompt_key(session_id), stored)
            logger.debug("system_prompt_restored", session_id=session_id)
            return str(stored)
        return self._default_system_prompt

    async def get_session(self, session_id: str) -> Session | None:
        """Return the full session view, or ``None`` if the id is unknown."""
        record = await self._history_store.get_session_record(session_id)
        if record is not None:
            collection_name = record.metadata.get("collection_name")
            created_at = parse_timestamp(record.metadata["created_at"])
        else:
            turn = await self._history_store.find_any_turn(session_id)
            if turn is None:
                return None
            collection_name = turn.metadata.get("collection_name")
            created_at = parse_timestamp(turn.metadata["timestamp"])

        if not collection_name:
            return None
        return Session(
            session_id=session_id,
            collection_name=str(collection_name),
            system_prompt=await self.get_system_prompt(session_id),
            created_at=created_at,
        )

    async def delete_session(self, session_id: str) -> int:
        """Delete every record of the session.  Idempotent; returns records removed."""
        deleted = await self._history_store.delete_session(session_id)
        await self._cache.delete(_prompt_key(session_id))
        self._locks.discard(session_id)
        logger.info("session_deleted", session_id=session_id, records=deleted)
        return deleted
