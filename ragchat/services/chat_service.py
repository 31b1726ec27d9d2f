"""Retrieval-augmented chat orchestrator.

Runs the per-message turn protocol for a session:

  1. RESOLVING_SESSION  -- look up the session's collection; unknown -> 404.
  2. RETRIEVING_CONTEXT -- top-k chunks from that collection for the message.
  3. LOADING_HISTORY    -- every prior turn, ordered by timestamp.
     Steps 2 and 3 run concurrently; generation waits for both.
  4. COMPOSING_PROMPT   -- system prompt, context, history, message, in that order.
  5. GENERATING         -- one call to the generation provider.
  6. PERSISTING         -- user turn, then assistant turn.
  7. DONE               -- answer plus the sources of the retrieved chunks.

A failure in any phase is logged with the phase it happened in and the
original exception propagates.  Nothing is retried or rolled back: if the
assistant turn fails to persist, the user turn stays, and resending the
message stores the user turn again.

With ``serialize_sessions`` on, messages to the same session are handled
one at a time within this process so each prompt sees the previous
exchange.  Different sessions still run in parallel.
"""

from __future__ import annotations

import asyncio
import contextlib

import structlog

from ragchat.interfaces.llm_provider import ILLMProvider
from ragchat.models.chat import ChatAnswer, ChatPhase, Turn
from ragchat.models.rag import RetrievedChunk
from ragchat.services.chat_history_store import ChatHistoryStore
from ragchat.services.retrieval_service import RetrievalService
from ragchat.services.session_manager import SessionManager
from ragchat.utils.errors import SessionNotFoundError
from ragchat.utils.logging import get_logger

logger: structlog.BoundLogger = get_logger(__name__)


def render_history(turns: list[Turn]) -> str:
    """Render turns as ``User: ...`` / ``Assistant: ...`` lines."""
    return "\n".join(f"{turn.label}: {turn.content}" for turn in turns)


def compose_prompt(system_prompt: str, context: str, history: str, message: str) -> str:
    """Assemble the generation prompt; empty sections are left out."""
    sections = [
        system_prompt,
        f"\nRelevant context:\n{context}" if context else "",
        f"\nConversation history:\n{history}" if history else "",
        f"\nUser: {message}",
        "Assistant:",
    ]
    return "\n".join(section for section in sections if section)


class ChatService:
    """Answers chat messages grounded in a session's collection and history.

    Parameters
    ----------
    session_manager:
        Resolves session bindings and system prompts; owns the lock registry.
    retrieval:
        Retrieval engine for document chunks.
    history_store:
        Durable turn storage.
    llm:
        Generation provider.
    default_k:
        Chunks retrieved when the caller does not pass ``k``.
    history_max_turns:
        Keep only the most recent N turns in the prompt; 0 keeps all.
    serialize_sessions:
        Hold a per-session lock for the whole turn.
    """

    def __init__(
        self,
        session_manager: SessionManager,
        retrieval: RetrievalService,
        history_store: ChatHistoryStore,
        llm: ILLMProvider,
        default_k: int = 4,
        history_max_turns: int = 0,
        serialize_sessions: bool = True,
    ) -> None:
        self._sessions = session_manager
        self._retrieval = retrieval
        self._history = history_store
        self._llm = llm
        self._default_k = default_k
        self._history_max_turns = history_max_turns
        self._serialize_sessions = serialize_sessions

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def send_message(self, session_id: str, message: str, k: int | None = None) -> ChatAnswer:
        """Answer *message* in the context of *session_id*.

        Raises
        ------
        ValueError
            If *message* is empty or *k* is not a positive integer.
        ragchat.utils.errors.SessionNotFoundError
            If the session id is unknown.
        ragchat.utils.errors.RagChatError
            Provider and store failures, unchanged.
        """
        if not message:
            raise ValueError("message must not be empty")
        top_k = self._default_k if k is None else k
        return await self._run_turn(session_id, message, top_k)

    async def get_session_history(self, session_id: str) -> list[Turn]:
        """Return the session's turns ordered by timestamp; ``[]`` when none."""
        return await self._history.list_turns(session_id)

    # ------------------------------------------------------------------
    # Turn protocol
    # ------------------------------------------------------------------

    def _guard(self, session_id: str) -> contextlib.AbstractAsyncContextManager[None]:
        if self._serialize_sessions:
            return self._sessions.locks.hold(session_id)
        return contextlib.nullcontext()

    async def _run_turn(self, session_id: str, message: str, k: int) -> ChatAnswer:
        log = logger.bind(session_id=session_id)
        phase = ChatPhase.RESOLVING_SESSION
        try:
            log.debug("chat_phase", phase=phase.value)
            collection_name = await self._sessions.resolve_collection(session_id)
            if collection_name is None:
                raise SessionNotFoundError(session_id)

            # Unknown ids never get a lock.
            async with self._guard(session_id):
                phase = ChatPhase.RETRIEVING_CONTEXT
                log.debug("chat_phase", phase=phase.value, collection=collection_name, k=k)
                chunks_result, turns_result = await asyncio.gather(
                    self._retrieval.retrieve(collection_name, message, k),
                    self._history.list_turns(session_id),
                    return_exceptions=True,
                )
                if isinstance(chunks_result, BaseException):
                    raise chunks_result
                phase = ChatPhase.LOADING_HISTORY
                if isinstance(turns_result, BaseException):
                    raise turns_result
                chunks: list[RetrievedChunk] = chunks_result
                turns: list[Turn] = self._cap_history(turns_result)

                phase = ChatPhase.COMPOSING_PROMPT
                system_prompt = await self._sessions.get_system_prompt(session_id)
                prompt = compose_prompt(
                    system_prompt,
                    RetrievalService.build_context(chunks),
                    render_history(turns),
                    message,
                )
                log.debug(
                    "chat_phase",
                    phase=phase.value,
                    chunks=len(chunks),
                    history_turns=len(turns),
                    prompt_chars=len(prompt),
                )

                phase = ChatPhase.GENERATING
                answer = await self._llm.generate(prompt)

                phase = ChatPhase.PERSISTING
                await self._history.append_exchange(session_id, collection_name, message, answer)

            phase = ChatPhase.DONE
            sources = RetrievalService.extract_sources(chunks)
            log.info(
                "chat_message_answered",
                collection=collection_name,
                chunks=len(chunks),
                sources=len(sources),
                provider=self._llm.get_provider_name(),
            )
            return ChatAnswer(answer=answer, sources=sources)
        except Exception as exc:
            log.warning(
                "chat_phase_failed",
                phase=ChatPhase.ERROR.value,
                failed_phase=phase.value,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise

    def _cap_history(self, turns: list[Turn]) -> list[Turn]:
        if self._history_max_turns > 0:
            return turns[-self._history_max_turns :]
        return turns
