"""Chat session data models.

Defines the session, turn and answer models plus the :class:`ChatPhase`
state machine the chat orchestrator advances through for each message.
All models are frozen; a turn is never edited after it is persisted.

Sessions and turns both live as tagged records in the chat-history
collection of the vector store:

    record_type = "session"  -> one per session, written at start
    record_type = "turn"     -> one per user / assistant message
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ChatPhase(str, Enum):  # noqa: UP042
    """Phases of a single ``send_message`` call.

    RESOLVING_SESSION -> RETRIEVING_CONTEXT -> LOADING_HISTORY ->
    COMPOSING_PROMPT -> GENERATING -> PERSISTING -> DONE

    RETRIEVING_CONTEXT and LOADING_HISTORY run concurrently.  ERROR is
    reachable from every phase.
    """

    RESOLVING_SESSION = "RESOLVING_SESSION"
    RETRIEVING_CONTEXT = "RETRIEVING_CONTEXT"
    LOADING_HISTORY = "LOADING_HISTORY"
    COMPOSING_PROMPT = "COMPOSING_PROMPT"
    GENERATING = "GENERATING"
    PERSISTING = "PERSISTING"
    DONE = "DONE"
    ERROR = "ERROR"


class Role(str, Enum):  # noqa: UP042
    """Author of a turn."""

    USER = "user"
    ASSISTANT = "assistant"


class RecordType(str, Enum):  # noqa: UP042
    """Tag distinguishing records in the chat-history collection."""

    SESSION = "session"
    TURN = "turn"


class Session(BaseModel):
    """A conversation bound to one document collection."""

    model_config = ConfigDict(frozen=True)

    session_id: str = Field(description="UUID4 identifying the session.")
    collection_name: str = Field(description="Document collection the session retrieves from.")
    system_prompt: str = Field(description="Instruction text placed first in every prompt.")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Turn(BaseModel):
    """One message in a session's history."""

    model_config = ConfigDict(frozen=True)

    id: str
    session_id: str
    role: Role
    content: str
    timestamp: datetime

    @property
    def label(self) -> str:
        """Speaker label used when rendering history into a prompt."""
        return "User" if self.role == Role.USER else "Assistant"


class ChatAnswer(BaseModel):
    """The assistant's reply to one user message."""

    model_config = ConfigDict(frozen=True)

    answer: str = Field(description="Generated text, returned verbatim.")
    sources: list[str] = Field(
        default_factory=list,
        description="Non-empty ``source`` metadata of the retrieved chunks, in relevance order.",
    )
