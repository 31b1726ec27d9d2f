"""Pydantic request/response schemas for the ragchat HTTP API.

Bodies use camelCase on the wire (``collectionName``, ``chunkSize``) and
snake_case in Python; every schema derives from :class:`CamelModel`, which
sets an alias generator and accepts either spelling on input.  FastAPI
validates requests against these models (422 on failure) and serialises
responses by alias.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


class StartSessionRequest(CamelModel):
    """Open a chat session bound to a collection."""

    collection_name: str = Field(..., min_length=1)
    system_prompt: str | None = None


class StartSessionResponse(CamelModel):
    session_id: str
    collection_name: str


class SendMessageRequest(CamelModel):
    """A user message; ``k`` is the number of chunks to retrieve."""

    message: str = Field(..., min_length=1)
    k: int = Field(default=4, gt=0)


class SendMessageResponse(CamelModel):
    answer: str
    sources: list[str] = Field(default_factory=list)


class MessageItem(CamelModel):
    role: str
    content: str
    timestamp: datetime


class SessionHistoryResponse(CamelModel):
    session_id: str
    messages: list[MessageItem] = Field(default_factory=list)


class MessageResponse(CamelModel):
    """Plain acknowledgement."""

    message: str


# ---------------------------------------------------------------------------
# Collections & documents
# ---------------------------------------------------------------------------


class CreateCollectionRequest(CamelModel):
    name: str = Field(..., min_length=1, pattern=r"^[a-zA-Z0-9_-]+$")
    metadata: dict[str, Any] | None = None


class CollectionResponse(CamelModel):
    name: str
    count: int = 0
    metadata: dict[str, Any] | None = None


class DocumentItem(CamelModel):
    content: str
    metadata: dict[str, Any] | None = None


class AddDocumentsRequest(CamelModel):
    documents: list[DocumentItem] = Field(..., min_length=1)
    chunk_size: int = Field(default=1000, gt=0)
    chunk_overlap: int = Field(default=200, ge=0)


class AddDocumentsResponse(CamelModel):
    message: str
    chunks: int


class DeleteDocumentsRequest(CamelModel):
    ids: list[str] = Field(..., min_length=1)


class SearchResultItem(CamelModel):
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    score: float


# ---------------------------------------------------------------------------
# System
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
