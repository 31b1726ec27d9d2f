"""FastAPI route definitions for the ragchat HTTP API.

Endpoints:

    POST   /chat/sessions                         start a session (201 | 404)
    POST   /chat/sessions/{session_id}/messages   send a message (200 | 404)
    GET    /chat/sessions/{session_id}/messages   ordered history
    DELETE /chat/sessions/{session_id}            delete a session (idempotent)

    GET    /collections                           list collections
    POST   /collections                           create (201 | 409)
    GET    /collections/{name}                    inspect (200 | 404)
    DELETE /collections/{name}                    delete (200 | 404)
    POST   /collections/{name}/documents          ingest documents (201 | 404)
    GET    /collections/{name}/documents/search   similarity search (200 | 400 | 404)
    DELETE /collections/{name}/documents          delete chunks by id (200 | 404)

    GET    /health                                liveness + provider summary

Services are resolved from ``app.state`` through ``Depends`` helpers, so
tests can mount this router on a bare app with mocked services.
Not-found and conflict errors are turned into ``HTTPException`` here;
any other ``RagChatError`` is left to ``ErrorHandlingMiddleware``.
"""

from __future__ import annotations

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from ragchat.api.schemas import (
    AddDocumentsRequest,
    AddDocumentsResponse,
    CollectionResponse,
    CreateCollectionRequest,
    DeleteDocumentsRequest,
    ErrorResponse,
    HealthResponse,
    MessageItem,
    MessageResponse,
    SearchResultItem,
    SendMessageRequest,
    SendMessageResponse,
    SessionHistoryResponse,
    StartSessionRequest,
    StartSessionResponse,
)
from ragchat.models.rag import CollectionInfo, DocumentInput
from ragchat.services.chat_service import ChatService
from ragchat.services.collection_service import CollectionService
from ragchat.services.session_manager import SessionManager
from ragchat.utils.errors import (
    CollectionExistsError,
    CollectionNotFoundError,
    SessionNotFoundError,
)
from ragchat.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter()

_VERSION = "0.1.0"


# ---------------------------------------------------------------------------
# Dependency helpers
# ---------------------------------------------------------------------------


def _get_chat_service(request: Request) -> ChatService:
    return request.app.state.chat_service


def _get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def _get_collection_service(request: Request) -> CollectionService:
    return request.app.state.collection_service


ChatServiceDep = Annotated[ChatService, Depends(_get_chat_service)]
SessionManagerDep = Annotated[SessionManager, Depends(_get_session_manager)]
CollectionServiceDep = Annotated[CollectionService, Depends(_get_collection_service)]


def _collection_response(info: CollectionInfo) -> CollectionResponse:
    return CollectionResponse(name=info.name, count=info.count, metadata=info.metadata)


# ---------------------------------------------------------------------------
# Chat endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/chat/sessions",
    response_model=StartSessionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}},
    summary="Start a chat session on a collection",
)
async def start_session(
    body: StartSessionRequest,
    sessions: SessionManagerDep,
) -> StartSessionResponse:
    try:
        session = await sessions.start_session(body.collection_name, body.system_prompt)
    except CollectionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message) from exc
    return StartSessionResponse(
        session_id=session.session_id,
        collection_name=session.collection_name,
    )


@router.post(
    "/chat/sessions/{session_id}/messages",
    response_model=SendMessageResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Send a message and receive a grounded answer",
)
async def send_message(
    session_id: str,
    body: SendMessageRequest,
    chat: ChatServiceDep,
) -> SendMessageResponse:
    try:
        result = await chat.send_message(session_id, body.message, k=body.k)
    except (SessionNotFoundError, CollectionNotFoundError) as exc:
        raise HTTPException(status_code=404, detail=exc.message) from exc
    return SendMessageResponse(answer=result.answer, sources=result.sources)


@router.get(
    "/chat/sessions/{session_id}/messages",
    response_model=SessionHistoryResponse,
    summary="Get a session's message history",
)
async def get_session_history(session_id: str, chat: ChatServiceDep) -> SessionHistoryResponse:
    turns = await chat.get_session_history(session_id)
    return SessionHistoryResponse(
        session_id=session_id,
        messages=[
            MessageItem(role=turn.role.value, content=turn.content, timestamp=turn.timestamp)
            for turn in turns
        ],
    )


@router.delete(
    "/chat/sessions/{session_id}",
    response_model=MessageResponse,
    summary="Delete a session and its history",
)
async def delete_session(session_id: str, sessions: SessionManagerDep) -> MessageResponse:
    await sessions.delete_session(session_id)
    return MessageResponse(message="Session deleted successfully")


# ---------------------------------------------------------------------------
# Collection endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/collections",
    response_model=list[CollectionResponse],
    summary="List collections",
)
async def list_collections(collections: CollectionServiceDep) -> list[CollectionResponse]:
    return [_collection_response(info) for info in await collections.list_collections()]


@router.post(
    "/collections",
    response_model=CollectionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse}},
    summary="Create a collection",
)
async def create_collection(
    body: CreateCollectionRequest,
    collections: CollectionServiceDep,
) -> CollectionResponse:
    try:
        info = await collections.create_collection(body.name, body.metadata)
    except CollectionExistsError as exc:
        raise HTTPException(status_code=409, detail=exc.message) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _collection_response(info)


@router.get(
    "/collections/{name}",
    response_model=CollectionResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get collection details",
)
async def get_collection(name: str, collections: CollectionServiceDep) -> CollectionResponse:
    try:
        info = await collections.get_collection(name)
    except CollectionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message) from exc
    return _collection_response(info)


@router.delete(
    "/collections/{name}",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Delete a collection and all its documents",
)
async def delete_collection(name: str, collections: CollectionServiceDep) -> MessageResponse:
    try:
        await collections.delete_collection(name)
    except CollectionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message) from exc
    return MessageResponse(message=f'Collection "{name}" deleted successfully')


@router.post(
    "/collections/{name}/documents",
    response_model=AddDocumentsResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Chunk, embed and add documents to a collection",
)
async def add_documents(
    name: str,
    body: AddDocumentsRequest,
    collections: CollectionServiceDep,
) -> AddDocumentsResponse:
    documents = [
        DocumentInput(content=item.content, metadata=item.metadata or {})
        for item in body.documents
    ]
    try:
        result = await collections.add_documents(
            name,
            documents,
            chunk_size=body.chunk_size,
            chunk_overlap=body.chunk_overlap,
        )
    except CollectionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return AddDocumentsResponse(
        message=f"{result.chunks} chunk(s) added successfully",
        chunks=result.chunks,
    )


@router.get(
    "/collections/{name}/documents/search",
    response_model=list[SearchResultItem],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Similarity search within a collection",
)
async def search_documents(
    name: str,
    collections: CollectionServiceDep,
    q: Annotated[str | None, Query(description="Search text")] = None,
    k: Annotated[int, Query(gt=0, description="Number of results")] = 5,
) -> list[SearchResultItem]:
    if not q:
        raise HTTPException(status_code=400, detail="Query parameter ?q= is required")
    try:
        chunks = await collections.search(name, q, k)
    except CollectionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message) from exc
    return [
        SearchResultItem(content=chunk.text, metadata=chunk.metadata, score=chunk.relevance_score)
        for chunk in chunks
    ]


@router.delete(
    "/collections/{name}/documents",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Delete chunks by id",
)
async def delete_documents(
    name: str,
    body: DeleteDocumentsRequest,
    collections: CollectionServiceDep,
) -> MessageResponse:
    try:
        deleted = await collections.delete_documents(name, body.ids)
    except CollectionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message) from exc
    return MessageResponse(message=f"{deleted} document(s) deleted")


# ---------------------------------------------------------------------------
# System endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health(request: Request) -> HealthResponse:
    """Report liveness plus the names of the wired providers."""
    providers: dict[str, Any] = {}
    for key in ("llm_provider", "embedding_provider", "vector_store"):
        provider = getattr(request.app.state, key, None)
        if provider is not None:
            providers[key.removesuffix("_provider")] = provider.get_provider_name()
    return HealthResponse(status="ok", version=_VERSION, providers=providers)
