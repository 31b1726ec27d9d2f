"""Integration tests for the HTTP API using TestClient with mocked services.

Checks request validation, camelCase bodies, and the mapping of service
errors to status codes (400 / 404 / 409 / 422 / 500).
"""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from ragchat.api.middleware import ErrorHandlingMiddleware, RequestLoggingMiddleware
from ragchat.api.routes import router as api_router
from ragchat.models.chat import ChatAnswer, Role, Session, Turn
from ragchat.models.rag import CollectionInfo, IngestionResult, RetrievedChunk
from ragchat.services.chat_service import ChatService
from ragchat.services.collection_service import CollectionService
from ragchat.services.session_manager import SessionManager
from ragchat.utils.errors import (
    CollectionExistsError,
    CollectionNotFoundError,
    GenerationProviderError,
    SessionNotFoundError,
)

_NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def _create_test_app() -> tuple[FastAPI, MagicMock, MagicMock, MagicMock]:
    """Create a FastAPI app with mocked services on ``app.state``."""
    app = FastAPI()
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.include_router(api_router)

    sessions = MagicMock(spec=SessionManager)
    sessions.start_session = AsyncMock(
        return_value=Session(
            session_id="sess-1",
            collection_name="docs",
            system_prompt="prompt",
            created_at=_NOW,
        )
    )
    sessions.delete_session = AsyncMock(return_value=0)

    chat = MagicMock(spec=ChatService)
    chat.send_message = AsyncMock(return_value=ChatAnswer(answer="Paris.", sources=["fr.txt"]))
    chat.get_session_history = AsyncMock(return_value=[])

    collections = MagicMock(spec=CollectionService)
    collections.list_collections = AsyncMock(return_value=[CollectionInfo(name="docs", count=3)])
    collections.create_collection = AsyncMock(return_value=CollectionInfo(name="docs", count=0))
    collections.get_collection = AsyncMock(return_value=CollectionInfo(name="docs", count=3))
    collections.delete_collection = AsyncMock(return_value=None)
    collections.add_documents = AsyncMock(
        return_value=IngestionResult(collection_name="docs", documents=1, chunks=2, ids=["a", "b"])
    )
    collections.delete_documents = AsyncMock(return_value=1)
    collections.search = AsyncMock(return_value=[])

    app.state.session_manager = sessions
    app.state.chat_service = chat
    app.state.collection_service = collections
    return app, sessions, chat, collections


@pytest.fixture
def api():
    app, sessions, chat, collections = _create_test_app()
    client = TestClient(app, raise_server_exceptions=False)
    return client, sessions, chat, collections


# ---------------------------------------------------------------------------
# Chat endpoints
# ---------------------------------------------------------------------------


class TestChatEndpoints:
    def test_start_session(self, api) -> None:
        client, sessions, _, _ = api
        response = client.post(
            "/chat/sessions", json={"collectionName": "docs", "systemPrompt": "Be brief."}
        )

        assert response.status_code == 201
        assert response.json() == {"sessionId": "sess-1", "collectionName": "docs"}
        sessions.start_session.assert_awaited_once_with("docs", "Be brief.")

    def test_start_session_unknown_collection(self, api) -> None:
        client, sessions, _, _ = api
        sessions.start_session.side_effect = CollectionNotFoundError("nope")

        response = client.post("/chat/sessions", json={"collectionName": "nope"})

        assert response.status_code == 404
        assert response.json()["detail"] == 'Collection "nope" not found'

    def test_start_session_requires_collection(self, api) -> None:
        client, _, _, _ = api
        assert client.post("/chat/sessions", json={}).status_code == 422

    def test_send_message(self, api) -> None:
        client, _, chat, _ = api
        response = client.post("/chat/sessions/sess-1/messages", json={"message": "Capital?"})

        assert response.status_code == 200
        assert response.json() == {"answer": "Paris.", "sources": ["fr.txt"]}
        chat.send_message.assert_awaited_once_with("sess-1", "Capital?", k=4)

    def test_send_message_custom_k(self, api) -> None:
        client, _, chat, _ = api
        client.post("/chat/sessions/sess-1/messages", json={"message": "Capital?", "k": 2})
        chat.send_message.assert_awaited_once_with("sess-1", "Capital?", k=2)

    @pytest.mark.parametrize("body", [{}, {"message": ""}, {"message": "hi", "k": 0}])
    def test_send_message_validation(self, api, body) -> None:
        client, _, chat, _ = api
        assert client.post("/chat/sessions/sess-1/messages", json=body).status_code == 422
        chat.send_message.assert_not_awaited()

    def test_send_message_unknown_session(self, api) -> None:
        client, _, chat, _ = api
        chat.send_message.side_effect = SessionNotFoundError("ghost")

        response = client.post("/chat/sessions/ghost/messages", json={"message": "hi"})

        assert response.status_code == 404

    def test_generation_failure_is_500(self, api) -> None:
        client, _, chat, _ = api
        chat.send_message.side_effect = GenerationProviderError("upstream down", "openai")

        response = client.post("/chat/sessions/sess-1/messages", json={"message": "hi"})

        assert response.status_code == 500
        assert response.json() == {"error": "GenerationProviderError", "detail": "upstream down"}

    def test_history(self, api) -> None:
        client, _, chat, _ = api
        chat.get_session_history.return_value = [
            Turn(id="1", session_id="sess-1", role=Role.USER, content="hi", timestamp=_NOW),
            Turn(id="2", session_id="sess-1", role=Role.ASSISTANT, content="hello", timestamp=_NOW),
        ]

        body = client.get("/chat/sessions/sess-1/messages").json()

        assert body["sessionId"] == "sess-1"
        assert [(m["role"], m["content"]) for m in body["messages"]] == [
            ("user", "hi"),
            ("assistant", "hello"),
        ]

    def test_history_of_unknown_session_is_empty(self, api) -> None:
        client, _, _, _ = api
        response = client.get("/chat/sessions/ghost/messages")
        assert response.status_code == 200
        assert response.json() == {"sessionId": "ghost", "messages": []}

    def test_delete_session_is_idempotent(self, api) -> None:
        client, sessions, _, _ = api
        for _ in range(2):
            response = client.delete("/chat/sessions/sess-1")
            assert response.status_code == 200
            assert response.json() == {"message": "Session deleted successfully"}
        assert sessions.delete_session.await_count == 2


# ---------------------------------------------------------------------------
# Collection endpoints
# ---------------------------------------------------------------------------


class TestCollectionEndpoints:
    def test_list(self, api) -> None:
        client, _, _, _ = api
        assert client.get("/collections").json() == [
            {"name": "docs", "count": 3, "metadata": None}
        ]

    def test_create(self, api) -> None:
        client, _, _, collections = api
        response = client.post("/collections", json={"name": "docs", "metadata": {"team": "x"}})
        assert response.status_code == 201
        collections.create_collection.assert_awaited_once_with("docs", {"team": "x"})

    def test_create_conflict(self, api) -> None:
        client, _, _, collections = api
        collections.create_collection.side_effect = CollectionExistsError("docs")
        assert client.post("/collections", json={"name": "docs"}).status_code == 409

    def test_create_invalid_name(self, api) -> None:
        client, _, _, _ = api
        assert client.post("/collections", json={"name": "bad name"}).status_code == 422

    def test_get_and_missing(self, api) -> None:
        client, _, _, collections = api
        assert client.get("/collections/docs").json()["count"] == 3

        collections.get_collection.side_effect = CollectionNotFoundError("gone")
        assert client.get("/collections/gone").status_code == 404

    def test_delete(self, api) -> None:
        client, _, _, collections = api
        assert client.delete("/collections/docs").status_code == 200

        collections.delete_collection.side_effect = CollectionNotFoundError("docs")
        assert client.delete("/collections/docs").status_code == 404

    def test_add_documents(self, api) -> None:
        client, _, _, collections = api
        response = client.post(
            "/collections/docs/documents",
            json={
                "documents": [{"content": "text", "metadata": {"source": "a.txt"}}],
                "chunkSize": 500,
                "chunkOverlap": 50,
            },
        )

        assert response.status_code == 201
        assert response.json() == {"message": "2 chunk(s) added successfully", "chunks": 2}
        kwargs = collections.add_documents.await_args.kwargs
        assert kwargs == {"chunk_size": 500, "chunk_overlap": 50}

    def test_add_documents_bad_chunking_is_400(self, api) -> None:
        client, _, _, collections = api
        collections.add_documents.side_effect = ValueError("chunk_overlap must be smaller")
        response = client.post(
            "/collections/docs/documents",
            json={"documents": [{"content": "x"}], "chunkSize": 10, "chunkOverlap": 10},
        )
        assert response.status_code == 400

    def test_add_documents_requires_documents(self, api) -> None:
        client, _, _, _ = api
        response = client.post("/collections/docs/documents", json={"documents": []})
        assert response.status_code == 422

    def test_search_requires_query(self, api) -> None:
        client, _, _, _ = api
        response = client.get("/collections/docs/documents/search")
        assert response.status_code == 400
        assert response.json()["detail"] == "Query parameter ?q= is required"

    def test_search(self, api) -> None:
        client, _, _, collections = api
        collections.search.return_value = [
            RetrievedChunk(
                id="c1",
                text="Paris is the capital.",
                metadata={"source": "fr.txt"},
                relevance_score=0.9,
                distance=0.1,
            )
        ]

        response = client.get("/collections/docs/documents/search", params={"q": "capital", "k": 3})

        assert response.status_code == 200
        assert response.json() == [
            {"content": "Paris is the capital.", "metadata": {"source": "fr.txt"}, "score": 0.9}
        ]
        collections.search.assert_awaited_once_with("docs", "capital", 3)

    def test_delete_documents(self, api) -> None:
        client, _, _, _ = api
        response = client.request("DELETE", "/collections/docs/documents", json={"ids": ["a"]})
        assert response.status_code == 200
        assert response.json() == {"message": "1 document(s) deleted"}


def test_health_reports_providers() -> None:
    app, _, _, _ = _create_test_app()
    llm = MagicMock()
    llm.get_provider_name.return_value = "anthropic"
    app.state.llm_provider = llm

    body = TestClient(app).get("/health").json()

    assert body["status"] == "ok"
    assert body["providers"] == {"llm": "anthropic"}
