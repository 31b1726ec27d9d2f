"""Business services.

- **retrieval_service** -- top-k chunk retrieval, context and source helpers
- **chat_history_store** -- session records and turns in the chat-history collection
- **session_manager** -- session start / resolve / delete, system-prompt cache
- **chat_service** -- the per-message retrieval-augmented turn protocol
- **collection_service** -- collection CRUD, ingestion and direct search
"""

from ragchat.services.chat_history_store import ChatHistoryStore
from ragchat.services.chat_service import ChatService
from ragchat.services.collection_service import CollectionService
from ragchat.services.retrieval_service import RetrievalService
from ragchat.services.session_manager import SessionManager

__all__ = [
    "ChatHistoryStore",
    "ChatService",
    "CollectionService",
    "RetrievalService",
    "SessionManager",
]
