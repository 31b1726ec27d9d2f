"""Custom exception hierarchy for ragchat.

All application exceptions inherit from :class:`RagChatError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "chromadb", "ollama") caused the failure.

The hierarchy is organized by the component that raises it:

    RagChatError  (base -- catch-all for any ragchat error)
    +-- CollectionNotFoundError  (session start / retrieval on a missing collection)
    +-- CollectionExistsError    (collection creation with a taken name)
    +-- SessionNotFoundError     (message sent to an unknown or empty session)
    +-- EmbeddingProviderError   (embedding API transport or model failure)
    +-- GenerationProviderError  (LLM API transport or model failure)
    +-- StoreError               (vector-store backend failure)
    +-- ConfigurationError       (startup / invalid provider selection)

The not-found and conflict errors surface as 404 / 409 responses; every
other subclass surfaces as an internal error.  Nothing in the chat path
retries automatically.
"""


class RagChatError(Exception):
    """Base exception for all ragchat errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[chromadb] upsert failed``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Not-found / conflict errors
# ---------------------------------------------------------------------------

class CollectionNotFoundError(RagChatError):
    """Raised when a named document collection does not exist in the store."""

    def __init__(
        self,
        collection_name: str,
        provider_name: str | None = None,
    ) -> None:
        self.collection_name = collection_name
        super().__init__(
            message=f'Collection "{collection_name}" not found',
            provider_name=provider_name,
        )


class CollectionExistsError(RagChatError):
    """Raised when creating a collection whose name is already taken."""

    def __init__(
        self,
        collection_name: str,
        provider_name: str | None = None,
    ) -> None:
        self.collection_name = collection_name
        super().__init__(
            message=f'Collection "{collection_name}" already exists',
            provider_name=provider_name,
        )


class SessionNotFoundError(RagChatError):
    """Raised when a session id has no session record and no persisted turns."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(message=f"Session {session_id} not found")


# ---------------------------------------------------------------------------
# External service / provider errors
# ---------------------------------------------------------------------------

class EmbeddingProviderError(RagChatError):
    """Raised when an embedding API call fails."""

    def __init__(
        self,
        message: str = "Embedding provider call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class GenerationProviderError(RagChatError):
    """Raised when an LLM API call fails or returns an empty response."""

    def __init__(
        self,
        message: str = "Generation provider call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class StoreError(RagChatError):
    """Raised when a vector-store read or write fails."""

    def __init__(
        self,
        message: str = "Vector store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------

class ConfigurationError(RagChatError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
