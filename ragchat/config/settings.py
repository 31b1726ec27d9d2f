"""Application settings loaded from environment variables via pydantic-settings.

Settings are read from two sources, in priority order:

  1. **Environment variables**, e.g. ``OPENAI_API_KEY=sk-abc123`` (always wins)
  2. **.env file** in the project root (local development)

Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY``; defaults apply
when neither source defines a value.  The YAML overlay in
``config/config.yaml`` is merged on top by :func:`ragchat.config.loader.load_config`.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful and precise assistant. Answer the user's questions "
    "using only the information in the provided context. If the answer is "
    "not in the context, say that you don't know. Always answer in the same "
    "language the user writes in."
)


class Settings(BaseSettings):
    """ragchat application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # === Generation / embedding providers ===
    # Empty string = "not configured"; provider selection in main.py skips
    # providers with empty keys and falls through to the next.
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible APIs (TogetherAI, vLLM, ...)
    openai_chat_model: str = "gpt-4o-mini"
    openai_embedding_model: str = "text-embedding-3-small"
    openai_timeout: float = 60.0
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-3-5-haiku-latest"
    ollama_base_url: str = "http://localhost:11434"
    ollama_chat_model: str = "llama3.2"
    ollama_embedding_model: str = "nomic-embed-text"

    # Force a provider ("openai", "anthropic", "ollama"); empty = auto-select.
    llm_provider: str = ""
    embedding_provider: str = ""
    llm_temperature: float = 0.2
    llm_max_tokens: int = 1024

    # === Vector store ===
    chromadb_persist_dir: str = "./data/chromadb"
    # When set, connect to a Chroma server instead of the local persistent client.
    chromadb_host: str = ""
    chromadb_port: int = 8000
    chroma_chat_collection: str = "chat_history"

    # === Chat ===
    chat_default_k: int = 4
    chat_system_prompt: str = DEFAULT_SYSTEM_PROMPT
    chat_history_max_turns: int = 0  # 0 = unlimited
    chat_serialize_sessions: bool = True
    system_prompt_cache_ttl: int = 86400
    system_prompt_cache_size: int = 4096

    # === Ingestion / search ===
    chunk_size: int = 1000
    chunk_overlap: int = 200
    search_default_k: int = 5

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 3000
    app_env: str = "development"
    log_level: str = "INFO"
    cors_origins: str = "*"

    def get_available_llm_providers(self) -> list[str]:
        """Return generation providers that are configured, in selection priority."""
        providers: list[str] = []
        if self.anthropic_api_key:
            providers.append("anthropic")
        if self.openai_api_key:
            providers.append("openai")
        if self.ollama_base_url:
            providers.append("ollama")
        return providers

    def get_available_embedding_providers(self) -> list[str]:
        """Return embedding providers that are configured, in selection priority."""
        providers: list[str] = []
        if self.openai_api_key:
            providers.append("openai")
        if self.ollama_base_url:
            providers.append("ollama")
        return providers
