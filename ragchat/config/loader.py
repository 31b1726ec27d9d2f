"""YAML configuration loader with environment variable overrides.

Configuration is loaded in layers (later layers override earlier):

  1. ``config/config.yaml`` -- static defaults checked into the repo
  2. ``.env`` file          -- local developer overrides (not committed)
  3. Environment vars       -- set at deploy time

:func:`load_config` reads the YAML file first, then deep-merges the
environment-based values on top.  Keys that only exist in YAML (for example
``chat.system_prompt`` or ``ingestion.chunk_size``) survive the merge;
:func:`apply_overrides` then copies them onto a :class:`Settings` instance
unless the matching environment variable was set explicitly.
"""

from pathlib import Path
from typing import Any

import yaml

from ragchat.config.settings import Settings

# YAML path -> Settings field for values that may be set in config.yaml.
_YAML_FIELDS: dict[tuple[str, str], str] = {
    ("chat", "system_prompt"): "chat_system_prompt",
    ("chat", "default_k"): "chat_default_k",
    ("chat", "history_max_turns"): "chat_history_max_turns",
    ("chat", "serialize_sessions"): "chat_serialize_sessions",
    ("chat", "collection"): "chroma_chat_collection",
    ("ingestion", "chunk_size"): "chunk_size",
    ("ingestion", "chunk_overlap"): "chunk_overlap",
    ("search", "default_k"): "search_default_k",
}


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Environment variables (via Settings) override YAML values where keys overlap.

    Args:
        path: Path to the YAML configuration file.
        settings: Pre-built settings; a fresh ``Settings()`` is read when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    settings = settings or Settings()
    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "llm": {
            "available_providers": settings.get_available_llm_providers(),
            "forced_provider": settings.llm_provider,
        },
        "embedding": {
            "available_providers": settings.get_available_embedding_providers(),
            "forced_provider": settings.embedding_provider,
        },
        "vector_store": {
            "persist_dir": settings.chromadb_persist_dir,
            "host": settings.chromadb_host,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def apply_overrides(settings: Settings, config: dict) -> Settings:
    """Return *settings* with YAML-only values applied.

    A field set explicitly through the environment or ``.env`` keeps its
    value; otherwise the YAML value replaces the class default.
    """
    updates: dict[str, Any] = {}
    for (section, key), field in _YAML_FIELDS.items():
        section_values = config.get(section)
        if not isinstance(section_values, dict) or key not in section_values:
            continue
        if field in settings.model_fields_set:
            continue
        updates[field] = section_values[key]

    if not updates:
        return settings
    return settings.model_copy(update=updates)


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
