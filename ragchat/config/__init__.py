"""Configuration package for ragchat."""

from ragchat.config.loader import apply_overrides, load_config
from ragchat.config.settings import DEFAULT_SYSTEM_PROMPT, Settings

__all__ = ["DEFAULT_SYSTEM_PROMPT", "Settings", "apply_overrides", "load_config"]
