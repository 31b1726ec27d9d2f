"""Flatten LLM response content into the plain string the chat layer returns.

Providers disagree on the shape of a reply: OpenAI-compatible servers
return a string, Anthropic returns a list of typed blocks, and some
OpenAI-compatible servers return a list of parts.  Text parts are joined
with newlines; anything without text is serialised with ``json.dumps`` and
sorted keys so the same reply always produces the same string.
"""

from __future__ import annotations

import json
from typing import Any


def _as_dict(part: Any) -> Any:
    # SDK block objects are pydantic models; plain dicts pass through.
    if hasattr(part, "model_dump"):
        return part.model_dump()
    return part


def flatten_content(content: Any) -> str | None:
    """Return *content* as a string, or ``None`` when there is nothing to return."""
    if content is None:
        return None
    if isinstance(content, str):
        return content

    if isinstance(content, list):
        parts = [_as_dict(part) for part in content]
        if not parts:
            return None
        texts = [
            part["text"]
            for part in parts
            if isinstance(part, dict) and part.get("type") == "text" and isinstance(part.get("text"), str)
        ]
        if texts:
            return "\n".join(texts)
        return json.dumps(parts, sort_keys=True, default=str)

    return json.dumps(_as_dict(content), sort_keys=True, default=str)
