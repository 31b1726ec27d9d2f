"""Document ingestion helpers."""

from ragchat.services.ingestion.chunker import TextChunker

__all__ = ["TextChunker"]
