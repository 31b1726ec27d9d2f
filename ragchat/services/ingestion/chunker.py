"""Recursive character text splitting with overlapping windows.

Splits documents into chunks of at most ``chunk_size`` characters before
they are embedded.  The splitter tries coarse separators first so chunk
boundaries fall on paragraph breaks where possible:

    "\\n\\n"  paragraphs
    "\\n"    lines
    " "     words
    ""      individual characters (last resort)

Pieces that fit are greedily packed into a chunk.  When the next piece
would overflow, the chunk is flushed and the next one starts with the tail
of the previous chunk, keeping up to ``chunk_overlap`` characters so that a
sentence spanning a boundary is retrievable from at least one chunk.
Pieces larger than ``chunk_size`` on their own are split again with the
next, finer separator.
"""

from __future__ import annotations

import structlog

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_SEPARATORS: tuple[str, ...] = ("\n\n", "\n", " ", "")


class TextChunker:
    """Splits text into overlapping chunks using a separator hierarchy.

    Parameters
    ----------
    chunk_size:
        Maximum number of characters per chunk (default 1000).
    chunk_overlap:
        Characters of trailing context carried into the next chunk
        (default 200).  Must be smaller than *chunk_size*.
    separators:
        Separator hierarchy, coarsest first.
    """

    def __init__(
        self,
        chunk_size: int = 1000,
        chunk_overlap: int = 200,
        separators: tuple[str, ...] = _DEFAULT_SEPARATORS,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be a positive integer")
        if chunk_overlap < 0:
            raise ValueError("chunk_overlap must not be negative")
        if chunk_overlap >= chunk_size:
            raise ValueError(
                f"chunk_overlap ({chunk_overlap}) must be smaller than chunk_size ({chunk_size})"
            )
        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap
        self._separators = separators

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def chunk_overlap(self) -> int:
        return self._chunk_overlap

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def split_text(self, text: str) -> list[str]:
        """Split *text* into chunks.  Blank input returns an empty list."""
        if not text or not text.strip():
            return []
        chunks = self._split(text, list(self._separators))
        logger.debug(
            "chunking_complete",
            num_chunks=len(chunks),
            input_chars=len(text),
            chunk_size=self._chunk_size,
        )
        return chunks

    # ------------------------------------------------------------------
    # Recursive splitting
    # ------------------------------------------------------------------

    def _split(self, text: str, separators: list[str]) -> list[str]:
        # Use the first separator present in the text; "" always matches.
        separator = separators[-1]
        remaining: list[str] = []
        for index, candidate in enumerate(separators):
            if candidate == "" or candidate in text:
                separator = candidate
                remaining = separators[index + 1 :]
                break

        pieces = text.split(separator) if separator else list(text)
        pieces = [piece for piece in pieces if piece]

        chunks: list[str] = []
        fitting: list[str] = []
        for piece in pieces:
            if len(piece) < self._chunk_size:
                fitting.append(piece)
                continue
            if fitting:
                chunks.extend(self._merge(fitting, separator))
                fitting = []
            if remaining:
                chunks.extend(self._split(piece, remaining))
            else:
                chunks.append(piece)

        if fitting:
            chunks.extend(self._merge(fitting, separator))
        return chunks

    def _merge(self, pieces: list[str], separator: str) -> list[str]:
        """Pack *pieces* into chunks of at most ``chunk_size`` with overlap."""
        sep_len = len(separator)
        chunks: list[str] = []
        window: list[str] = []
        total = 0

        for piece in pieces:
            piece_len = len(piece)
            joined_len = total + piece_len + (sep_len if window else 0)
            if joined_len > self._chunk_size and window:
                chunk = separator.join(window).strip()
                if chunk:
                    chunks.append(chunk)
                # Drop from the front until the tail fits the overlap budget
                # and leaves room for the incoming piece.
                while total > self._chunk_overlap or (
                    total + piece_len + (sep_len if window else 0) > self._chunk_size
                    and total > 0
                ):
                    total -= len(window[0]) + (sep_len if len(window) > 1 else 0)
                    window.pop(0)
            window.append(piece)
            total += piece_len + (sep_len if len(window) > 1 else 0)

        chunk = separator.join(window).strip()
        if chunk:
            chunks.append(chunk)
        return chunks
