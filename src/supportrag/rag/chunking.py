"""Text cleaning and word-bounded chunking."""

import re
from typing import Optional

from .base import BaseChunker
from .document import Chunk, ChunkMetadata

_HORIZONTAL_SPACE = re.compile(r"[^\S\n]+")
_NEWLINE_RUN = re.compile(r"\s*\n\s*")


def clean_text(text: str) -> str:
    """Normalize inconsistent source formatting before chunking.

    Runs of spaces and tabs become one space, runs of newlines (with any
    whitespace around them) become one newline, and the ends are trimmed.
    This is lossy: the original spacing and blank-line structure cannot be
    recovered from the result.
    """
    text = _HORIZONTAL_SPACE.sub(" ", text)
    text = _NEWLINE_RUN.sub("\n", text)
    return text.strip()


def _validate(chunk_size: int, overlap: int) -> None:
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if overlap < 0 or overlap >= chunk_size:
        raise ValueError("Overlap must be non-negative and less than chunk_size")


def chunk_text(
    text: str,
    chunk_size: int = 500,
    overlap: int = 50,
    source: str = "unknown",
    page_number: Optional[int] = None,
) -> list[Chunk]:
    """Split text into overlapping chunks of at most ``chunk_size`` words.

    Consecutive chunks share ``overlap`` words. The last chunk holds
    whatever remains, so input shorter than ``chunk_size`` gives exactly
    one chunk and empty input gives none.

    Args:
        text: Text to split
        chunk_size: Maximum words per chunk
        overlap: Words repeated at the start of the next chunk
        source: Identifier stored in each chunk's metadata
        page_number: Page of the source, for paged formats

    Returns:
        Chunks in order, with ``chunk_index`` starting at 0
    """
    _validate(chunk_size, overlap)

    words = text.split()
    chunks: list[Chunk] = []
    current: list[str] = []
    last = len(words) - 1

    for i, word in enumerate(words):
        current.append(word)

        if len(current) >= chunk_size or i == last:
            chunks.append(Chunk(
                content=" ".join(current),
                metadata=ChunkMetadata(
                    source=source,
                    chunk_index=len(chunks),
                    page_number=page_number,
                ),
            ))
            # Seed the next chunk with the tail of this one
            current = current[-overlap:] if overlap else []

    return chunks


class WordChunker(BaseChunker):
    """Chunk documents into word-bounded pieces with overlap.

    Text is cleaned with :func:`clean_text` first, so chunks never contain
    runs of whitespace.
    """

    def __init__(
        self,
        chunk_size: int = 500,
        overlap: int = 50,
        clean: bool = True,
    ):
        """Initialize the word chunker.

        Args:
            chunk_size: Maximum words per chunk
            overlap: Number of words shared by consecutive chunks
            clean: Whether to normalize whitespace before chunking
        """
        _validate(chunk_size, overlap)

        self.chunk_size = chunk_size
        self.overlap = overlap
        self.clean = clean

    def chunk(self, text: str, source: str) -> list[Chunk]:
        """Split text into chunks tagged with ``source``."""
        if self.clean:
            text = clean_text(text)
        return chunk_text(text, self.chunk_size, self.overlap, source)
