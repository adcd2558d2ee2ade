"""Chunker: overlapping fixed-size word windows.

Input is expected to be redacted already; the chunker never looks at
content beyond whitespace.
"""

from __future__ import annotations
from dataclasses import dataclass

DEFAULT_CHUNK_SIZE = 512
DEFAULT_OVERLAP = 50


def chunk_text(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_OVERLAP,
) -> list[str]:
    """Split *text* into windows of ``chunk_size`` words.

    Consecutive windows share ``overlap`` words. Text that fits in one
    window (including empty text) comes back as a single, untouched chunk.
    Multi-window output joins words with single spaces.
    """
    if chunk_size < 1:
        raise ValueError("chunk_size must be at least 1")
    if overlap < 0:
        raise ValueError("overlap must not be negative")

    words = text.split()
    if len(words) <= chunk_size:
        return [text]

    stride = max(1, chunk_size - overlap)
    chunks: list[str] = []
    for start in range(0, len(words), stride):
        end = min(start + chunk_size, len(words))
        chunks.append(" ".join(words[start:end]))
        if end == len(words):
            break
    return chunks


@dataclass(frozen=True)
class Chunker:
    """Configured chunker (the engine holds one)."""
    chunk_size: int = DEFAULT_CHUNK_SIZE
    overlap: int = DEFAULT_OVERLAP

    def __post_init__(self) -> None:
        if self.chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        if self.overlap < 0:
            raise ValueError("overlap must not be negative")

    @property
    def stride(self) -> int:
        return max(1, self.chunk_size - self.overlap)

    def chunk(self, text: str) -> list[str]:
        return chunk_text(text, self.chunk_size, self.overlap)
