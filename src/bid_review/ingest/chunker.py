"""Fixed-window chunking of extracted document text."""

from __future__ import annotations

from bid_review.config import ChunkingConfig
from bid_review.types import Chunk


class FixedWindowChunker:
    """Splits text into ordered windows bounded by a character budget.

    With `overlap_chars == 0` the windows are contiguous and non-overlapping, so
    joining every chunk's text reproduces the input exactly. Only the last
    window may be shorter than `max_chunk_chars`. Empty input produces a single
    empty chunk.

    With a positive overlap each window after the first starts
    `overlap_chars` before the previous window's end. The overlap is clamped to
    `max_chunk_chars - 1` so the window always advances.
    """

    def __init__(self, config: ChunkingConfig | None = None) -> None:
        self.config = config or ChunkingConfig()

    def chunk(self, text: str) -> list[Chunk]:
        return split_into_chunks(
            text, self.config.max_chunk_chars, overlap=self.config.overlap_chars
        )


def split_into_chunks(text: str, max_chars: int, *, overlap: int = 0) -> list[Chunk]:
    if max_chars <= 0:
        raise ValueError("max_chars must be positive")
    if len(text) <= max_chars:
        return [Chunk(index=0, text=text, start=0)]

    stride = max_chars - max(0, min(overlap, max_chars - 1))
    chunks: list[Chunk] = []
    start = 0
    while start < len(text):
        end = min(len(text), start + max_chars)
        chunks.append(Chunk(index=len(chunks), text=text[start:end], start=start))
        if end >= len(text):
            break
        start += stride
    return chunks
