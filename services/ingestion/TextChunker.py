"""Overlapping fixed-size text chunking.

Chunk i+1 always starts exactly chunk_overlap characters before chunk i
ends, so removing that prefix from every chunk but the first and joining
the rest gives back the original text. Chunk ends prefer paragraph breaks,
then line breaks, then sentence ends, then spaces, and fall back to a hard
cut at chunk_size.
"""

from typing import Iterator

SEPARATOR_LEVELS: tuple[tuple[str, ...], ...] = (
    ("\n\n",),
    ("\n",),
    (". ", "! ", "? "),
    (" ",),
)


class ChunkSequence:
    """Lazy, restartable view over the chunks of one text. Every iteration re-splits."""

    def __init__(self, chunker: "TextChunker", text: str) -> None:
        self._chunker = chunker
        self._text = text

    def __iter__(self) -> Iterator[str]:
        return self._chunker.iter_chunks(self._text)


class TextChunker:
    """Splits document text into overlapping chunks of at most chunk_size characters."""

    def __init__(self, chunk_size: int = 1000, chunk_overlap: int = 200) -> None:
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}.")
        if chunk_overlap < 0 or chunk_overlap >= chunk_size:
            raise ValueError(
                f"chunk_overlap must be in [0, chunk_size), got {chunk_overlap} for chunk_size {chunk_size}."
            )
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    def split(self, text: str) -> ChunkSequence:
        """Return the chunks of text as a lazy, restartable sequence.

        Args:
            text (str): The full document text.

        Returns:
            ChunkSequence: Iterable over non-blank chunks in document order.
        """
        return ChunkSequence(self, text or "")

    def iter_chunks(self, text: str) -> Iterator[str]:
        """Yield the chunks of text. Whitespace-only chunks are skipped."""
        length = len(text)
        start = 0
        while start < length:
            end = self._find_end(text, start)
            chunk = text[start:end]
            if chunk.strip():
                yield chunk
            if end >= length:
                break
            start = end - self.chunk_overlap

    def _find_end(self, text: str, start: int) -> int:
        """Pick the end of the chunk starting at start.

        A break only counts if the chunk stays longer than the overlap, so
        the next chunk always starts further right.
        """
        hard_end = start + self.chunk_size
        if hard_end >= len(text):
            return len(text)

        min_end = start + self.chunk_overlap + 1
        for separators in SEPARATOR_LEVELS:
            best = -1
            for separator in separators:
                position = text.rfind(separator, start, hard_end)
                if position != -1 and position + len(separator) >= min_end:
                    best = max(best, position + len(separator))
            if best != -1:
                return best
        return hard_end
