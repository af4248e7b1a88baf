"""
Sermon Chunking Service

Splits sermon text into overlapping, sentence-aligned chunks for embedding
and retrieval.

Strategy:
---------
1. Segment the text into sentences. A period after a known abbreviation
   ("Dr.", "Rev.", "e.g.", ...) does not end a sentence.
2. Greedily pack whole sentences into a chunk until adding the next one
   would exceed CHUNK_MAX_CHARS.
3. Start the next chunk with the trailing sentences of the previous one,
   up to CHUNK_OVERLAP_CHARS, so context crossing a boundary is kept.

A single sentence longer than the bound becomes a chunk of its own; it is
never split mid-sentence.

Configuration from settings:
- CHUNK_MAX_CHARS: 1000 (default)
- CHUNK_OVERLAP_CHARS: 200 (default)
"""

import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from sermonvault.core.config import settings

# Titles and Latin abbreviations that end in a period mid-sentence
DEFAULT_ABBREVIATIONS: frozenset[str] = frozenset({
    "mr.",
    "mrs.",
    "dr.",
    "ph.d.",
    "e.g.",
    "i.e.",
    "etc.",
    "vs.",
    "rev.",
})

# Split after terminal punctuation (optionally closed by a quote/paren),
# or at a paragraph break.
_SENTENCE_BOUNDARY = re.compile(
    r"(?<=[.!?])\s+|(?<=[.!?][\"'”’)])\s+|\n\s*\n"
)


@dataclass(frozen=True)
class Chunk:
    """
    One chunk of sermon text.

    Attributes:
        index: Position within the sermon (0-based)
        text: Chunk content, whole sentences joined by single spaces
        overlap: Leading part of text repeated from the previous chunk
                 ("" for the first chunk or when nothing fit)
    """

    index: int
    text: str
    overlap: str = ""

    @property
    def new_text(self) -> str:
        """The part of the chunk not already present in the previous one."""
        if not self.overlap:
            return self.text
        return self.text[len(self.overlap):].lstrip()


class SermonChunker:
    """
    Sentence-aware chunker with character bounds.

    Usage:
    ------
    chunker = SermonChunker()
    for chunk in chunker.iter_chunks(sermon_text):
        ...

    iter_chunks() is a generator: nothing is computed until iterated, and
    every call starts from the beginning. The same text and parameters
    always produce the same chunks.
    """

    def __init__(
        self,
        max_chars: int | None = None,
        overlap_chars: int | None = None,
        abbreviations: Iterable[str] | None = None,
    ):
        """
        Args:
            max_chars: Upper bound on chunk length (default from settings)
            overlap_chars: Maximum characters of trailing sentences repeated (default from settings)
            abbreviations: Extra abbreviations on top of DEFAULT_ABBREVIATIONS
        """
        self.max_chars = max_chars or settings.CHUNK_MAX_CHARS
        self.overlap_chars = settings.CHUNK_OVERLAP_CHARS if overlap_chars is None else overlap_chars

        if self.max_chars <= 0:
            raise ValueError("max_chars must be positive")
        if self.overlap_chars < 0 or self.overlap_chars >= self.max_chars:
            raise ValueError("overlap_chars must be in [0, max_chars)")

        extra = {a.strip().lower() for a in abbreviations or ()}
        self.abbreviations = DEFAULT_ABBREVIATIONS | frozenset(a for a in extra if a)

    # ========================================
    # Sentence Segmentation
    # ========================================

    def split_sentences(self, text: str) -> list[str]:
        """
        Segment text into whitespace-normalized sentences.

        Pieces that end with an abbreviation are glued to the following
        piece, so "Rev. Smith preached." stays one sentence.
        """
        pieces = [" ".join(p.split()) for p in _SENTENCE_BOUNDARY.split(text)]
        pieces = [p for p in pieces if p]

        sentences: list[str] = []
        buffer = ""
        for piece in pieces:
            buffer = f"{buffer} {piece}" if buffer else piece
            if not self._ends_with_abbreviation(buffer):
                sentences.append(buffer)
                buffer = ""

        if buffer:
            sentences.append(buffer)

        return sentences

    def _ends_with_abbreviation(self, sentence: str) -> bool:
        last_word = sentence.rsplit(" ", 1)[-1].lower()
        return last_word in self.abbreviations

    # ========================================
    # Chunk Packing
    # ========================================

    def iter_chunks(self, text: str) -> Iterator[Chunk]:
        """
        Lazily yield chunks of text.

        Every chunk is at most max_chars long unless it consists of a
        single sentence that is longer on its own.
        """
        current: list[str] = []
        current_len = 0
        overlap_count = 0
        index = 0

        for sentence in self.split_sentences(text):
            added = len(sentence) + (1 if current else 0)

            if current and current_len + added > self.max_chars:
                yield Chunk(
                    index=index,
                    text=" ".join(current),
                    overlap=" ".join(current[:overlap_count]),
                )
                index += 1

                current = self._overlap_tail(current)
                overlap_count = len(current)
                current_len = len(" ".join(current))
                added = len(sentence) + (1 if current else 0)

                # Drop the overlap rather than exceed the bound
                if current and current_len + added > self.max_chars:
                    current, overlap_count, current_len = [], 0, 0
                    added = len(sentence)

            current.append(sentence)
            current_len += added

        if len(current) > overlap_count:
            yield Chunk(
                index=index,
                text=" ".join(current),
                overlap=" ".join(current[:overlap_count]),
            )

    def chunk_text(self, text: str) -> list[Chunk]:
        """Materialize iter_chunks() into a list."""
        return list(self.iter_chunks(text))

    def _overlap_tail(self, sentences: list[str]) -> list[str]:
        """Trailing sentences whose joined length fits in overlap_chars."""
        tail: list[str] = []
        length = 0
        for sentence in reversed(sentences):
            extra = len(sentence) + (1 if tail else 0)
            if length + extra > self.overlap_chars:
                break
            tail.insert(0, sentence)
            length += extra
        return tail


def reconstruct_text(chunks: Iterable[Chunk]) -> str:
    """Join chunks back together, skipping each chunk's overlap."""
    return " ".join(chunk.new_text for chunk in chunks if chunk.new_text)
