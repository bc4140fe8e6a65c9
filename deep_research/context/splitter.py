"""
Recursive, separator-aware text splitting.

Splits arbitrary text into chunks no longer than ``chunk_size`` characters
while keeping natural boundaries (paragraphs, lines, sentences, clauses,
words) intact wherever possible. Consecutive chunks share at least
``chunk_overlap`` characters of context whenever the next piece leaves room.

The algorithm:
1. Pick the first separator present in the text (``""`` always matches).
2. Split on it. Pieces shorter than ``chunk_size`` are collected; a piece
   that meets or exceeds it flushes the collected pieces and is re-split
   with the remaining, finer separators.
3. Collected pieces are merged end to end into chunks. After a chunk is
   emitted, pieces are dropped from its head down to the shortest tail that
   is still at least ``chunk_overlap`` long and leaves room for the next
   piece; the tail seeds the next chunk.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .estimator import ContextEstimator

logger = logging.getLogger(__name__)

DEFAULT_SEPARATORS: list[str] = ["\n\n", "\n", ".", ",", " ", ""]

# Smallest character budget trim_to_fit will cut a text down to
MIN_CHUNK_SIZE = 140


@dataclass(frozen=True)
class Chunk:
    """A bounded slice of a larger text."""

    text: str
    start_offset: int

    def __len__(self) -> int:
        return len(self.text)


class TextSplitter:
    """
    Splits text into overlapping, size-bounded chunks.

    Usage:
        splitter = TextSplitter(chunk_size=1000, chunk_overlap=200)
        for chunk in splitter.create_chunks(document):
            print(chunk.start_offset, chunk.text)
    """

    def __init__(
        self,
        chunk_size: int = 1000,
        chunk_overlap: int = 200,
        separators: list[str] | None = None,
    ):
        """
        Initialize the splitter.

        Args:
            chunk_size: Maximum characters per chunk
            chunk_overlap: Minimum characters shared by consecutive chunks
            separators: Separators to try, coarsest first. The empty string
                        splits into single characters.

        Raises:
            ValueError: If the size/overlap combination is invalid
        """
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if chunk_overlap < 0:
            raise ValueError(f"chunk_overlap must be non-negative, got {chunk_overlap}")
        if chunk_overlap >= chunk_size:
            raise ValueError(
                f"Cannot have chunk_overlap ({chunk_overlap}) >= chunk_size ({chunk_size})"
            )

        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.separators = list(DEFAULT_SEPARATORS if separators is None else separators)

    def split_text(self, text: str) -> list[str]:
        """
        Split text into chunk strings.

        Args:
            text: Text to split

        Returns:
            Ordered list of chunk texts
        """
        return self._split(text, self.separators)

    def create_chunks(self, text: str) -> list[Chunk]:
        """
        Split text into chunks annotated with their offset in the input.

        Args:
            text: Text to split

        Returns:
            Ordered list of Chunk objects
        """
        chunks: list[Chunk] = []
        index = -1

        for piece in self.split_text(text):
            search_from = index + 1
            found = text.find(piece, search_from)
            if found == -1:
                found = text.find(piece)
            index = found if found != -1 else search_from
            chunks.append(Chunk(text=piece, start_offset=index))

        return chunks

    def _split(self, text: str, separators: list[str]) -> list[str]:
        """Split on the coarsest separator present, recursing into oversized pieces."""
        final_chunks: list[str] = []

        separator = separators[-1] if separators else ""
        finer: list[str] = []
        for i, candidate in enumerate(separators):
            if candidate == "" or candidate in text:
                separator = candidate
                finer = separators[i + 1 :]
                break

        pieces = text.split(separator) if separator else list(text)

        pending: list[str] = []
        for piece in pieces:
            if len(piece) < self.chunk_size:
                pending.append(piece)
                continue

            if pending:
                final_chunks.extend(self._merge_splits(pending, separator))
                pending = []

            if finer:
                final_chunks.extend(self._split(piece, finer))
            else:
                # Nothing finer to split on: the piece is atomic
                final_chunks.append(piece)

        if pending:
            final_chunks.extend(self._merge_splits(pending, separator))

        return final_chunks

    def _merge_splits(self, splits: list[str], separator: str) -> list[str]:
        """Merge small pieces into chunks, carrying an overlapping tail forward."""
        separator_len = len(separator)
        docs: list[str] = []
        current: list[str] = []
        total = 0

        for piece in splits:
            piece_len = len(piece)
            joined_len = total + piece_len + (separator_len if current else 0)

            if joined_len > self.chunk_size:
                if total > self.chunk_size:
                    logger.warning(
                        f"Created a chunk of size {total}, "
                        f"which is longer than the specified {self.chunk_size}"
                    )

                if current:
                    doc = self._join(current, separator)
                    if doc is not None:
                        docs.append(doc)

                    # Keep the shortest tail of at least chunk_overlap characters
                    # that still leaves room for the next piece
                    while current:
                        head_len = len(current[0]) + (separator_len if len(current) > 1 else 0)
                        fits = total + piece_len + separator_len <= self.chunk_size
                        if fits and total - head_len < self.chunk_overlap:
                            break
                        total -= head_len
                        current.pop(0)

            current.append(piece)
            total += piece_len + (separator_len if len(current) > 1 else 0)

        doc = self._join(current, separator)
        if doc is not None:
            docs.append(doc)

        return docs

    @staticmethod
    def _join(pieces: list[str], separator: str) -> str | None:
        text = separator.join(pieces).strip()
        return text or None


def split(
    text: str,
    chunk_size: int,
    chunk_overlap: int,
    separators: list[str] | None = None,
) -> list[Chunk]:
    """
    Split text into overlapping, size-bounded chunks.

    Args:
        text: Text to split
        chunk_size: Maximum characters per chunk
        chunk_overlap: Minimum characters shared by consecutive chunks
        separators: Separators to try, coarsest first

    Returns:
        Ordered list of Chunk objects
    """
    splitter = TextSplitter(
        chunk_size=chunk_size,
        chunk_overlap=chunk_overlap,
        separators=separators,
    )
    return splitter.create_chunks(text)


def trim_to_fit(
    text: str,
    token_budget: int,
    estimator: ContextEstimator | None = None,
    min_chunk_size: int = MIN_CHUNK_SIZE,
) -> str:
    """
    Trim text so that it fits a token budget.

    Text that already fits is returned unchanged. Otherwise the overflow is
    converted into a character budget (about 3 characters per overflowing
    token) and the first chunk of a zero-overlap split at that budget is kept,
    repeating until the estimate fits.

    Args:
        text: Text to trim
        token_budget: Maximum number of tokens allowed
        estimator: Token estimator (defaults to tiktoken o200k_base)
        min_chunk_size: Never cut below this many characters

    Returns:
        The (possibly shortened) text
    """
    if not text:
        return ""

    if estimator is None:
        from .estimator import ContextEstimator

        estimator = ContextEstimator()

    trimmed = text
    while True:
        length = estimator.count_tokens(trimmed)
        if length <= token_budget:
            return trimmed

        overflow_tokens = length - token_budget
        chunk_size = len(trimmed) - overflow_tokens * 3
        if chunk_size < min_chunk_size:
            return trimmed[:min_chunk_size]

        splitter = TextSplitter(chunk_size=chunk_size, chunk_overlap=0)
        pieces = splitter.split_text(trimmed)
        candidate = pieces[0] if pieces else ""

        if len(candidate) == len(trimmed):
            # Splitting could not shorten it; cut hard at the budget
            candidate = trimmed[:chunk_size]

        logger.debug(f"Trimmed prompt from {len(trimmed)} to {len(candidate)} chars")
        trimmed = candidate
