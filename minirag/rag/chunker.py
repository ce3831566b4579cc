"""
Sentence-aligned chunker with token budgets and sentence overlap.

Documents are split at sentence boundaries and packed greedily into chunks
whose token count stays within ``max_tokens``. Consecutive chunks share the
last ``overlap_sentences`` sentences so that context spanning a boundary is
retrievable from either side.

Token counts come from a subword tokenizer (GPT-2 vocabulary by default,
loaded through the ``tokenizers`` library), not from characters or words.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from functools import lru_cache

LOG = logging.getLogger("rag.chunker")

SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")

TokenCounter = Callable[[str], int]


class SubwordTokenCounter:
    """
    Counts tokens with a pretrained ``tokenizers`` vocabulary.

    The vocabulary is fetched from the Hugging Face hub on first use and
    cached locally by the library.
    """

    def __init__(self, tokenizer_name: str = "gpt2") -> None:
        from tokenizers import Tokenizer

        self._tokenizer_name = tokenizer_name
        LOG.info("Loading tokenizer: %s", tokenizer_name)
        self._tokenizer = Tokenizer.from_pretrained(tokenizer_name)

    def __call__(self, text: str) -> int:
        return len(self._tokenizer.encode(text, add_special_tokens=False).tokens)


@lru_cache(maxsize=4)
def default_token_counter(tokenizer_name: str = "gpt2") -> SubwordTokenCounter:
    """Process-wide token counter, loaded once per vocabulary name."""
    return SubwordTokenCounter(tokenizer_name)


def split_sentences(text: str) -> list[str]:
    """Split on whitespace that follows ``.``, ``!`` or ``?``; drop empty pieces."""
    return [s for s in SENTENCE_BOUNDARY.split(text.strip()) if s.strip()]


def chunk_text(
    text: str,
    max_tokens: int = 800,
    overlap_sentences: int = 2,
    token_counter: TokenCounter | None = None,
) -> list[str]:
    """
    Split text into sentence-aligned, token-bounded, overlapping chunks.

    Sentences are accumulated until the next one would push the running
    token count past ``max_tokens``; the buffer is then emitted (sentences
    joined by a single space) and the next buffer starts with the last
    ``overlap_sentences`` sentences of the emitted one.

    A sentence that alone exceeds ``max_tokens`` is emitted whole as its own
    chunk, so chunks may exceed the nominal limit.

    Note:
        When ``overlap_sentences`` is at least the number of sentences in a
        flushed chunk, the whole chunk is carried into the next one. Large
        overlaps therefore duplicate content and inflate the store without
        improving recall.

    Args:
        text: Raw document text
        max_tokens: Token budget per chunk
        overlap_sentences: Sentences repeated at the start of the next chunk
        token_counter: Callable returning the token count of a string;
            defaults to the GPT-2 subword tokenizer

    Returns:
        Chunk strings in document order

    Raises:
        ValueError: ``max_tokens`` < 1 or ``overlap_sentences`` < 0
    """
    if max_tokens < 1:
        raise ValueError(f"max_tokens must be >= 1, got {max_tokens}")
    if overlap_sentences < 0:
        raise ValueError(f"overlap_sentences must be >= 0, got {overlap_sentences}")

    sentences = split_sentences(text)
    if not sentences:
        return []

    count = token_counter or default_token_counter()

    chunks: list[str] = []
    current: list[str] = []
    current_tokens = 0

    for sentence in sentences:
        sentence_tokens = count(sentence)

        if current and current_tokens + sentence_tokens > max_tokens:
            chunks.append(" ".join(current))
            if overlap_sentences >= len(current):
                LOG.debug(
                    "Overlap of %d sentences recycles the whole %d-sentence chunk",
                    overlap_sentences,
                    len(current),
                )
            current = current[max(len(current) - overlap_sentences, 0) :] if overlap_sentences else []
            current_tokens = sum(count(s) for s in current)

        current.append(sentence)
        current_tokens += sentence_tokens

    if current:
        chunks.append(" ".join(current))

    LOG.debug("Chunked %d sentences into %d chunks", len(sentences), len(chunks))
    return chunks


@dataclass
class SentenceChunker:
    """
    Chunker bound to a fixed policy.

    Example:
        >>> chunker = SentenceChunker(max_tokens=50, overlap_sentences=1,
        ...                           token_counter=lambda s: len(s.split()))
        >>> chunker.chunk("One. Two. Three.")
        ['One. Two. Three.']
    """

    max_tokens: int = 800
    overlap_sentences: int = 2
    token_counter: TokenCounter | None = None

    def __post_init__(self) -> None:
        if self.max_tokens < 1:
            raise ValueError(f"max_tokens must be >= 1, got {self.max_tokens}")
        if self.overlap_sentences < 0:
            raise ValueError(f"overlap_sentences must be >= 0, got {self.overlap_sentences}")

    def chunk(self, text: str) -> list[str]:
        return chunk_text(
            text,
            max_tokens=self.max_tokens,
            overlap_sentences=self.overlap_sentences,
            token_counter=self.token_counter,
        )
