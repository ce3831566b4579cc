"""
Vector store interface with a thread-safe in-memory backend.

The in-memory store keeps one list of paired (text, vector) records behind a
single lock and answers queries with an exact flat scan: O(N·D) per search,
O(1) amortized per add. Similarity is the raw inner product by default
(vectors are not normalized); cosine can be selected per store.

Follows the abstract base + factory function pattern used by the other
pluggable components.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import numpy as np

LOG = logging.getLogger("rag.vector_store")

SIMILARITIES = ("dot", "cosine")


@dataclass(frozen=True)
class ChunkRecord:
    """A stored chunk. Immutable once created."""

    text: str
    embedding: np.ndarray
    sequence: int


@dataclass(frozen=True)
class SearchResult:
    """A single ranked hit."""

    record: ChunkRecord
    score: float
    rank: int

    @property
    def text(self) -> str:
        return self.record.text


class VectorStore(ABC):
    """
    Abstract interface for chunk storage and similarity search.

    Implementations must make every operation atomic with respect to the
    others.
    """

    @abstractmethod
    def add(self, text: str, embedding: Any) -> ChunkRecord:
        """Append a record and return it."""

    @abstractmethod
    def search(self, query_embedding: Any, top_k: int = 3) -> list[SearchResult]:
        """Return up to ``top_k`` records by descending similarity."""

    @abstractmethod
    def size(self) -> int:
        """Return the number of stored records."""

    def close(self) -> None:
        """Release resources. Override if needed."""
        pass


class InMemoryVectorStore(VectorStore):
    """
    Append-only store guarded by one mutex.

    ``add``, ``search``, ``size`` and ``records`` all run inside the same
    critical section, so a search never sees a half-appended record.
    Ties in score go to the earlier-ingested record.

    Memory grows without bound; there is no eviction or deletion.
    """

    def __init__(self, dimension: int | None = None, similarity: str = "dot") -> None:
        if similarity not in SIMILARITIES:
            raise ValueError(f"Unknown similarity: {similarity!r}. Supported: {', '.join(SIMILARITIES)}")
        if dimension is not None and dimension < 1:
            raise ValueError(f"dimension must be >= 1, got {dimension}")
        self._dim = dimension
        self._similarity = similarity
        self._records: list[ChunkRecord] = []
        self._lock = threading.Lock()

    @property
    def dimension(self) -> int | None:
        return self._dim

    @property
    def similarity(self) -> str:
        return self._similarity

    def add(self, text: str, embedding: Any) -> ChunkRecord:
        vector = np.array(embedding, dtype=np.float64)
        if vector.ndim != 1 or vector.size == 0:
            raise ValueError(f"embedding must be a non-empty 1-D vector, got shape {vector.shape}")
        vector.setflags(write=False)

        with self._lock:
            if self._dim is None:
                self._dim = vector.shape[0]
            elif vector.shape[0] != self._dim:
                raise ValueError(f"embedding dimension {vector.shape[0]} != store dimension {self._dim}")
            record = ChunkRecord(text=text, embedding=vector, sequence=len(self._records))
            self._records.append(record)
        return record

    def search(self, query_embedding: Any, top_k: int = 3) -> list[SearchResult]:
        if top_k < 1:
            raise ValueError(f"top_k must be >= 1, got {top_k}")
        query = np.asarray(query_embedding, dtype=np.float64)

        with self._lock:
            if not self._records:
                return []
            if query.shape != (self._dim,):
                raise ValueError(f"query dimension {query.shape} != store dimension {self._dim}")

            matrix = np.vstack([r.embedding for r in self._records])
            scores = self._score(matrix, query)
            # Stable sort on negated scores keeps insertion order among ties.
            order = np.argsort(-scores, kind="stable")[:top_k]
            hits = [
                SearchResult(record=self._records[i], score=float(scores[i]), rank=rank)
                for rank, i in enumerate(order, start=1)
            ]

        LOG.debug("Searched %d records, returning %d", matrix.shape[0], len(hits))
        return hits

    def _score(self, matrix: np.ndarray, query: np.ndarray) -> np.ndarray:
        scores = matrix @ query
        if self._similarity == "cosine":
            norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
            scores = np.divide(scores, norms, out=np.zeros_like(scores), where=norms > 0)
        return scores

    def size(self) -> int:
        with self._lock:
            return len(self._records)

    def records(self) -> list[ChunkRecord]:
        """Snapshot of all records in insertion order."""
        with self._lock:
            return list(self._records)


def build_vector_store(
    backend: str = "memory",
    **kwargs: Any,
) -> VectorStore:
    """
    Factory: create a VectorStore of the requested type.

    Args:
        backend: "memory" (only supported backend)
        **kwargs: Backend-specific configuration

    Returns:
        VectorStore instance

    Raises:
        ValueError: Unknown backend
    """
    if backend == "memory":
        return InMemoryVectorStore(**kwargs)
    else:
        raise ValueError(
            f"Unknown vector store backend: {backend!r}. "
            f"Supported: 'memory'"
        )
