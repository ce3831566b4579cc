"""
Retrieval subsystem: chunking, embedding cache, vector store, pipeline.

The store is an exact flat scan held in memory; nothing is persisted.
"""

from __future__ import annotations

from minirag.rag.chunker import SentenceChunker, chunk_text, split_sentences
from minirag.rag.embedding_provider import (
    EmbeddingProvider,
    EmbeddingResult,
    EmbeddingService,
    EmbeddingServiceError,
    MockEmbeddingService,
    OpenAIEmbeddingService,
    ResultStatus,
)
from minirag.rag.pipeline import AnswerResult, RetrievalPipeline
from minirag.rag.vector_store import (
    ChunkRecord,
    InMemoryVectorStore,
    SearchResult,
    VectorStore,
    build_vector_store,
)

__all__ = [
    "AnswerResult",
    "ChunkRecord",
    "EmbeddingProvider",
    "EmbeddingResult",
    "EmbeddingService",
    "EmbeddingServiceError",
    "InMemoryVectorStore",
    "MockEmbeddingService",
    "OpenAIEmbeddingService",
    "ResultStatus",
    "RetrievalPipeline",
    "SearchResult",
    "SentenceChunker",
    "VectorStore",
    "build_vector_store",
    "chunk_text",
    "split_sentences",
]
