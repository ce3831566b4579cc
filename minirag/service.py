"""
Service facade consumed by the tool server.

Validates requests, delegates to the RetrievalPipeline, and shapes the
results into pydantic response models. One RAGService owns the
process-wide vector store.
"""

from __future__ import annotations

import logging
import resource
import sys
from typing import Optional

from minirag.config.settings import AppConfig
from minirag.llm.client import CompletionOptions, LLMClient
from minirag.llm.cloud_llm import build_llm_client
from minirag.models import AskResponse, IngestResponse, StatsResponse
from minirag.rag.chunker import SentenceChunker, default_token_counter
from minirag.rag.embedding_provider import EmbeddingService, MockEmbeddingService, OpenAIEmbeddingService
from minirag.rag.pipeline import RetrievalPipeline
from minirag.rag.vector_store import VectorStore, build_vector_store

LOG = logging.getLogger("service")


class ValidationError(ValueError):
    """Raised when a request is rejected before reaching the pipeline."""

    pass


def _validate_required(name: str, value: Optional[str]) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"Missing required field: {name}")
    return value.strip()


def _peak_memory_mb() -> int:
    rss = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # ru_maxrss is bytes on macOS, kilobytes elsewhere.
    return rss // (1024 * 1024) if sys.platform == "darwin" else rss // 1024


class RAGService:
    """Request-level entry points: ingest, ask, stats."""

    def __init__(self, pipeline: RetrievalPipeline) -> None:
        self._pipeline = pipeline

    @property
    def pipeline(self) -> RetrievalPipeline:
        return self._pipeline

    def ingest(self, text: Optional[str]) -> IngestResponse:
        clean = _validate_required("text", text)
        created = self._pipeline.ingest(clean)
        return IngestResponse(chunksCreated=created)

    def ask(self, query: Optional[str], topK: Optional[int] = None) -> AskResponse:
        question = _validate_required("query", query)
        if topK is not None and topK < 1:
            raise ValidationError(f"topK must be >= 1, got {topK}")
        result = self._pipeline.ask(question, top_k=topK)
        return AskResponse(
            query=question,
            answer=result.answer,
            contextUsed=result.context_used,
            contextPreview=result.context_preview,
            status=result.status,
        )

    def store_size(self) -> int:
        return self._pipeline.vector_store.size()

    def stats(self) -> StatsResponse:
        return StatsResponse(documents=self.store_size(), peakMemoryMb=_peak_memory_mb())


def build_embedding_service(config: AppConfig) -> EmbeddingService:
    emb = config.embedding
    if emb.backend == "openai":
        return OpenAIEmbeddingService(
            api_key=emb.api_key or None,
            model=emb.model,
            dimension=emb.dimension,
            base_url=emb.base_url,
            timeout=config.http_timeout,
        )
    elif emb.backend == "mock":
        return MockEmbeddingService(dim=emb.dimension)
    else:
        raise ValueError(
            f"Unknown embedding backend: {emb.backend!r}. "
            f"Supported: 'openai', 'mock'"
        )


def build_service(
    config: Optional[AppConfig] = None,
    vector_store: Optional[VectorStore] = None,
    embedding_service: Optional[EmbeddingService] = None,
    llm_client: Optional[LLMClient] = None,
) -> RAGService:
    """
    Wire a RAGService from configuration.

    Called once at process start; the resulting store handle is the only
    shared state. Any collaborator can be injected instead of built.
    """
    config = config or AppConfig.from_env()

    service = embedding_service or build_embedding_service(config)
    store = vector_store or build_vector_store(
        "memory",
        dimension=service.dimension(),
        similarity=config.rag.similarity,
    )
    chunking = config.chunking
    chunker = SentenceChunker(
        max_tokens=chunking.max_tokens,
        overlap_sentences=chunking.overlap_sentences,
        token_counter=lambda text: default_token_counter(chunking.tokenizer_name)(text),
    )
    pipeline = RetrievalPipeline(
        vector_store=store,
        embedding_service=service,
        llm_client=llm_client or build_llm_client(config.llm, timeout=config.http_timeout),
        chunker=chunker,
        config=config.rag,
        completion_options=CompletionOptions(
            temperature=config.llm.temperature,
            max_tokens=config.llm.max_tokens,
        ),
        embedding_max_tokens=config.embedding.max_tokens,
    )
    LOG.info(
        "RAG service ready (llm=%s, embedding=%s, similarity=%s)",
        config.llm.backend,
        config.embedding.backend,
        config.rag.similarity,
    )
    return RAGService(pipeline)
