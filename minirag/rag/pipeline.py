"""
Retrieval pipeline: ingestion and grounded question answering.

Ingest:  text → chunk → embed each chunk → store.add (in chunk order)
Ask:     query → embed → store.search → numbered context → LLM → answer

Each call builds its own EmbeddingProvider, so the embedding cache lives
for exactly one request. The vector store is shared and passed in.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from minirag.config.settings import RAGConfig
from minirag.llm.client import CompletionOptions, LLMClient, LLMClientError
from minirag.llm.prompts import INSUFFICIENT_INFORMATION, build_messages, validate_response
from minirag.rag.chunker import SentenceChunker
from minirag.rag.embedding_provider import (
    DEFAULT_MAX_TOKENS,
    EmbeddingProvider,
    EmbeddingService,
    ResultStatus,
)
from minirag.rag.vector_store import VectorStore
from minirag.text import truncate

LOG = logging.getLogger("rag.pipeline")


@dataclass
class AnswerResult:
    """Outcome of ``RetrievalPipeline.ask``."""

    answer: str
    context_used: int
    context_preview: list[str] = field(default_factory=list)
    status: ResultStatus = ResultStatus.SUCCESS


class RetrievalPipeline:
    """
    Orchestrates chunker, embedding provider, vector store and LLM client.

    Usage::

        pipeline = RetrievalPipeline(
            vector_store=InMemoryVectorStore(),
            embedding_service=OpenAIEmbeddingService(),
            llm_client=OpenAIChatClient(),
        )
        pipeline.ingest(document_text)
        result = pipeline.ask("What does the document say about cats?")
    """

    def __init__(
        self,
        vector_store: VectorStore,
        embedding_service: EmbeddingService,
        llm_client: LLMClient,
        chunker: SentenceChunker | None = None,
        config: RAGConfig | None = None,
        completion_options: CompletionOptions | None = None,
        embedding_max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> None:
        self._vs = vector_store
        self._service = embedding_service
        self._llm = llm_client
        self._chunker = chunker or SentenceChunker()
        self._config = config or RAGConfig()
        self._options = completion_options or CompletionOptions()
        self._embedding_max_tokens = embedding_max_tokens

    @property
    def vector_store(self) -> VectorStore:
        return self._vs

    def _new_provider(self) -> EmbeddingProvider:
        return EmbeddingProvider(self._service, max_tokens=self._embedding_max_tokens)

    def ingest(self, raw_text: str) -> int:
        """
        Chunk, embed and store ``raw_text``.

        Chunks whose embedding fell back to zeros are stored anyway; there
        is no rollback of chunks already added.

        Returns:
            Number of chunks added
        """
        chunks = self._chunker.chunk(raw_text)
        provider = self._new_provider()

        degraded = 0
        for chunk in chunks:
            result = provider.embed_result(chunk)
            if result.degraded:
                degraded += 1
            self._vs.add(chunk, result.vector)

        if degraded:
            LOG.warning("Ingested %d chunks, %d with fallback embeddings", len(chunks), degraded)
        else:
            LOG.info("Ingested %d chunks", len(chunks))
        return len(chunks)

    def ask(self, query: str, top_k: int | None = None) -> AnswerResult:
        """
        Answer ``query`` from the top ``top_k`` stored chunks.

        Never raises for backend failures: a degraded query embedding yields
        status DEGRADED, and a failed completion yields an answer describing
        the failure with status FAILED.
        """
        config = self._config
        k = top_k if top_k is not None else config.top_k

        embedding = self._new_provider().embed_result(query)
        hits = self._vs.search(embedding.vector, top_k=k)
        chunks = [hit.text for hit in hits]

        status = ResultStatus.DEGRADED if embedding.degraded else ResultStatus.SUCCESS
        if not chunks:
            LOG.info("No stored chunks to answer from")
            return AnswerResult(answer=INSUFFICIENT_INFORMATION, context_used=0, status=status)

        messages = build_messages(query, chunks, display_chars=config.context_display_chars)
        try:
            answer = validate_response(self._llm.complete(messages, self._options))
        except LLMClientError as exc:
            LOG.error("Answer generation failed: %s", exc)
            answer = f"Error generating answer: {exc}"
            status = ResultStatus.FAILED

        preview = [truncate(chunk, config.preview_chars) for chunk in chunks[: config.preview_count]]
        LOG.info("Answered query with %d context chunks (status=%s)", len(chunks), status)
        return AnswerResult(
            answer=answer,
            context_used=len(chunks),
            context_preview=preview,
            status=status,
        )
