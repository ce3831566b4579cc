"""
Embedding layer: service backends plus a per-request caching provider.

EmbeddingService is the contract for the external embedding API. The
EmbeddingProvider wraps one service with an exact-text memo cache, a
character-budget clip, and soft degradation: any service failure yields an
all-zero vector instead of an exception.
"""

from __future__ import annotations

import hashlib
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import StrEnum

import httpx
import numpy as np

from minirag.text import truncate

LOG = logging.getLogger("rag.embedding_provider")

DEFAULT_DIMENSION = 1536
DEFAULT_MAX_TOKENS = 8191
CHARS_PER_TOKEN = 4


class EmbeddingServiceError(Exception):
    """Raised by an EmbeddingService when a vector cannot be produced."""

    pass


class ResultStatus(StrEnum):
    """Quality of a produced result."""

    SUCCESS = "success"
    DEGRADED = "degraded"
    FAILED = "failed"


@dataclass(frozen=True)
class EmbeddingResult:
    """Vector plus how it was obtained."""

    vector: np.ndarray
    status: ResultStatus = ResultStatus.SUCCESS
    cached: bool = False
    error: str | None = None

    @property
    def degraded(self) -> bool:
        return self.status is ResultStatus.DEGRADED


class EmbeddingService(ABC):
    """Abstract interface for the external text → vector service."""

    @abstractmethod
    def embed_text(self, text: str) -> list[float]:
        """
        Embed a single text.

        Raises:
            EmbeddingServiceError: transport failure, error payload or
                malformed response
        """
        ...

    @abstractmethod
    def dimension(self) -> int:
        """Return the embedding dimensionality."""
        ...

    def close(self) -> None:
        """Release resources. Override if needed."""
        pass


class OpenAIEmbeddingService(EmbeddingService):
    """
    OpenAI embeddings API over httpx.

    Default model: text-embedding-3-small (1536 dimensions).
    API key from OPENAI_API_KEY (or OPENAI_ACCESS_TOKEN) when not passed.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "text-embedding-3-small",
        dimension: int = DEFAULT_DIMENSION,
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._api_key = api_key or os.environ.get("OPENAI_API_KEY") or os.environ.get("OPENAI_ACCESS_TOKEN", "")
        if not self._api_key:
            raise ValueError("API key required. Set OPENAI_API_KEY or pass api_key=.")

        self._model = model
        self._dim = dimension
        self._client = httpx.Client(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Authorization": f"Bearer {self._api_key}"},
        )

    def embed_text(self, text: str) -> list[float]:
        try:
            resp = self._client.post("/embeddings", json={"model": self._model, "input": text})
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise EmbeddingServiceError(f"embedding request failed: {exc}") from exc

        if isinstance(data, dict) and data.get("error"):
            error = data["error"]
            message = error.get("message", error) if isinstance(error, dict) else error
            raise EmbeddingServiceError(f"Embedding error: {message}")
        if resp.status_code >= 400:
            raise EmbeddingServiceError(f"Embedding error: HTTP {resp.status_code}")

        try:
            vector = data["data"][0]["embedding"]
        except (KeyError, IndexError, TypeError) as exc:
            raise EmbeddingServiceError(f"malformed embedding response: {exc!r}") from exc
        if not isinstance(vector, list):
            raise EmbeddingServiceError("malformed embedding response: embedding is not a list")
        return vector

    def dimension(self) -> int:
        return self._dim

    def close(self) -> None:
        self._client.close()


class MockEmbeddingService(EmbeddingService):
    """
    Offline embedding service for tests and local runs.

    Texts found in ``vectors`` return that vector; anything else gets a
    deterministic pseudo-random vector seeded from the text's hash.
    Setting ``fail`` makes every call raise EmbeddingServiceError.
    """

    def __init__(
        self,
        dim: int = DEFAULT_DIMENSION,
        vectors: dict[str, list[float]] | None = None,
        fail: bool = False,
    ) -> None:
        self._dim = dim
        self._vectors = dict(vectors or {})
        self.fail = fail
        self.calls: list[str] = []

    def embed_text(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.fail:
            raise EmbeddingServiceError("mock embedding service configured to fail")
        if text in self._vectors:
            return list(self._vectors[text])
        seed = int.from_bytes(hashlib.sha256(text.encode("utf-8")).digest()[:8], "big")
        rng = np.random.default_rng(seed)
        return rng.standard_normal(self._dim).tolist()

    def dimension(self) -> int:
        return self._dim

    @property
    def call_count(self) -> int:
        return len(self.calls)


class EmbeddingProvider:
    """
    Memoizing, fail-soft front end to an EmbeddingService.

    Instances are meant to live for one request: the cache is unbounded and
    not shared. A failed call returns a zero vector of the declared
    dimension with status DEGRADED; the fallback is never cached, so the
    next call for the same text goes back to the service.

    Usage::

        provider = EmbeddingProvider(OpenAIEmbeddingService())
        vec = provider.embed("What is a vector store?")
    """

    def __init__(
        self,
        service: EmbeddingService,
        dimension: int | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        chars_per_token: int = CHARS_PER_TOKEN,
    ) -> None:
        self._service = service
        self._dim = dimension or service.dimension()
        self._char_budget = max_tokens * chars_per_token
        self._cache: dict[str, np.ndarray] = {}

    def embed(self, text: str) -> np.ndarray:
        """Return the vector for ``text``; never raises on service failure."""
        return self.embed_result(text).vector

    def embed_result(self, text: str) -> EmbeddingResult:
        """Embed ``text`` and report whether the vector is real or a fallback."""
        cached = self._cache.get(text)
        if cached is not None:
            return EmbeddingResult(vector=cached, cached=True)

        clipped = truncate(text, self._char_budget, omission="")
        try:
            raw = self._service.embed_text(clipped)
            vector = np.asarray(raw, dtype=np.float64)
            if vector.shape != (self._dim,):
                raise EmbeddingServiceError(
                    f"expected {self._dim}-dimensional embedding, got shape {vector.shape}"
                )
        except (EmbeddingServiceError, ValueError, TypeError) as exc:
            LOG.warning("Embedding fallback: %s", exc)
            return EmbeddingResult(
                vector=self.zero_vector(),
                status=ResultStatus.DEGRADED,
                error=str(exc),
            )

        vector.setflags(write=False)
        self._cache[text] = vector
        return EmbeddingResult(vector=vector)

    def zero_vector(self) -> np.ndarray:
        vector = np.zeros(self._dim, dtype=np.float64)
        vector.setflags(write=False)
        return vector

    def dimension(self) -> int:
        return self._dim

    @property
    def cache_size(self) -> int:
        return len(self._cache)
