"""Configuration management for minirag.

Loads settings from environment variables with sensible defaults.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field


def _first_env(*names: str, default: str = "") -> str:
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return default


@dataclass
class ChunkingConfig:
    """Chunker policy."""
    max_tokens: int = 800
    overlap_sentences: int = 2
    tokenizer_name: str = "gpt2"

    def __post_init__(self) -> None:
        if self.max_tokens < 1:
            raise ValueError(f"max_tokens must be >= 1, got {self.max_tokens}")
        if self.overlap_sentences < 0:
            raise ValueError(f"overlap_sentences must be >= 0, got {self.overlap_sentences}")

    @classmethod
    def from_env(cls) -> "ChunkingConfig":
        return cls(
            max_tokens=int(os.getenv("MINIRAG_CHUNK_MAX_TOKENS", "800")),
            overlap_sentences=int(os.getenv("MINIRAG_CHUNK_OVERLAP", "2")),
            tokenizer_name=os.getenv("MINIRAG_TOKENIZER", "gpt2"),
        )


@dataclass
class EmbeddingConfig:
    """Embedding service configuration."""
    backend: str = "openai"  # "openai", "mock"
    model: str = "text-embedding-3-small"
    dimension: int = 1536
    max_tokens: int = 8191
    api_key: str = ""
    base_url: str = "https://api.openai.com/v1"

    def __post_init__(self) -> None:
        if self.dimension < 1:
            raise ValueError(f"dimension must be >= 1, got {self.dimension}")
        if self.max_tokens < 1:
            raise ValueError(f"max_tokens must be >= 1, got {self.max_tokens}")

    @classmethod
    def from_env(cls) -> "EmbeddingConfig":
        return cls(
            backend=os.getenv("MINIRAG_EMBEDDING_BACKEND", "openai"),
            model=os.getenv("MINIRAG_EMBEDDING_MODEL", "text-embedding-3-small"),
            dimension=int(os.getenv("MINIRAG_EMBEDDING_DIM", "1536")),
            max_tokens=int(os.getenv("MINIRAG_EMBEDDING_MAX_TOKENS", "8191")),
            api_key=_first_env("OPENAI_API_KEY", "OPENAI_ACCESS_TOKEN"),
            base_url=os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1"),
        )


@dataclass
class LLMConfig:
    """Answer-generation backend configuration."""
    backend: str = "openai"  # "openai", "openrouter", "mock"
    openai_api_key: str = ""
    openai_model: str = "gpt-3.5-turbo"
    openrouter_api_key: str = ""
    openrouter_models: tuple[str, ...] = ("mistralai/mistral-7b-instruct", "openai/gpt-3.5-turbo")
    temperature: float = 0.2
    max_tokens: int = 150
    site_url: str = "http://localhost:4567"
    site_name: str = "MiniRAG"

    @classmethod
    def from_env(cls) -> "LLMConfig":
        openrouter_key = _first_env("OR_ACCESS_TOKEN", "OPENROUTER_API_KEY")
        # Prefer OpenRouter whenever a token is present, decided once here.
        default_backend = "openrouter" if openrouter_key else "openai"
        return cls(
            backend=os.getenv("MINIRAG_LLM_BACKEND", default_backend),
            openai_api_key=_first_env("OPENAI_API_KEY", "OPENAI_ACCESS_TOKEN"),
            openai_model=os.getenv("MINIRAG_OPENAI_MODEL", "gpt-3.5-turbo"),
            openrouter_api_key=openrouter_key,
            temperature=float(os.getenv("MINIRAG_TEMPERATURE", "0.2")),
            max_tokens=int(os.getenv("MINIRAG_MAX_OUTPUT_TOKENS", "150")),
            site_url=os.getenv("MINIRAG_SITE_URL", "http://localhost:4567"),
            site_name=os.getenv("MINIRAG_SITE_NAME", "MiniRAG"),
        )


@dataclass
class RAGConfig:
    """Retrieval pipeline configuration."""
    top_k: int = 3
    similarity: str = "dot"  # "dot", "cosine"
    context_display_chars: int = 200
    preview_chars: int = 50
    preview_count: int = 3

    def __post_init__(self) -> None:
        if self.top_k < 1:
            raise ValueError(f"top_k must be >= 1, got {self.top_k}")
        if self.similarity not in ("dot", "cosine"):
            raise ValueError(f"similarity must be 'dot' or 'cosine', got {self.similarity!r}")

    @classmethod
    def from_env(cls) -> "RAGConfig":
        return cls(
            top_k=int(os.getenv("MINIRAG_TOP_K", "3")),
            similarity=os.getenv("MINIRAG_SIMILARITY", "dot"),
        )


@dataclass
class AppConfig:
    """Top-level application configuration."""
    chunking: ChunkingConfig = field(default_factory=ChunkingConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    rag: RAGConfig = field(default_factory=RAGConfig)
    http_timeout: float = 30.0
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.http_timeout <= 0:
            raise ValueError(f"http_timeout must be > 0, got {self.http_timeout}")
        if self.log_level.upper() not in logging.getLevelNamesMapping():
            raise ValueError(f"log_level must be a logging level name, got {self.log_level!r}")

    @classmethod
    def from_env(cls) -> "AppConfig":
        return cls(
            chunking=ChunkingConfig.from_env(),
            embedding=EmbeddingConfig.from_env(),
            llm=LLMConfig.from_env(),
            rag=RAGConfig.from_env(),
            http_timeout=float(os.getenv("MINIRAG_HTTP_TIMEOUT", "30")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
