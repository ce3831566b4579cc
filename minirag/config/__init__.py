from minirag.config.settings import AppConfig, ChunkingConfig, EmbeddingConfig, LLMConfig, RAGConfig

__all__ = ["AppConfig", "ChunkingConfig", "EmbeddingConfig", "LLMConfig", "RAGConfig"]
