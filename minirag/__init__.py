"""
minirag: retrieval-augmented question answering over an in-memory corpus.

Raw documents are split into overlapping sentence chunks, embedded, and kept
in a thread-safe vector store. Questions are answered by retrieving the
closest chunks and handing them to a chat-completion backend as context.

Subpackages:
    - rag: chunker, embedding cache, vector store, retrieval pipeline
    - llm: answer-generation clients and prompt construction
    - config: environment-driven settings
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
