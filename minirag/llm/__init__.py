"""
Answer generation: chat-completion clients and grounded prompts.

Optional backends (openai, openrouter) need network access and API keys;
MockLLMClient works offline.
"""

from __future__ import annotations

from minirag.llm.client import CompletionOptions, LLMClient, LLMClientError, MockLLMClient

__all__ = [
    "CompletionOptions",
    "LLMClient",
    "LLMClientError",
    "MockLLMClient",
]
