"""
Abstract answer-generation client.

Defines the LLMClient ABC and MockLLMClient for testing. HTTP backends live
in cloud_llm.py; which one is used is decided once, when the client is
built, never per call.
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass

LOG = logging.getLogger("llm.client")


class LLMClientError(Exception):
    """Raised when a completion cannot be obtained from the backend."""

    def __init__(self, message: str, provider: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


@dataclass(frozen=True)
class CompletionOptions:
    """Sampling options sent with every completion request."""

    temperature: float = 0.2
    max_tokens: int = 150

    def __post_init__(self) -> None:
        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError(f"temperature must be 0-2, got {self.temperature}")
        if self.max_tokens < 1:
            raise ValueError(f"max_tokens must be >= 1, got {self.max_tokens}")


Message = dict[str, str]


class LLMClient(abc.ABC):
    """Abstract base class for chat-completion backends."""

    @abc.abstractmethod
    def complete(self, messages: list[Message], options: CompletionOptions | None = None) -> str | None:
        """
        Return the assistant text for ``messages``.

        ``messages`` is an ordered list of ``{"role", "content"}`` dicts.
        Returns None when the backend answered without any content.

        Raises:
            LLMClientError: transport failure or error response
        """
        ...

    def close(self) -> None:
        """Clean up resources (e.g., HTTP clients). Override if needed."""
        pass


class MockLLMClient(LLMClient):
    """
    Mock client for testing.

    Returns canned responses in order (cycling), or echoes the user
    question when none are given. ``error`` makes every call raise.
    """

    def __init__(self, responses: list[str | None] | None = None, error: str | None = None) -> None:
        self._responses = responses or []
        self._error = error
        self.calls: list[tuple[list[Message], CompletionOptions]] = []

    def complete(self, messages: list[Message], options: CompletionOptions | None = None) -> str | None:
        self.calls.append((messages, options or CompletionOptions()))
        if self._error:
            raise LLMClientError(self._error, provider="mock")
        if self._responses:
            return self._responses[(len(self.calls) - 1) % len(self._responses)]
        question = next((m["content"] for m in reversed(messages) if m["role"] == "user"), "")
        return f"Mock answer to: {question}"

    @property
    def call_count(self) -> int:
        return len(self.calls)
