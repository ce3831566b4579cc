"""
Cloud chat-completion clients: OpenAI and OpenRouter backends.

Both speak the OpenAI chat completions wire format through a blocking
httpx client with an explicit timeout. OpenRouter additionally sends site
attribution headers and a list of fallback models.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Any

import httpx

from minirag.llm.client import CompletionOptions, LLMClient, LLMClientError, Message, MockLLMClient

if TYPE_CHECKING:
    from minirag.config.settings import LLMConfig

LOG = logging.getLogger("llm.cloud_llm")


class OpenAIChatClient(LLMClient):
    """
    OpenAI chat completions backend.

    API key from OPENAI_API_KEY (or OPENAI_ACCESS_TOKEN) when not passed.
    """

    provider = "openai"
    default_base_url = "https://api.openai.com/v1"

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-3.5-turbo",
        base_url: str | None = None,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._api_key = api_key or self._key_from_env()
        if not self._api_key:
            raise ValueError(f"API key required for {self.provider}. Set the environment variable or pass api_key=.")

        self._model = model
        self._client = httpx.Client(
            base_url=base_url or self.default_base_url,
            timeout=timeout,
            transport=transport,
        )

    @staticmethod
    def _key_from_env() -> str:
        return os.environ.get("OPENAI_API_KEY") or os.environ.get("OPENAI_ACCESS_TOKEN", "")

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    def _body(self, messages: list[Message], options: CompletionOptions) -> dict[str, Any]:
        return {
            "model": self._model,
            "messages": messages,
            "temperature": options.temperature,
            "max_tokens": options.max_tokens,
        }

    def complete(self, messages: list[Message], options: CompletionOptions | None = None) -> str | None:
        options = options or CompletionOptions()
        LOG.debug("%s completion: %d messages, max_tokens=%d", self.provider, len(messages), options.max_tokens)
        try:
            resp = self._client.post("/chat/completions", headers=self._headers(), json=self._body(messages, options))
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as exc:
            raise LLMClientError(
                f"{self.provider} returned HTTP {exc.response.status_code}",
                provider=self.provider,
                status_code=exc.response.status_code,
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise LLMClientError(f"{self.provider} request failed: {exc}", provider=self.provider) from exc

        if isinstance(data, dict) and data.get("error"):
            error = data["error"]
            message = error.get("message", error) if isinstance(error, dict) else error
            raise LLMClientError(f"{self.provider} error: {message}", provider=self.provider)

        try:
            content = data.get("choices", [{}])[0].get("message", {}).get("content")
        except (AttributeError, IndexError, KeyError, TypeError) as exc:
            raise LLMClientError(f"malformed {self.provider} response: {exc!r}", provider=self.provider) from exc
        if content is not None and not isinstance(content, str):
            raise LLMClientError(
                f"malformed {self.provider} response: content is {type(content).__name__}",
                provider=self.provider,
            )
        return content

    def close(self) -> None:
        self._client.close()


class OpenRouterChatClient(OpenAIChatClient):
    """
    OpenRouter backend.

    Routes across ``models`` in order, falling back when the first is
    unavailable. API key from OR_ACCESS_TOKEN (or OPENROUTER_API_KEY).
    """

    provider = "openrouter"
    default_base_url = "https://openrouter.ai/api/v1"

    def __init__(
        self,
        api_key: str | None = None,
        models: list[str] | None = None,
        site_url: str = "http://localhost:4567",
        site_name: str = "MiniRAG",
        base_url: str | None = None,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._models = models or ["mistralai/mistral-7b-instruct", "openai/gpt-3.5-turbo"]
        self._site_url = site_url
        self._site_name = site_name
        super().__init__(
            api_key=api_key,
            model=self._models[0],
            base_url=base_url,
            timeout=timeout,
            transport=transport,
        )

    @staticmethod
    def _key_from_env() -> str:
        return os.environ.get("OR_ACCESS_TOKEN") or os.environ.get("OPENROUTER_API_KEY", "")

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        headers["HTTP-Referer"] = self._site_url
        headers["X-Title"] = self._site_name
        return headers

    def _body(self, messages: list[Message], options: CompletionOptions) -> dict[str, Any]:
        body = super()._body(messages, options)
        body.pop("model")
        body["models"] = list(self._models)
        return body


def build_llm_client(config: "LLMConfig", timeout: float = 30.0) -> LLMClient:
    """
    Factory: create the answer-generation client named by ``config.backend``.

    Args:
        config: LLM settings (backend, keys, models, site attribution)
        timeout: Per-request timeout in seconds

    Returns:
        LLMClient instance

    Raises:
        ValueError: Unknown backend or missing API key
    """
    if config.backend == "openai":
        return OpenAIChatClient(
            api_key=config.openai_api_key,
            model=config.openai_model,
            timeout=timeout,
        )
    elif config.backend == "openrouter":
        return OpenRouterChatClient(
            api_key=config.openrouter_api_key,
            models=list(config.openrouter_models),
            site_url=config.site_url,
            site_name=config.site_name,
            timeout=timeout,
        )
    elif config.backend == "mock":
        return MockLLMClient()
    else:
        raise ValueError(
            f"Unknown LLM backend: {config.backend!r}. "
            f"Supported: 'openai', 'openrouter', 'mock'"
        )

