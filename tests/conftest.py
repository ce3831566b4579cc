"""
Shared test fixtures and pytest configuration.

Markers:
    @pytest.mark.integration : Requires live API access (OPENAI_API_KEY set)
    @pytest.mark.tokenizer   : Requires the GPT-2 tokenizer to be downloadable

Run stringent tests:
    pytest -m integration             # live API tests
    pytest -m tokenizer               # real subword token counting
    pytest -m "not integration"       # skip live API tests (fast CI)
"""

import os
from typing import Optional

import pytest

from minirag.llm.client import MockLLMClient
from minirag.rag.chunker import SentenceChunker
from minirag.rag.embedding_provider import MockEmbeddingService
from minirag.rag.pipeline import RetrievalPipeline
from minirag.rag.vector_store import InMemoryVectorStore


def _tokenizer_available() -> bool:
    """Check if the gpt2 tokenizer can be loaded (already cached or downloadable)."""
    try:
        from tokenizers import Tokenizer
        tokenizer = Tokenizer.from_pretrained("gpt2")
        return len(tokenizer.encode("hello world").tokens) == 2
    except Exception:
        return False


def _api_key_available() -> bool:
    return bool(os.environ.get("OPENAI_API_KEY") or os.environ.get("OPENAI_ACCESS_TOKEN"))


# Cache the checks at module level so they run once per session
_TOKENIZER_OK: Optional[bool] = None


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: requires live API access (OPENAI_API_KEY)")
    config.addinivalue_line("markers", "tokenizer: requires the gpt2 tokenizer to be downloadable")


def pytest_collection_modifyitems(config, items):
    """Auto-skip tests whose infrastructure requirements are not met."""
    global _TOKENIZER_OK

    needs_tokenizer = any("tokenizer" in item.keywords for item in items)
    if _TOKENIZER_OK is None and needs_tokenizer:
        _TOKENIZER_OK = _tokenizer_available()

    skip_tokenizer = pytest.mark.skip(reason="gpt2 tokenizer not available")
    skip_api = pytest.mark.skip(reason="OPENAI_API_KEY not set")

    for item in items:
        if "tokenizer" in item.keywords and not _TOKENIZER_OK:
            item.add_marker(skip_tokenizer)
        if "integration" in item.keywords and not _api_key_available():
            item.add_marker(skip_api)


def word_count(text: str) -> int:
    """Whitespace token counter; keeps chunking tests offline and readable."""
    return len(text.split())


@pytest.fixture
def word_counter():
    return word_count


@pytest.fixture
def store():
    return InMemoryVectorStore()


@pytest.fixture
def embedding_service():
    return MockEmbeddingService(dim=8)


@pytest.fixture
def llm_client():
    return MockLLMClient()


@pytest.fixture
def pipeline(store, embedding_service, llm_client):
    return RetrievalPipeline(
        vector_store=store,
        embedding_service=embedding_service,
        llm_client=llm_client,
        chunker=SentenceChunker(max_tokens=20, overlap_sentences=1, token_counter=word_count),
    )
