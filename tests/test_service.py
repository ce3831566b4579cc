"""Tests for the service facade, response models and wiring."""

import pytest

from minirag.config.settings import AppConfig, EmbeddingConfig, LLMConfig, RAGConfig
from minirag.llm.client import MockLLMClient
from minirag.llm.prompts import INSUFFICIENT_INFORMATION
from minirag.rag.chunker import SentenceChunker
from minirag.rag.embedding_provider import MockEmbeddingService, ResultStatus
from minirag.rag.pipeline import RetrievalPipeline
from minirag.rag.vector_store import InMemoryVectorStore
from minirag.service import RAGService, ValidationError, build_embedding_service, build_service

DOCUMENT = "Sentence one. Sentence two about cats. Sentence three."


@pytest.fixture
def service(pipeline):
    return RAGService(pipeline)


def mock_config(**rag) -> AppConfig:
    return AppConfig(
        embedding=EmbeddingConfig(backend="mock", dimension=8),
        llm=LLMConfig(backend="mock"),
        rag=RAGConfig(**rag),
    )


class TestIngest:
    def test_response_shape(self, service):
        response = service.ingest(DOCUMENT)
        assert response.model_dump(mode="json") == {"status": "success", "chunksCreated": 1}
        assert service.store_size() == 1

    @pytest.mark.parametrize("text", [None, "", "   ", "\n\t"])
    def test_rejects_blank_text(self, service, text):
        with pytest.raises(ValidationError, match="Missing required field: text"):
            service.ingest(text)
        assert service.store_size() == 0

    def test_validation_error_is_value_error(self, service):
        with pytest.raises(ValueError):
            service.ingest("")


class TestAsk:
    def test_response_shape(self, service, llm_client):
        service.ingest(DOCUMENT)
        payload = service.ask("  Tell me about cats  ").model_dump(mode="json")

        assert payload == {
            "query": "Tell me about cats",
            "answer": "Mock answer to: Tell me about cats",
            "contextUsed": 1,
            "contextPreview": [DOCUMENT[:47] + "..."],
            "status": "success",
        }
        assert llm_client.call_count == 1

    @pytest.mark.parametrize("query", [None, "", "  "])
    def test_rejects_blank_query(self, service, query):
        with pytest.raises(ValidationError, match="Missing required field: query"):
            service.ask(query)

    def test_rejects_bad_top_k(self, service):
        with pytest.raises(ValidationError, match="topK"):
            service.ask("q", topK=0)

    def test_empty_store(self, service):
        response = service.ask("Anything?")
        assert response.contextUsed == 0
        assert response.contextPreview == []
        assert response.answer == INSUFFICIENT_INFORMATION

    def test_failed_status_serialized(self, store, embedding_service):
        pipeline = RetrievalPipeline(
            store,
            embedding_service,
            MockLLMClient(error="quota exceeded"),
            chunker=SentenceChunker(token_counter=lambda t: len(t.split())),
        )
        rag = RAGService(pipeline)
        rag.ingest(DOCUMENT)

        response = rag.ask("q")

        assert response.status == ResultStatus.FAILED
        assert response.model_dump(mode="json")["status"] == "failed"
        assert response.answer.startswith("Error generating answer")


class TestStats:
    def test_counts_documents(self, service):
        service.ingest(DOCUMENT)
        service.ingest("Another one.")
        stats = service.stats()
        assert stats.documents == 2
        assert stats.peakMemoryMb > 0
        assert set(stats.model_dump()) == {"documents", "peakMemoryMb"}


class TestBuildService:
    def test_wires_mock_backends(self):
        rag = build_service(mock_config(similarity="cosine", top_k=2))
        store = rag.pipeline.vector_store
        assert isinstance(store, InMemoryVectorStore)
        assert store.dimension == 8
        assert store.similarity == "cosine"
        assert rag.store_size() == 0

    def test_store_dimension_follows_injected_service(self):
        rag = build_service(mock_config(), embedding_service=MockEmbeddingService(dim=5))
        assert rag.pipeline.vector_store.dimension == 5

    def test_injected_store_is_used(self):
        store = InMemoryVectorStore()
        rag = build_service(mock_config(), vector_store=store, llm_client=MockLLMClient())
        assert rag.pipeline.vector_store is store

    def test_unknown_embedding_backend(self):
        config = AppConfig(embedding=EmbeddingConfig(backend="word2vec"), llm=LLMConfig(backend="mock"))
        with pytest.raises(ValueError, match="Unknown embedding backend"):
            build_embedding_service(config)

    def test_openai_embedding_requires_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.delenv("OPENAI_ACCESS_TOKEN", raising=False)
        with pytest.raises(ValueError, match="API key"):
            build_embedding_service(AppConfig(llm=LLMConfig(backend="mock")))

    @pytest.mark.tokenizer
    def test_end_to_end_with_subword_tokenizer(self):
        rag = build_service(mock_config())
        assert rag.ingest(DOCUMENT).chunksCreated == 1
        assert rag.ask("Tell me about cats").contextUsed == 1

