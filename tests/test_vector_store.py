"""Tests for rag.vector_store: ordering, ties, concurrency."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from minirag.rag.vector_store import InMemoryVectorStore, build_vector_store


class TestInMemoryVectorStore:
    def test_add_returns_record(self, store):
        record = store.add("hello", [1.0, 0.0])
        assert record.text == "hello"
        assert record.sequence == 0
        assert store.size() == 1
        assert store.dimension == 2

    def test_search_orders_by_inner_product(self, store):
        store.add("x-axis", [1.0, 0.0, 0.0])
        store.add("y-axis", [0.0, 1.0, 0.0])
        store.add("diagonal", [0.7, 0.7, 0.0])

        results = store.search([1.0, 0.1, 0.0], top_k=3)

        assert [r.text for r in results] == ["x-axis", "diagonal", "y-axis"]
        assert [r.rank for r in results] == [1, 2, 3]
        assert results[0].score == pytest.approx(1.0)
        assert results[1].score == pytest.approx(0.77)

    def test_dot_product_favours_magnitude(self, store):
        store.add("unit", [1.0, 0.0])
        store.add("long", [3.0, 3.0])
        assert store.search([1.0, 0.0], top_k=1)[0].text == "long"

    def test_ties_go_to_earlier_record(self, store):
        for name in ["first", "second", "third"]:
            store.add(name, [1.0, 1.0])
        assert [r.text for r in store.search([1.0, 1.0], top_k=3)] == ["first", "second", "third"]

    def test_top_k_larger_than_store(self, store):
        store.add("a", [1.0])
        store.add("b", [2.0])
        assert len(store.search([1.0], top_k=10)) == 2

    def test_top_k_truncates(self, store):
        for i in range(5):
            store.add(str(i), [float(i)])
        results = store.search([1.0], top_k=2)
        assert [r.text for r in results] == ["4", "3"]

    def test_empty_store_returns_empty(self, store):
        assert store.search([1.0, 2.0, 3.0], top_k=3) == []

    def test_zero_query_keeps_insertion_order(self, store):
        store.add("a", [1.0, 0.0])
        store.add("b", [0.0, 1.0])
        results = store.search(np.zeros(2), top_k=2)
        assert [r.text for r in results] == ["a", "b"]
        assert all(r.score == 0.0 for r in results)

    def test_invalid_top_k(self, store):
        store.add("a", [1.0])
        with pytest.raises(ValueError, match="top_k"):
            store.search([1.0], top_k=0)

    def test_dimension_mismatch_on_add(self, store):
        store.add("a", [1.0, 2.0])
        with pytest.raises(ValueError, match="dimension"):
            store.add("b", [1.0, 2.0, 3.0])
        assert store.size() == 1

    def test_dimension_mismatch_on_search(self, store):
        store.add("a", [1.0, 2.0])
        with pytest.raises(ValueError, match="dimension"):
            store.search([1.0], top_k=1)

    def test_fixed_dimension(self):
        store = InMemoryVectorStore(dimension=3)
        with pytest.raises(ValueError):
            store.add("a", [1.0, 2.0])

    def test_rejects_non_vector(self, store):
        with pytest.raises(ValueError):
            store.add("a", [[1.0, 2.0]])
        with pytest.raises(ValueError):
            store.add("a", [])

    def test_embedding_copied_and_read_only(self, store):
        source = np.array([1.0, 2.0])
        record = store.add("a", source)
        source[0] = 99.0
        assert record.embedding[0] == 1.0
        with pytest.raises(ValueError):
            record.embedding[0] = 5.0

    def test_records_snapshot(self, store):
        store.add("a", [1.0])
        snapshot = store.records()
        store.add("b", [1.0])
        assert [r.text for r in snapshot] == ["a"]
        assert store.size() == 2


class TestCosineSimilarity:
    def test_cosine_ignores_magnitude(self):
        store = InMemoryVectorStore(similarity="cosine")
        store.add("unit", [1.0, 0.0])
        store.add("long", [3.0, 3.0])
        results = store.search([1.0, 0.0], top_k=2)
        assert results[0].text == "unit"
        assert results[0].score == pytest.approx(1.0)
        assert results[1].score == pytest.approx(np.sqrt(0.5))

    def test_cosine_zero_vector_scores_zero(self):
        store = InMemoryVectorStore(similarity="cosine")
        store.add("zero", [0.0, 0.0])
        store.add("real", [0.0, 1.0])
        results = store.search([0.0, 1.0], top_k=2)
        assert [r.text for r in results] == ["real", "zero"]
        assert results[1].score == 0.0

    def test_unknown_similarity(self):
        with pytest.raises(ValueError, match="similarity"):
            InMemoryVectorStore(similarity="euclidean")


class TestConcurrency:
    def test_concurrent_adds(self, store):
        dim = 16

        def vector_for(i: int) -> list[float]:
            vec = [0.0] * dim
            vec[i % dim] = float(i + 1)
            return vec

        with ThreadPoolExecutor(max_workers=50) as pool:
            list(pool.map(lambda i: store.add(f"chunk-{i}", vector_for(i)), range(50)))

        assert store.size() == 50
        results = store.search(np.ones(dim), top_k=50)
        assert len(results) == 50
        for hit in results:
            i = int(hit.text.split("-")[1])
            np.testing.assert_array_equal(hit.record.embedding, vector_for(i))
        assert sorted(r.record.sequence for r in results) == list(range(50))

    def test_search_during_adds(self, store):
        store.add("seed", [1.0, 0.0])
        errors: list[Exception] = []
        stop = threading.Event()

        def reader():
            while not stop.is_set():
                try:
                    results = store.search([1.0, 0.0], top_k=100)
                    assert all(len(r.record.embedding) == 2 for r in results)
                except Exception as exc:  # noqa: BLE001 - collected for the main thread
                    errors.append(exc)
                    return

        thread = threading.Thread(target=reader)
        thread.start()
        try:
            for i in range(200):
                store.add(f"c{i}", [float(i), 1.0])
        finally:
            stop.set()
            thread.join()

        assert errors == []
        assert store.size() == 201


class TestBuildVectorStore:
    def test_memory_backend(self):
        store = build_vector_store("memory", dimension=4, similarity="cosine")
        assert isinstance(store, InMemoryVectorStore)
        assert store.dimension == 4
        assert store.similarity == "cosine"

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown vector store backend"):
            build_vector_store("chroma")
