"""
Tests for the Embedding Adapter
================================

Coverage:
- Order and cardinality of embed()
- embed_query() as a one-element batch
- Load-once under concurrent first calls
- Load / inference failures surface as EmbeddingFailure

Usage:
    pytest tests/test_embedder.py -v
"""

import asyncio
import threading
import time

import pytest

from thunder.src.core.embedder import SentenceEmbedder
from thunder.src.core.errors import EmbeddingFailure


class FakeModel:
    """``SentenceTransformer``-like model: vector = [len(text), index]."""

    def __init__(self):
        self.batches = []

    def encode(self, texts, **kwargs):
        self.batches.append((list(texts), kwargs))
        return [[float(len(t)), float(i)] for i, t in enumerate(texts)]


class CountingLoader:
    def __init__(self, delay=0.0, error=None):
        self.delay = delay
        self.error = error
        self.calls = 0
        self._lock = threading.Lock()
        self.model = FakeModel()

    def __call__(self):
        with self._lock:
            self.calls += 1
        time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.model


def test_embed_preserves_order_and_cardinality():
    loader = CountingLoader()
    embedder = SentenceEmbedder(model_name="fake", loader=loader)
    vectors = asyncio.run(embedder.embed(["a", "bbb", "cc"]))
    assert vectors == [[1.0, 0.0], [3.0, 1.0], [2.0, 2.0]]


def test_embed_requests_normalised_vectors():
    loader = CountingLoader()
    embedder = SentenceEmbedder(model_name="fake", loader=loader)
    asyncio.run(embedder.embed(["x"]))
    _, kwargs = loader.model.batches[0]
    assert kwargs["normalize_embeddings"] is True


def test_embed_query_is_single_element_batch():
    loader = CountingLoader()
    embedder = SentenceEmbedder(model_name="fake", loader=loader)
    vector = asyncio.run(embedder.embed_query("hello"))
    assert vector == [5.0, 0.0]
    assert loader.model.batches[0][0] == ["hello"]


def test_empty_batch_skips_model_load():
    loader = CountingLoader()
    embedder = SentenceEmbedder(model_name="fake", loader=loader)
    assert asyncio.run(embedder.embed([])) == []
    assert loader.calls == 0
    assert not embedder.is_loaded


def test_concurrent_first_calls_load_model_once():
    loader = CountingLoader(delay=0.05)
    embedder = SentenceEmbedder(model_name="fake", loader=loader)

    async def burst():
        return await asyncio.gather(*(embedder.embed_query(f"q{i}") for i in range(10)))

    results = asyncio.run(burst())
    assert loader.calls == 1
    assert len(results) == 10
    assert embedder.is_loaded


def test_model_reused_across_calls():
    loader = CountingLoader()
    embedder = SentenceEmbedder(model_name="fake", loader=loader)
    asyncio.run(embedder.embed_query("one"))
    asyncio.run(embedder.embed_query("two"))
    assert loader.calls == 1
    assert len(loader.model.batches) == 2


def test_load_failure_raises_embedding_failure_for_all_waiters():
    loader = CountingLoader(delay=0.02, error=OSError("weights missing"))
    embedder = SentenceEmbedder(model_name="fake", loader=loader)

    async def burst():
        return await asyncio.gather(*(embedder.embed_query("q") for _ in range(3)), return_exceptions=True)

    results = asyncio.run(burst())
    assert loader.calls == 1
    assert all(isinstance(r, EmbeddingFailure) for r in results)
    assert not embedder.is_loaded


def test_failed_load_is_not_cached():
    loader = CountingLoader(error=OSError("offline"))
    embedder = SentenceEmbedder(model_name="fake", loader=loader)
    with pytest.raises(EmbeddingFailure):
        asyncio.run(embedder.embed_query("q"))

    loader.error = None
    assert asyncio.run(embedder.embed_query("q")) == [1.0, 0.0]
    assert loader.calls == 2


def test_inference_failure_raises_embedding_failure():
    class BrokenModel:
        def encode(self, texts, **kwargs):
            raise RuntimeError("CUDA out of memory")

    embedder = SentenceEmbedder(model_name="fake", loader=BrokenModel)
    with pytest.raises(EmbeddingFailure, match="inference failed"):
        asyncio.run(embedder.embed(["x"]))


def test_default_model_name_comes_from_settings():
    from thunder.config.settings import settings

    embedder = SentenceEmbedder(loader=CountingLoader())
    assert embedder.model_name == settings.EMBEDDING_MODEL
