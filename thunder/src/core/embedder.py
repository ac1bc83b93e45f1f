"""
Thunder - Embedding Adapter
============================
Turns text into fixed-length vectors with a locally hosted
``sentence-transformers`` model (multilingual MiniLM by default, mean
pooled and L2-normalised).

Load-once
---------
Loading the model is expensive, so the adapter owns a single
initialisation future.  The first caller starts the load in a worker
thread; every concurrent caller awaits the same future instead of
starting a second load.  Once loaded the model is reused for the
lifetime of the adapter.

A failed load raises ``EmbeddingFailure`` to every waiter and is not
cached, so a later call may try again.  Nothing is retried inside a
single call.

Usage:
    from thunder.src.core.embedder import SentenceEmbedder
    embedder = SentenceEmbedder()
    vector = await embedder.embed_query("Care este statusul proiectului Phoenix?")
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Sequence
from functools import partial
from typing import Any

from thunder.config.settings import settings
from thunder.src.core.errors import EmbeddingFailure
from thunder.src.core.models import EmbeddingVector
from thunder.src.utils.logger import get_logger

logger = get_logger(__name__)

ModelLoader = Callable[[], Any]


def load_sentence_transformer(model_name: str) -> Any:
    """Instantiate a ``SentenceTransformer`` (downloads on first use)."""
    from sentence_transformers import SentenceTransformer

    return SentenceTransformer(model_name)


class SentenceEmbedder:
    """
    Async embedding adapter with a load-once model handle.

    Parameters
    ----------
    model_name
        Model identifier.  Defaults to ``settings.EMBEDDING_MODEL``.
    loader
        Zero-argument callable returning an object with an ``encode``
        method (``SentenceTransformer`` compatible).  Injected in tests.
    """

    __slots__ = ("_model_name", "_loader", "_model", "_load_future")

    def __init__(self, model_name: str | None = None, loader: ModelLoader | None = None) -> None:
        self._model_name: str = model_name or settings.EMBEDDING_MODEL
        self._loader: ModelLoader = loader or partial(load_sentence_transformer, self._model_name)
        self._model: Any = None
        self._load_future: asyncio.Future[Any] | None = None


    @property
    def model_name(self) -> str:
        return self._model_name


    @property
    def is_loaded(self) -> bool:
        return self._model is not None


    async def embed(self, texts: Sequence[str]) -> list[EmbeddingVector]:
        """
        Embed *texts*, one vector per input, in input order.

        Raises
        ------
        EmbeddingFailure
            If the model cannot be loaded or inference fails.
        """
        batch = list(texts)
        if not batch:
            return []

        model = await self._get_model()

        try:
            vectors = await asyncio.to_thread(self._encode, model, batch)
        except Exception as exc:
            logger.error("[EMBED] Inference failed for %d text(s): %s", len(batch), exc)
            raise EmbeddingFailure(f"Embedding inference failed: {exc}") from exc

        if len(vectors) != len(batch):
            raise EmbeddingFailure(f"Model returned {len(vectors)} vectors for {len(batch)} texts")
        return vectors


    async def embed_query(self, text: str) -> EmbeddingVector:
        """Embed a single query — a one-element ``embed`` batch."""
        return (await self.embed([text]))[0]


    async def _get_model(self) -> Any:
        """Return the loaded model, joining (or starting) the single in-flight load."""
        if self._model is not None:
            return self._model

        if self._load_future is None:
            self._load_future = asyncio.ensure_future(self._load())
        future = self._load_future

        try:
            return await asyncio.shield(future)
        except EmbeddingFailure:
            if self._load_future is future:
                self._load_future = None
            raise


    async def _load(self) -> Any:
        t_start = time.perf_counter()
        logger.info("[EMBED] Loading embedding model: %s", self._model_name)
        try:
            model = await asyncio.to_thread(self._loader)
        except Exception as exc:
            logger.error("[EMBED] Failed to load embedding model '%s': %s", self._model_name, exc)
            raise EmbeddingFailure(f"Could not load embedding model '{self._model_name}': {exc}") from exc

        self._model = model
        logger.info("[EMBED] Model loaded in %.1fms", (time.perf_counter() - t_start) * 1000)
        return model


    @staticmethod
    def _encode(model: Any, texts: list[str]) -> list[EmbeddingVector]:
        matrix = model.encode(texts, normalize_embeddings=True, show_progress_bar=False)
        return [[float(x) for x in row] for row in matrix]


    def __repr__(self) -> str:
        return f"SentenceEmbedder(model='{self._model_name}', loaded={self.is_loaded})"
