"""
Thunder - Context Retriever
============================
The public face of the retrieval core: ``get_context(question)``.

Pipeline (sequential, one call = one query)::

    question → embed_query → index.search(K)
             → empty?          → ContextResult("", [])
             → best raw score  (min distance / max similarity)
             → keyword score + rank key per candidate, stable sort
             → gate(best, override markers)
                 rejected      → ContextResult("", [])
                 admitted      → top N → formatted context + used texts

``EmbeddingFailure`` and ``IndexUnavailable`` propagate untouched; an
empty result is never an error.
"""

from __future__ import annotations

import time
from typing import Protocol, runtime_checkable

from thunder.src.core.formatter import format_context
from thunder.src.core.models import ContextResult, EmbeddingVector
from thunder.src.core.ranker import HybridRanker, RetrievalConfig
from thunder.src.database.vector_store import VectorIndex
from thunder.src.utils.logger import get_logger

logger = get_logger(__name__)


@runtime_checkable
class QueryEmbedder(Protocol):
    """Anything that can embed a single query asynchronously."""

    async def embed_query(self, text: str) -> EmbeddingVector: ...


class ContextRetriever:
    """
    Retrieves, re-ranks, gates and formats context for one question.

    Parameters
    ----------
    embedder
        Query embedder (``SentenceEmbedder`` in production).
    index
        Vector index satisfying ``VectorIndex``.
    config
        Retrieval options.  Defaults to the ranker's config, else
        ``RetrievalConfig()``.
    ranker
        Optional custom ``HybridRanker``.  When both are given they must
        carry the same config, otherwise ``ValueError`` is raised.
    """

    __slots__ = ("_embedder", "_index", "_config", "_ranker")

    def __init__(self, embedder: QueryEmbedder, index: VectorIndex, config: RetrievalConfig | None = None, ranker: HybridRanker | None = None) -> None:
        self._embedder = embedder
        self._index = index
        if config is not None and ranker is not None and config != ranker.config:
            raise ValueError("config and ranker.config differ; pass one of them")
        self._config = config or (ranker.config if ranker else RetrievalConfig())
        self._ranker = ranker or HybridRanker(self._config)


    @property
    def config(self) -> RetrievalConfig:
        return self._config


    async def get_context(self, question: str) -> ContextResult:
        """Return the gated, formatted context for *question* (possibly empty)."""
        t_start = time.perf_counter()

        query_vector = await self._embedder.embed_query(question)
        hits = await self._index.search(query_vector, self._config.candidate_count)
        search_ms = (time.perf_counter() - t_start) * 1000

        if not hits:
            logger.info("[RETRIEVE] No candidates for query '%s' (%.1fms).", question[:50], search_ms)
            return ContextResult.empty()

        best = self._ranker.best_score(score for _, _, score in hits)
        ranked = self._ranker.rank(question, hits)

        if not self._ranker.admit(question, best, ranked):
            logger.info("[RETRIEVE] Gate closed for query '%s' (%d candidates, best=%.3f).", question[:50], len(hits), best)
            return ContextResult.empty()

        picked = self._ranker.select(ranked)
        result = format_context(picked, self._config.score_mode)

        total_ms = (time.perf_counter() - t_start) * 1000
        logger.info("[RETRIEVE] %d raw → %d used (best=%.3f) in %.1fms (embed+search=%.1f).", len(hits), len(result.used), best, total_ms, search_ms)
        return result
