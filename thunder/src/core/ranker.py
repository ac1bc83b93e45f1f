"""
Thunder - Hybrid Ranker & Relevance Gate
=========================================
Decides the order of retrieved candidates and whether any of them may
be shown to the answer model at all.

Ranking
-------
Every candidate gets one ranking key where *smaller is better*:

    distance mode:    rank_key =  s - α·keyword_score
    similarity mode:  rank_key = -s - α·keyword_score

Candidates are sorted ascending with Python's stable ``sorted`` so equal
keys keep the vector index's own order.

Gate
----
The gate looks at the single best **raw** score only (``min`` distance or
``max`` similarity).  Keyword boosts never open it, so lexical coincidence
alone cannot push weak vector matches through.  The one exception is the
configured ``(query_marker, passage_marker)`` table: when the query
contains a query marker and any candidate contains the paired passage
marker, the gate opens regardless of the threshold.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Literal

from thunder.src.core.keyword_scorer import KeywordBonus, KeywordScorer
from thunder.src.core.models import Candidate, IndexHit, RankedCandidate
from thunder.src.utils.logger import get_logger

logger = get_logger(__name__)

ScoreMode = Literal["distance", "similarity"]
OverrideMarker = tuple[str, str]

_SCORE_MODES: tuple[str, ...] = ("distance", "similarity")


# ══════════════════════════════════════════════════════════════════════
#  CONFIGURATION
# ══════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class RetrievalConfig:
    """
    Immutable retrieval and gating options.

    ``top_count`` larger than ``candidate_count`` is accepted with a
    warning; the effective top count is clamped to ``candidate_count``.
    """

    score_mode: ScoreMode = "distance"
    candidate_count: int = 12
    top_count: int = 6
    keyword_weight: float = 0.08
    max_distance: float = 1.6
    min_similarity: float = 0.3
    keyword_bonuses: tuple[KeywordBonus, ...] = ()
    override_markers: tuple[OverrideMarker, ...] = ()

    def __post_init__(self) -> None:
        if self.score_mode not in _SCORE_MODES:
            raise ValueError(f"score_mode must be one of {_SCORE_MODES}, got '{self.score_mode}'")
        if self.candidate_count < 1:
            raise ValueError(f"candidate_count must be ≥ 1, got {self.candidate_count}")
        if self.top_count < 1:
            raise ValueError(f"top_count must be ≥ 1, got {self.top_count}")
        if self.keyword_weight < 0:
            raise ValueError(f"keyword_weight must be ≥ 0, got {self.keyword_weight}")

        object.__setattr__(self, "keyword_bonuses", tuple((str(p), int(b)) for p, b in self.keyword_bonuses))
        object.__setattr__(self, "override_markers", tuple((str(q), str(p)) for q, p in self.override_markers))

        if self.top_count > self.candidate_count:
            logger.warning("[CONFIG] top_count=%d exceeds candidate_count=%d — clamping to %d.", self.top_count, self.candidate_count, self.candidate_count)


    @property
    def effective_top_count(self) -> int:
        return min(self.top_count, self.candidate_count)


    @classmethod
    def from_settings(cls, settings: object) -> RetrievalConfig:
        """Build the config from a ``Settings`` instance."""
        return cls(
            score_mode=settings.SCORE_MODE,  # type: ignore[attr-defined]
            candidate_count=settings.CANDIDATE_COUNT,  # type: ignore[attr-defined]
            top_count=settings.TOP_COUNT,  # type: ignore[attr-defined]
            keyword_weight=settings.KEYWORD_WEIGHT,  # type: ignore[attr-defined]
            max_distance=settings.MAX_DISTANCE,  # type: ignore[attr-defined]
            min_similarity=settings.MIN_SIMILARITY,  # type: ignore[attr-defined]
            keyword_bonuses=tuple(settings.KEYWORD_BONUSES),  # type: ignore[attr-defined]
            override_markers=tuple(settings.OVERRIDE_MARKERS),  # type: ignore[attr-defined]
        )


# ══════════════════════════════════════════════════════════════════════
#  HYBRID RANKER
# ══════════════════════════════════════════════════════════════════════


class HybridRanker:
    """
    Blends vector scores with keyword scores and applies the relevance gate.

    Parameters
    ----------
    config
        Retrieval options (score mode, weights, thresholds, tables).
    scorer
        Optional custom ``KeywordScorer``; defaults to one built from
        ``config.keyword_bonuses``.
    """

    __slots__ = ("_config", "_scorer")

    def __init__(self, config: RetrievalConfig, scorer: KeywordScorer | None = None) -> None:
        self._config = config
        self._scorer = scorer or KeywordScorer(config.keyword_bonuses)


    @property
    def config(self) -> RetrievalConfig:
        return self._config


    def best_score(self, scores: Iterable[float]) -> float:
        """Best raw score: ``min`` under distance mode, ``max`` under similarity mode."""
        values = list(scores)
        if not values:
            raise ValueError("best_score() needs at least one score")
        return min(values) if self._config.score_mode == "distance" else max(values)


    def rank_key(self, raw_score: float, keyword_score: int) -> float:
        """Unified ranking key — smaller is better in both modes."""
        boost = self._config.keyword_weight * keyword_score
        if self._config.score_mode == "distance":
            return raw_score - boost
        return -raw_score - boost


    def rank(self, query: str, hits: Sequence[IndexHit]) -> list[RankedCandidate]:
        """Score every hit and return them in ascending ``rank_key`` order (stable)."""
        ranked: list[RankedCandidate] = []
        for text, _metadata, raw_score in hits:
            text = str(text or "")
            candidate = Candidate(text=text, raw_score=float(raw_score), keyword_score=self._scorer.score(query, text))
            ranked.append(RankedCandidate(candidate=candidate, rank_key=self.rank_key(candidate.raw_score, candidate.keyword_score)))

        return sorted(ranked, key=lambda rc: rc.rank_key)


    def passes_threshold(self, best: float) -> bool:
        """Numeric gate on the best raw score alone."""
        if self._config.score_mode == "distance":
            return best <= self._config.max_distance
        return best >= self._config.min_similarity


    def matched_override(self, query: str, candidates: Iterable[RankedCandidate | Candidate]) -> OverrideMarker | None:
        """Return the first override pair satisfied by *query* and *candidates*, if any."""
        query_lower = query.lower()
        armed = [(q, p) for q, p in self._config.override_markers if q.lower() in query_lower]
        if not armed:
            return None

        texts = [c.text.lower() for c in candidates]
        for query_marker, passage_marker in armed:
            marker = passage_marker.lower()
            if any(marker in text for text in texts):
                return (query_marker, passage_marker)
        return None


    def admit(self, query: str, best: float, candidates: Sequence[RankedCandidate]) -> bool:
        """Gate decision: threshold on ``best`` OR a matching override pair."""
        if self.passes_threshold(best):
            logger.debug("[GATE] Admitted on threshold (best=%.3f, mode=%s).", best, self._config.score_mode)
            return True

        override = self.matched_override(query, candidates)
        if override is not None:
            logger.info("[GATE] Threshold failed (best=%.3f) but override %s matched — admitting.", best, override)
            return True

        logger.info("[GATE] Rejected: best=%.3f fails %s threshold and no override matched.", best, self._config.score_mode)
        return False


    def select(self, ranked: Sequence[RankedCandidate]) -> list[RankedCandidate]:
        """Keep the first ``effective_top_count`` ranked candidates."""
        return list(ranked[: self._config.effective_top_count])
