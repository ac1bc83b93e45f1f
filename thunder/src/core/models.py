"""
Thunder - Retrieval Data Model
===============================
Call-local records created for one ``get_context`` invocation and the
``ContextResult`` handed back to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field

# ── Type aliases ───────────────────────────────────────────────────────
EmbeddingVector = list[float]
IndexHit = tuple[str, dict, float]


@dataclass(frozen=True, slots=True)
class Candidate:
    """One nearest-neighbour hit with its lexical score."""

    text: str
    raw_score: float
    keyword_score: int


@dataclass(frozen=True, slots=True)
class RankedCandidate:
    """A ``Candidate`` annotated with its ranking key (smaller is better)."""

    candidate: Candidate
    rank_key: float

    @property
    def text(self) -> str:
        return self.candidate.text

    @property
    def raw_score(self) -> float:
        return self.candidate.raw_score

    @property
    def keyword_score(self) -> int:
        return self.candidate.keyword_score


@dataclass(frozen=True, slots=True)
class ContextResult:
    """
    The only value that leaves the retrieval core.

    An empty ``context`` (with an empty ``used`` list) means "no relevant
    evidence" — callers answer without grounding instead of failing.
    """

    context: str = ""
    used: list[str] = field(default_factory=list)

    @classmethod
    def empty(cls) -> ContextResult:
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.context

    def to_dict(self) -> dict[str, str | list[str]]:
        return {"context": self.context, "used": list(self.used)}
