"""
Thunder - Context Formatter
============================
Renders the surviving ranked candidates into the single text block that
is interpolated into the answer prompt.
"""

from __future__ import annotations

from collections.abc import Sequence

from thunder.src.core.models import ContextResult, RankedCandidate

CONTEXT_HEADER = "Context from indexed documents (top {count}):"


def format_score(raw_score: float, score_mode: str) -> str:
    """Mode-aware raw score label with three decimals, e.g. ``dist 0.412``."""
    label = "dist" if score_mode == "distance" else "sim"
    return f"{label} {raw_score:.3f}"


def format_context(picked: Sequence[RankedCandidate], score_mode: str) -> ContextResult:
    """
    Build the ``ContextResult`` for the picked candidates.

    Layout::

        Context from indexed documents (top 2):
        [#1] (dist 0.412, kw 7) first passage

        [#2] (dist 0.530, kw 0) second passage

    ``used`` holds the bare passage texts in the same order.
    """
    if not picked:
        return ContextResult.empty()

    blocks = [f"[#{i}] ({format_score(rc.raw_score, score_mode)}, kw {rc.keyword_score}) {rc.text}" for i, rc in enumerate(picked, 1)]
    context = CONTEXT_HEADER.format(count=len(picked)) + "\n" + "\n\n".join(blocks)
    return ContextResult(context=context, used=[rc.text for rc in picked])
