"""
Thunder - Keyword Scorer
=========================
Lexical overlap score between a query and a candidate passage,
computed independently of the vector index.

Algorithm
---------
1. Lowercase query and passage.
2. Split the query on non-word characters, deduplicate, and drop
   tokens of 3 characters or fewer (too common to discriminate).
3. Sum the whole-word occurrences of each remaining token in the
   passage (``\\b`` boundaries, never plain substrings).
4. Add the bonus of every configured ``(substring, bonus)`` phrase the
   passage contains.

The score is never negative; 0 means no lexical signal.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

_RE_NON_WORD = re.compile(r"\W+")
_MIN_TOKEN_LENGTH = 4

KeywordBonus = tuple[str, int]


def query_tokens(query: str) -> list[str]:
    """Return the discriminative, deduplicated lowercase tokens of *query*."""
    tokens = (t for t in _RE_NON_WORD.split(query.lower()) if len(t) >= _MIN_TOKEN_LENGTH)
    return list(dict.fromkeys(tokens))


class KeywordScorer:
    """
    Scores passages by query-token overlap plus phrase bonuses.

    Parameters
    ----------
    bonuses
        ``(substring, bonus)`` pairs.  Substrings are matched
        case-insensitively anywhere in the passage.
    """

    __slots__ = ("_bonuses",)

    def __init__(self, bonuses: Iterable[KeywordBonus] = ()) -> None:
        self._bonuses: tuple[KeywordBonus, ...] = tuple((phrase.lower(), int(bonus)) for phrase, bonus in bonuses)
        for phrase, bonus in self._bonuses:
            if bonus < 0:
                raise ValueError(f"Keyword bonus for '{phrase}' must be ≥ 0, got {bonus}")


    @property
    def bonuses(self) -> tuple[KeywordBonus, ...]:
        return self._bonuses


    def score(self, query: str, passage: str | None) -> int:
        """Return the keyword score of *passage* for *query* (≥ 0)."""
        text = (passage or "").lower()
        if not text:
            return 0

        total = 0
        for token in query_tokens(query):
            total += len(re.findall(rf"\b{re.escape(token)}\b", text))

        for phrase, bonus in self._bonuses:
            if phrase in text:
                total += bonus

        return total
