"""
Thunder - LanceVectorIndex
===========================
Read-only adapter over a LanceDB table built by the ingestion tooling.
Exposes the one operation the retrieval core needs::

    await index.search(query_vector, k) -> [(text, metadata, score), ...]

Design decisions:
  • **Lazy open** — each index connects and opens its table on first use,
    under an instance lock; a missing table raises ``IndexUnavailable``
    instead of creating an empty one. The app builds one index per process.
  • **Score modes** — ``distance`` returns LanceDB's ``_distance``
    unchanged; ``similarity`` queries with the cosine metric and returns
    ``1 - _distance``.
  • **Off-loop search** — LanceDB is synchronous, so searches run in a
    worker thread.

Usage:
    from thunder.src.database.vector_store import LanceVectorIndex
    index = LanceVectorIndex()
    hits = await index.search(vector, k=12)
"""

from __future__ import annotations

import asyncio
import threading
from typing import Protocol, runtime_checkable

import lancedb

from thunder.config.settings import settings
from thunder.src.core.errors import IndexUnavailable
from thunder.src.core.models import EmbeddingVector, IndexHit
from thunder.src.utils.logger import get_logger

logger = get_logger(__name__)

# ── Row columns that are not metadata ─────────────────────────────────
_TEXT_COLUMN = "text"
_RESERVED_COLUMNS = {"vector", _TEXT_COLUMN, "_distance"}

# ── Index Protocol ─────────────────────────────────────────────────────

@runtime_checkable
class VectorIndex(Protocol):
    """Anything that returns nearest neighbours for a query vector."""

    async def search(self, query_vector: EmbeddingVector, k: int) -> list[IndexHit]: ...


class LanceVectorIndex:
    """
    Nearest-neighbour search over an existing LanceDB table.

    Parameters
    ----------
    db_path
        Override the database directory.  Defaults to ``settings.LANCEDB_PATH``.
    table_name
        Override the table name.  Defaults to ``settings.LANCEDB_TABLE_NAME``.
    score_mode
        ``"distance"`` or ``"similarity"``.  Defaults to ``settings.SCORE_MODE``.
    """

    __slots__ = ("_db_path", "_table_name", "_score_mode", "_table", "_open_lock")

    def __init__(self, db_path: str | None = None, table_name: str | None = None, score_mode: str | None = None) -> None:
        self._db_path: str = str(db_path or settings.LANCEDB_PATH)
        self._table_name: str = table_name or settings.LANCEDB_TABLE_NAME
        self._score_mode: str = score_mode or settings.SCORE_MODE
        self._table: lancedb.table.Table | None = None
        self._open_lock = threading.Lock()


    def _open_table(self) -> lancedb.table.Table:
        """Open (once) the configured table or raise ``IndexUnavailable``."""
        if self._table is not None:
            return self._table

        with self._open_lock:
            if self._table is None:
                try:
                    logger.info("[INDEX] Connecting to LanceDB: %s", self._db_path)
                    db = lancedb.connect(self._db_path)
                    if self._table_name not in db.table_names():
                        raise IndexUnavailable(f"Table '{self._table_name}' does not exist in {self._db_path}. Build the index first.")
                    self._table = db.open_table(self._table_name)
                    logger.info("[INDEX] Opened table '%s' (%d rows).", self._table_name, self._table.count_rows())
                except IndexUnavailable:
                    raise
                except Exception as exc:
                    logger.error("[INDEX] Cannot open LanceDB at %s: %s", self._db_path, exc)
                    raise IndexUnavailable(f"Cannot open vector index at {self._db_path}: {exc}") from exc
        return self._table


    def _search_sync(self, query_vector: EmbeddingVector, k: int) -> list[IndexHit]:
        table = self._open_table()

        try:
            query = table.search(query_vector).limit(k)
            if self._score_mode == "similarity":
                query = query.distance_type("cosine")
            rows = query.to_list()
        except Exception as exc:
            logger.error("[INDEX] Search failed on '%s': %s", self._table_name, exc)
            raise IndexUnavailable(f"Vector search failed: {exc}") from exc

        return [self._row_to_hit(row) for row in rows]


    def _row_to_hit(self, row: dict) -> IndexHit:
        distance = float(row.get("_distance", 0.0))
        score = 1.0 - distance if self._score_mode == "similarity" else distance
        metadata = {key: value for key, value in row.items() if key not in _RESERVED_COLUMNS}
        return (str(row.get(_TEXT_COLUMN, "") or ""), metadata, score)


    async def search(self, query_vector: EmbeddingVector, k: int) -> list[IndexHit]:
        """
        Return up to *k* ``(text, metadata, score)`` tuples in index order.

        Raises
        ------
        IndexUnavailable
            If the table is missing or LanceDB fails.
        """
        hits = await asyncio.to_thread(self._search_sync, query_vector, k)
        logger.debug("[INDEX] Search returned %d hit(s) (k=%d, mode=%s).", len(hits), k, self._score_mode)
        return hits


    def count(self) -> int:
        """Return the number of rows in the table."""
        return self._open_table().count_rows()


    def __repr__(self) -> str:
        return f"LanceVectorIndex(db='{self._db_path}', table='{self._table_name}', mode='{self._score_mode}')"
