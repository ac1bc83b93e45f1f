"""
Tests for the LanceDB vector index adapter.

A tiny on-disk table is built in ``tmp_path`` with ``lancedb`` directly;
the adapter itself only reads.

Usage:
    pytest tests/test_vector_store.py -v
"""

import asyncio

import lancedb
import pytest

from thunder.src.core.errors import IndexUnavailable
from thunder.src.database.vector_store import LanceVectorIndex, VectorIndex

ROWS = [
    {"vector": [1.0, 0.0], "text": "east passage", "source": "a.pdf", "chunk_index": 0},
    {"vector": [0.0, 1.0], "text": "north passage", "source": "b.pdf", "chunk_index": 1},
    {"vector": [0.7, 0.7], "text": "north-east passage", "source": "a.pdf", "chunk_index": 2},
]


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "thunder_db")
    lancedb.connect(path).create_table("docs", data=ROWS)
    return path


def test_satisfies_protocol(db_path):
    assert isinstance(LanceVectorIndex(db_path=db_path, table_name="docs"), VectorIndex)


def test_distance_mode_returns_nearest_first(db_path):
    index = LanceVectorIndex(db_path=db_path, table_name="docs", score_mode="distance")
    hits = asyncio.run(index.search([1.0, 0.0], k=2))

    assert len(hits) == 2
    text, metadata, score = hits[0]
    assert text == "east passage"
    assert score == pytest.approx(0.0, abs=1e-6)
    assert metadata == {"source": "a.pdf", "chunk_index": 0}
    assert hits[1][0] == "north-east passage"
    assert hits[1][2] > score


def test_similarity_mode_converts_cosine_distance(db_path):
    index = LanceVectorIndex(db_path=db_path, table_name="docs", score_mode="similarity")
    hits = asyncio.run(index.search([1.0, 0.0], k=3))

    assert hits[0][0] == "east passage"
    assert hits[0][2] == pytest.approx(1.0, abs=1e-5)
    assert hits[-1][0] == "north passage"
    assert hits[-1][2] == pytest.approx(0.0, abs=1e-5)


def test_k_limits_results(db_path):
    index = LanceVectorIndex(db_path=db_path, table_name="docs")
    assert len(asyncio.run(index.search([0.0, 1.0], k=1))) == 1


def test_count(db_path):
    assert LanceVectorIndex(db_path=db_path, table_name="docs").count() == 3


def test_missing_table_is_index_unavailable(db_path):
    index = LanceVectorIndex(db_path=db_path, table_name="nope")
    with pytest.raises(IndexUnavailable, match="does not exist"):
        asyncio.run(index.search([1.0, 0.0], k=3))


def test_connects_once_per_index(db_path, monkeypatch):
    calls = []
    real_connect = lancedb.connect

    def counting_connect(path, *args, **kwargs):
        calls.append(path)
        return real_connect(path, *args, **kwargs)

    monkeypatch.setattr(lancedb, "connect", counting_connect)
    index = LanceVectorIndex(db_path=db_path, table_name="docs")
    asyncio.run(index.search([1.0, 0.0], k=1))
    asyncio.run(index.search([0.0, 1.0], k=1))
    assert index.count() == 3
    assert calls == [db_path]
