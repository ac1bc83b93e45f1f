"""
Tests for the retrieval inspection CLI.

Usage:
    pytest tests/test_query_index.py -v
"""

from thunder.scripts import query_index
from thunder.src.core.errors import IndexUnavailable
from thunder.src.core.models import ContextResult
from thunder.src.core.retriever import ContextRetriever


def test_prints_context(monkeypatch, capsys):
    async def fake_get_context(self, question):
        return ContextResult(context="Context from indexed documents (top 1):\n[#1] (dist 0.100, kw 1) hello", used=["hello"])

    monkeypatch.setattr(ContextRetriever, "get_context", fake_get_context)
    assert query_index.main(["hello?"]) == 0
    out = capsys.readouterr().out
    assert "Passages : 1" in out
    assert "[#1] (dist 0.100, kw 1) hello" in out


def test_reports_no_evidence(monkeypatch, capsys):
    async def fake_get_context(self, question):
        return ContextResult.empty()

    monkeypatch.setattr(ContextRetriever, "get_context", fake_get_context)
    assert query_index.main(["unrelated"]) == 0
    assert "No relevant evidence" in capsys.readouterr().out


def test_show_config_and_top_override(monkeypatch, capsys):
    seen = {}

    async def fake_get_context(self, question):
        seen["top"] = self.config.top_count
        return ContextResult.empty()

    monkeypatch.setattr(ContextRetriever, "get_context", fake_get_context)
    assert query_index.main(["--show-config", "--top", "2", "q"]) == 0
    assert seen["top"] == 2
    out = capsys.readouterr().out
    assert "candidate_count" in out
    assert "override_markers" in out


def test_invalid_top_exits_with_error(capsys):
    assert query_index.main(["--top", "0", "q"]) == 1
    assert "Invalid retrieval configuration" in capsys.readouterr().out


def test_retrieval_error_exits_with_error(monkeypatch, capsys):
    async def fake_get_context(self, question):
        raise IndexUnavailable("table missing")

    monkeypatch.setattr(ContextRetriever, "get_context", fake_get_context)
    assert query_index.main(["q"]) == 1
    assert "IndexUnavailable: table missing" in capsys.readouterr().out
