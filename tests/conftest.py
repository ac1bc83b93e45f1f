"""
Shared fixtures and fakes for the Thunder test suite.

``thunder.config.settings`` builds its singleton at import time and needs
the required secrets, so they are seeded here before any test module
imports the package.
"""

import os

os.environ.setdefault("GOOGLE_API_KEY", "test-google-key")
os.environ.setdefault("MONGO_URI", "mongodb://localhost:27017")
os.environ.setdefault("ENV", "prod")

import itertools
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from thunder.src.core.errors import EmbeddingFailure, IndexUnavailable
from thunder.src.core.ranker import HybridRanker, RetrievalConfig
from thunder.src.core.retriever import ContextRetriever


# ============================================================================
# RETRIEVAL FAKES
# ============================================================================

class FakeEmbedder:
    """Returns a constant query vector and counts calls."""

    def __init__(self, vector=None):
        self.vector = vector or [0.1, 0.2, 0.3]
        self.calls = []

    async def embed_query(self, text):
        self.calls.append(text)
        return list(self.vector)


class FailingEmbedder:
    async def embed_query(self, text):
        raise EmbeddingFailure("model offline")


class FakeIndex:
    """Serves canned ``(text, metadata, score)`` hits in the given order."""

    def __init__(self, hits=None):
        self.hits = list(hits or [])
        self.calls = []

    async def search(self, query_vector, k):
        self.calls.append((list(query_vector), k))
        return self.hits[:k]


class FailingIndex:
    async def search(self, query_vector, k):
        raise IndexUnavailable("table missing")


def hit(text, score, **metadata):
    return (text, metadata, score)


def make_retriever(hits, embedder=None, **config_overrides):
    config = RetrievalConfig(**config_overrides)
    index = FakeIndex(hits)
    return ContextRetriever(embedder or FakeEmbedder(), index, config), index


# ============================================================================
# CHAT FAKES
# ============================================================================

class FakeConversationStore:
    """In-memory stand-in for ``ConversationStore`` with the same coroutine API."""

    def __init__(self):
        self.conversations = {}
        self.messages = []
        self._ids = itertools.count(1)

    async def create_conversation(self, title=None):
        now = datetime.now(timezone.utc)
        cid = f"{next(self._ids):024x}"
        doc = {"id": cid, "title": title or "New", "model": "gemini-test", "summary": "", "created_at": now, "updated_at": now}
        self.conversations[cid] = doc
        return dict(doc)

    async def get_conversation(self, conversation_id):
        doc = self.conversations.get(conversation_id)
        return dict(doc) if doc else None

    async def list_conversations(self, limit=100):
        docs = sorted(self.conversations.values(), key=lambda d: d["updated_at"], reverse=True)
        return [dict(d) for d in docs[:limit]]

    async def add_message(self, conversation_id, role, content):
        now = datetime.now(timezone.utc)
        self.messages.append({"id": str(len(self.messages)), "conversation_id": conversation_id, "role": role, "content": content, "created_at": now})
        self.conversations[conversation_id]["updated_at"] = now

    async def get_messages(self, conversation_id, limit=None):
        msgs = [dict(m) for m in self.messages if m["conversation_id"] == conversation_id]
        return msgs[-limit:] if limit is not None else msgs

    async def set_summary(self, conversation_id, summary):
        self.conversations[conversation_id]["summary"] = summary


class FakeLLM:
    """Records every ``ainvoke`` call and answers with a fixed reply."""

    def __init__(self, reply="fake answer", error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def ainvoke(self, messages):
        self.calls.append(list(messages))
        if self.error is not None:
            raise self.error
        return SimpleNamespace(content=self.reply)


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def distance_config():
    return RetrievalConfig(score_mode="distance", candidate_count=12, top_count=6, keyword_weight=0.08, max_distance=1.6, override_markers=(("phoenix", "proiectul phoenix"),))


@pytest.fixture
def distance_ranker(distance_config):
    return HybridRanker(distance_config)


@pytest.fixture
def store():
    return FakeConversationStore()
