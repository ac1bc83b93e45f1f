"""
Thunder - Chat Engine
======================
Conversation service that consumes the retrieval core.

Architecture
------------
``ConversationStore``
    Async MongoDB store backed by ``motor``.  Two collections:
    ``conversations`` (title, model, rolling summary, timestamps) and
    ``messages`` (one document per turn, keyed by ``conversation_id``).

``ChatService``
    One chat turn.  Flow:
        1. Resolve the conversation (create one when missing/unknown)
        2. Fetch the history window
        3. Save the user message
        4. Retrieve context → fall back to ungrounded on core failure
        5. Build messages: system + summary preface + history + final turn
        6. Call Gemini (async)
        7. Save the reply
        8. Summarise older turns once the window exceeds the trigger
        9. Return the reply

Usage:
    from thunder.src.core.chat_engine import ChatService
    chat = ChatService(retriever)
    reply = await chat.chat("Care este statusul proiectului Phoenix?")
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import motor.motor_asyncio
from bson import ObjectId
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from thunder.config.prompt_templates import CONVERSATION_TITLE_LENGTH, DEFAULT_CONVERSATION_TITLE, GROUNDED_QUESTION_TEMPLATE, NO_REPLY_PLACEHOLDER, SUMMARIZATION_PROMPT, SUMMARY_PREFACE_TEMPLATE, SYSTEM_PROMPT
from thunder.config.settings import settings
from thunder.src.core.errors import ThunderError
from thunder.src.core.models import ContextResult
from thunder.src.core.retriever import ContextRetriever
from thunder.src.utils.logger import get_logger

logger = get_logger(__name__)

# ── Type aliases ───────────────────────────────────────────────────────
ChatMessage = dict[str, Any]
ConversationDoc = dict[str, Any]

_ROLE_TO_MESSAGE: dict[str, type[BaseMessage]] = {"user": HumanMessage, "assistant": AIMessage, "system": SystemMessage}


# ══════════════════════════════════════════════════════════════════════
#  MONGODB SINGLETON CLIENT
# ══════════════════════════════════════════════════════════════════════

_mongo_client: motor.motor_asyncio.AsyncIOMotorClient | None = None


def _get_mongo_client() -> motor.motor_asyncio.AsyncIOMotorClient:
    """Return (or create) the module-level async MongoDB client."""
    global _mongo_client
    if _mongo_client is None:
        _mongo_client = motor.motor_asyncio.AsyncIOMotorClient(settings.MONGO_URI.get_secret_value())
        logger.info("MongoDB async client created (singleton).")
    return _mongo_client


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_id(conversation_id: str | None) -> ObjectId | None:
    if conversation_id and ObjectId.is_valid(conversation_id):
        return ObjectId(conversation_id)
    return None


def _serialize(doc: dict[str, Any]) -> dict[str, Any]:
    """Replace Mongo ``ObjectId`` fields with their string form."""
    out = {key: value for key, value in doc.items() if key != "_id"}
    out["id"] = str(doc["_id"])
    if isinstance(out.get("conversation_id"), ObjectId):
        out["conversation_id"] = str(out["conversation_id"])
    return out


# ══════════════════════════════════════════════════════════════════════
#  CONVERSATION STORE
# ══════════════════════════════════════════════════════════════════════


class ConversationStore:
    """
    Async conversation + message store backed by MongoDB via ``motor``.

    Every message query filters by ``conversation_id``.  Conversation
    ids are exposed as strings; malformed ids behave like unknown ones.
    """

    __slots__ = ("_conversations", "_messages")

    def __init__(self, database_name: str | None = None) -> None:
        db = _get_mongo_client()[database_name or settings.MONGO_DB_NAME]
        self._conversations = db["conversations"]
        self._messages = db["messages"]


    async def create_conversation(self, title: str | None = None) -> ConversationDoc:
        now = _now()
        doc = {"title": title or DEFAULT_CONVERSATION_TITLE, "model": settings.LLM_MODEL, "summary": "", "created_at": now, "updated_at": now}
        result = await self._conversations.insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.info("[CHAT] Conversation created: %s", result.inserted_id)
        return _serialize(doc)


    async def get_conversation(self, conversation_id: str | None) -> ConversationDoc | None:
        oid = _parse_id(conversation_id)
        if oid is None:
            return None
        doc = await self._conversations.find_one({"_id": oid})
        return _serialize(doc) if doc else None


    async def list_conversations(self, limit: int = 100) -> list[ConversationDoc]:
        """Return conversations, most recently updated first."""
        cursor = self._conversations.find({}).sort("updated_at", -1)
        return [_serialize(doc) for doc in await cursor.to_list(length=limit)]


    async def add_message(self, conversation_id: str, role: str, content: str) -> None:
        """Append a message and bump the conversation's ``updated_at``."""
        oid = ObjectId(conversation_id)
        now = _now()
        await self._messages.insert_one({"conversation_id": oid, "role": role, "content": content, "created_at": now})
        await self._conversations.update_one({"_id": oid}, {"$set": {"updated_at": now}})


    async def get_messages(self, conversation_id: str, limit: int | None = None) -> list[ChatMessage]:
        """Return messages oldest first; with *limit*, only the last *limit* of them."""
        oid = _parse_id(conversation_id)
        if oid is None:
            return []
        if limit is None:
            cursor = self._messages.find({"conversation_id": oid}).sort([("created_at", 1), ("_id", 1)])
            return [_serialize(doc) for doc in await cursor.to_list(length=None)]

        cursor = self._messages.find({"conversation_id": oid}).sort([("created_at", -1), ("_id", -1)]).limit(limit)
        newest_first = await cursor.to_list(length=limit)
        return [_serialize(doc) for doc in reversed(newest_first)]


    async def set_summary(self, conversation_id: str, summary: str) -> None:
        await self._conversations.update_one({"_id": ObjectId(conversation_id)}, {"$set": {"summary": summary, "updated_at": _now()}})
        logger.info("[MEMORY] Summary stored for conversation '%s' (%d chars).", conversation_id, len(summary))


# ══════════════════════════════════════════════════════════════════════
#  CHAT SERVICE
# ══════════════════════════════════════════════════════════════════════


@dataclass
class ChatReply:
    """Outcome of one chat turn."""

    conversation_id: str
    reply: str
    used: list[str] = field(default_factory=list)


def _init_llm(temperature: float) -> object:
    """Initialise a Gemini chat model via LangChain."""
    from langchain_google_genai import ChatGoogleGenerativeAI

    llm = ChatGoogleGenerativeAI(model=settings.LLM_MODEL, temperature=temperature, google_api_key=settings.GOOGLE_API_KEY.get_secret_value())
    logger.info("LLM initialised: %s (temperature=%.1f)", settings.LLM_MODEL, temperature)
    return llm


def _content_of(response: object) -> str:
    content = response.content if hasattr(response, "content") else response
    return content if isinstance(content, str) else str(content or "")


class ChatService:
    """
    Runs chat turns on top of the retrieval core.

    Parameters
    ----------
    retriever
        ``ContextRetriever`` used to ground answers.
    store
        Optional custom ``ConversationStore``.
    llm
        Optional answer model exposing ``ainvoke(messages)``.
    summarizer
        Optional memory-summary model exposing ``ainvoke(messages)``.
    """

    __slots__ = ("_retriever", "_store", "_llm", "_summarizer")

    def __init__(self, retriever: ContextRetriever, store: ConversationStore | None = None, llm: object | None = None, summarizer: object | None = None) -> None:
        self._retriever = retriever
        self._store = store or ConversationStore()
        self._llm = llm or _init_llm(settings.LLM_TEMPERATURE)
        self._summarizer = summarizer or _init_llm(settings.SUMMARY_TEMPERATURE)


    @property
    def store(self) -> ConversationStore:
        return self._store


    async def chat(self, message: str, conversation_id: str | None = None) -> ChatReply:
        """Answer *message* inside the given (or a new) conversation."""
        t_start = time.perf_counter()

        # ── 1. Resolve conversation ───────────────────────────────────
        conversation = await self._store.get_conversation(conversation_id)
        if conversation is None:
            conversation = await self._store.create_conversation(message[:CONVERSATION_TITLE_LENGTH])
        cid: str = conversation["id"]

        # ── 2-3. History window, then persist the user turn ──────────
        history = await self._store.get_messages(cid, limit=settings.HISTORY_WINDOW)
        await self._store.add_message(cid, "user", message)

        # ── 4. Retrieve context (ungrounded on failure) ──────────────
        context = await self._retrieve(message)
        final_turn = GROUNDED_QUESTION_TEMPLATE.format(context=context.context, question=message) if context.context else message

        # ── 5. Build messages ────────────────────────────────────────
        messages: list[BaseMessage] = [SystemMessage(content=SYSTEM_PROMPT)]
        summary = conversation.get("summary") or ""
        if summary:
            messages.append(SystemMessage(content=SUMMARY_PREFACE_TEMPLATE.format(summary=summary)))
        messages.extend(self._to_langchain(history))
        messages.append(HumanMessage(content=final_turn))

        # ── 6. Call Gemini ───────────────────────────────────────────
        t_llm = time.perf_counter()
        response = await self._llm.ainvoke(messages)  # type: ignore[attr-defined]
        reply = _content_of(response).strip() or NO_REPLY_PLACEHOLDER
        llm_ms = (time.perf_counter() - t_llm) * 1000

        # ── 7. Persist reply ─────────────────────────────────────────
        await self._store.add_message(cid, "assistant", reply)

        # ── 8. Memory summary ────────────────────────────────────────
        window = (history + [{"role": "user", "content": message}, {"role": "assistant", "content": reply}])[-settings.HISTORY_WINDOW :]
        if len(window) > settings.SUMMARY_TRIGGER:
            await self._update_summary(cid, window[: -settings.SUMMARY_KEEP_RECENT])

        total_ms = (time.perf_counter() - t_start) * 1000
        logger.info("[CHAT] Turn done in %.1fms (llm=%.1f, grounded=%s, history=%d).", total_ms, llm_ms, not context.is_empty, len(history))
        return ChatReply(conversation_id=cid, reply=reply, used=list(context.used))


    async def get_context(self, question: str) -> ContextResult:
        """Expose the retrieval core unchanged (errors propagate)."""
        return await self._retriever.get_context(question)


    async def _retrieve(self, question: str) -> ContextResult:
        try:
            return await self._retriever.get_context(question)
        except ThunderError as exc:
            logger.warning("[CHAT] Retrieval failed (%s: %s) — answering without context.", type(exc).__name__, exc)
            return ContextResult.empty()


    async def _update_summary(self, conversation_id: str, older: list[ChatMessage]) -> None:
        transcript = "\n".join(f"[{m['role']}]: {m['content']}" for m in older)
        try:
            response = await self._summarizer.ainvoke([SystemMessage(content=SUMMARIZATION_PROMPT), HumanMessage(content=transcript)])  # type: ignore[attr-defined]
        except Exception:
            logger.exception("[MEMORY] Summarization call failed — keeping previous summary.")
            return

        summary = _content_of(response).strip()
        if summary:
            await self._store.set_summary(conversation_id, summary)


    @staticmethod
    def _to_langchain(history: list[ChatMessage]) -> list[BaseMessage]:
        return [_ROLE_TO_MESSAGE.get(m["role"], HumanMessage)(content=m.get("content") or "") for m in history]
