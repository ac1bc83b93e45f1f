"""
Thunder - Application Entry Point
==================================
FastAPI application factory.  On startup the lifespan builds the shared
resources once and keeps them on ``app.state``:

  • ``SentenceEmbedder``  — load-once embedding model handle
  • ``LanceVectorIndex``  — read-only LanceDB table
  • ``ContextRetriever``  — retrieval + relevance gate
  • ``ChatService``       — Mongo-backed chat turns on top of the retriever

Usage:
    uvicorn thunder.src.main:app --reload --port 3001
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from thunder.config.settings import settings
from thunder.src.api.routes import router
from thunder.src.core.chat_engine import ChatService
from thunder.src.core.embedder import SentenceEmbedder
from thunder.src.core.ranker import RetrievalConfig
from thunder.src.core.retriever import ContextRetriever
from thunder.src.database.vector_store import LanceVectorIndex
from thunder.src.utils.logger import get_logger

logger = get_logger(__name__)


def build_chat_service() -> ChatService:
    """Wire the production retriever and chat service from ``settings``."""
    config = RetrievalConfig.from_settings(settings)
    index = LanceVectorIndex(score_mode=config.score_mode)
    retriever = ContextRetriever(SentenceEmbedder(), index, config)
    logger.info("Retriever ready: %r (K=%d, N=%d, mode=%s)", index, config.candidate_count, config.effective_top_count, config.score_mode)
    return ChatService(retriever)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    if getattr(app.state, "chat_service", None) is None:
        logger.info("Starting Thunder API (env=%s)...", settings.ENV)
        app.state.chat_service = build_chat_service()
    yield
    logger.info("Thunder API stopped.")


def create_app(chat_service: ChatService | None = None) -> FastAPI:
    """Create the FastAPI app; a preset *chat_service* skips production wiring."""
    app = FastAPI(title="Thunder", lifespan=lifespan)
    app.state.chat_service = chat_service
    app.add_middleware(CORSMiddleware, allow_origins=settings.CORS_ORIGINS, allow_methods=["*"], allow_headers=["*"])
    app.include_router(router)
    return app


app = create_app()
