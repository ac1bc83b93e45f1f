"""
Thunder - Retrieval Inspection Script
======================================
CLI entry point that runs one question through the retrieval core and
prints exactly what the answer model would receive:
    1. Load settings (fail-fast on a bad ``.env``).
    2. Open the LanceDB index and the embedding adapter.
    3. Run ``get_context`` (embed → search → re-rank → gate → format).
    4. Print the rendered context, or a "no relevant evidence" line.

Flags:
    --show-config   Print the effective retrieval configuration first.
    --top N         Override ``TOP_COUNT`` for this run.

Usage:
    python -m thunder.scripts.query_index "Care este statusul proiectului Phoenix?"
    python -m thunder.scripts.query_index --show-config "project status"
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import sys
import time
from pathlib import Path

# ── Ensure project root is importable when run directly ────────────────
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))


# ── CLI Argument Parsing ───────────────────────────────────────────────

def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="query_index", description="Thunder — Run a question through retrieval and the relevance gate.")
    parser.add_argument("question", help="Question to retrieve context for.")
    parser.add_argument("--show-config", action="store_true", default=False, help="Print the effective retrieval configuration.")
    parser.add_argument("--top", type=int, default=None, help="Override TOP_COUNT for this run.")
    return parser.parse_args(argv)


# ── Main Orchestration ─────────────────────────────────────────────────

def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    try:
        from thunder.config.settings import settings
    except Exception as exc:
        print("\n[FATAL] Configuration error — check your .env file:\n")
        print(f"  {exc}")
        print()
        return 1

    from thunder.src.core.embedder import SentenceEmbedder
    from thunder.src.core.errors import ThunderError
    from thunder.src.core.ranker import RetrievalConfig
    from thunder.src.core.retriever import ContextRetriever
    from thunder.src.database.vector_store import LanceVectorIndex
    from thunder.src.utils.logger import get_logger

    logger = get_logger(__name__)

    try:
        config = RetrievalConfig.from_settings(settings)
        if args.top is not None:
            config = dataclasses.replace(config, top_count=args.top)
    except ValueError as exc:
        print(f"\n[FATAL] Invalid retrieval configuration: {exc}\n")
        return 1

    if args.show_config:
        _print_config(config, settings)

    retriever = ContextRetriever(SentenceEmbedder(), LanceVectorIndex(score_mode=config.score_mode), config)

    t_start = time.perf_counter()
    try:
        result = asyncio.run(retriever.get_context(args.question))
    except ThunderError as exc:
        logger.error("Retrieval failed: %s", exc)
        print(f"\n[ERROR] {type(exc).__name__}: {exc}\n")
        return 1
    elapsed_ms = (time.perf_counter() - t_start) * 1000

    print()
    print("=" * 60)
    print(f"  Question : {args.question}")
    print(f"  Passages : {len(result.used)}   ({elapsed_ms:.1f}ms)")
    print("=" * 60)
    if result.is_empty:
        print("  No relevant evidence — the assistant would answer ungrounded.")
    else:
        print(result.context)
    print()
    return 0


# ── Pretty-print helpers ──────────────────────────────────────────────

def _print_config(config: object, settings: object) -> None:
    print()
    print("=" * 60)
    print("  THUNDER — Retrieval configuration")
    print("=" * 60)
    print(f"  LanceDB path : {settings.LANCEDB_PATH}")              # type: ignore[attr-defined]
    print(f"  Table        : {settings.LANCEDB_TABLE_NAME}")        # type: ignore[attr-defined]
    print(f"  Embedding    : {settings.EMBEDDING_MODEL}")           # type: ignore[attr-defined]
    for f in dataclasses.fields(config):  # type: ignore[arg-type]
        print(f"  {f.name:<17}: {getattr(config, f.name)}")
    print("=" * 60)


# ── Entry point ────────────────────────────────────────────────────────

if __name__ == "__main__":
    sys.exit(main())
