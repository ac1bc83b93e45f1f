"""
Thunder - Centralized Configuration
====================================
Uses ``pydantic-settings`` (``BaseSettings``) to load *all* configuration
from environment variables and the project-level ``.env`` file.

Security
--------
- ``GOOGLE_API_KEY`` is typed as ``SecretStr`` and has **no default value**.
  If the key is missing at startup, Pydantic will raise a ``ValidationError``.
  The raw value is never exposed in repr, logs, or tracebacks.
- ``MONGO_URI`` is also ``SecretStr`` — connection strings contain
  credentials and must never leak into logs.

Retrieval tables
----------------
``KEYWORD_BONUSES`` and ``OVERRIDE_MARKERS`` are lists of pairs.  In the
environment they are given as JSON, e.g.::

    KEYWORD_BONUSES='[["proiectul phoenix", 5], ["status:", 2]]'
    OVERRIDE_MARKERS='[["phoenix", "proiectul phoenix"]]'
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application-wide settings.

    Every field is loaded from environment variables (or ``.env``).
    Fields *without* a default are **required**.

    Attributes
    ----------
    GOOGLE_API_KEY : SecretStr
        API key for Google AI Studio (Gemini chat model).  **Required.**
    MONGO_URI : SecretStr
        MongoDB connection string for conversation storage.  **Required.**
    SCORE_MODE : Literal["distance", "similarity"]
        How raw index scores are read: lower-is-better distances or
        higher-is-better cosine similarities.
    CANDIDATE_COUNT : int
        Raw nearest neighbours fetched from the index before re-ranking (K).
    TOP_COUNT : int
        Re-ranked passages kept in the context block (N).
    KEYWORD_WEIGHT : float
        Weight of the keyword score in the ranking key.
    MAX_DISTANCE / MIN_SIMILARITY : float
        Relevance gate thresholds for each score mode.
    KEYWORD_BONUSES : list[tuple[str, int]]
        ``(substring, bonus)`` pairs added to the keyword score.
    OVERRIDE_MARKERS : list[tuple[str, str]]
        ``(query_marker, passage_marker)`` pairs that force the gate open.
    LOG_LEVEL : str | None
        Explicit level for the ``thunder`` logger tree; when unset the level
        follows ``ENV`` (dev: DEBUG, prod: WARNING).
    HISTORY_WINDOW / SUMMARY_TRIGGER / SUMMARY_KEEP_RECENT : int
        Conversation memory window and summarisation trigger.
    """

    # ── Resolved Absolute Paths ────────────────────────────────────────
    BASE_DIR: Path = Path(__file__).resolve().parent.parent
    LANCEDB_PATH: Path = BASE_DIR / "data" / "thunder_db"

    # ── Environment Mode ───────────────────────────────────────────────
    ENV: Literal["dev", "prod"] = "dev"
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] | None = None

    # ── API Keys (REQUIRED — no default) ───────────────────────────────
    GOOGLE_API_KEY: SecretStr

    # ── MongoDB (REQUIRED — no default) ────────────────────────────────
    MONGO_URI: SecretStr
    MONGO_DB_NAME: str = "thunder_chat"

    # ── Model Configuration ────────────────────────────────────────────
    EMBEDDING_MODEL: str = "sentence-transformers/paraphrase-multilingual-MiniLM-L12-v2"
    LLM_MODEL: str = "gemini-2.0-flash"
    LLM_TEMPERATURE: float = 0.3
    SUMMARY_TEMPERATURE: float = 0.2

    # ── LanceDB ────────────────────────────────────────────────────────
    LANCEDB_TABLE_NAME: str = "thunder_docs"

    # ── Retrieval & Relevance Gate ─────────────────────────────────────
    SCORE_MODE: Literal["distance", "similarity"] = "distance"
    CANDIDATE_COUNT: int = 12
    TOP_COUNT: int = 6
    KEYWORD_WEIGHT: float = 0.08
    MAX_DISTANCE: float = 1.6
    MIN_SIMILARITY: float = 0.3
    KEYWORD_BONUSES: list[tuple[str, int]] = [("proiectul phoenix", 5), ("description:", 2), ("status:", 2), ("assigned team:", 2)]
    OVERRIDE_MARKERS: list[tuple[str, str]] = [("phoenix", "proiectul phoenix")]

    # ── Conversation Memory ────────────────────────────────────────────
    HISTORY_WINDOW: int = 30
    SUMMARY_TRIGGER: int = 24
    SUMMARY_KEEP_RECENT: int = 10

    # ── HTTP ───────────────────────────────────────────────────────────
    CORS_ORIGINS: list[str] = ["*"]

    # ── Validators ─────────────────────────────────────────────────────

    @field_validator("CANDIDATE_COUNT", "TOP_COUNT", "HISTORY_WINDOW", "SUMMARY_TRIGGER", "SUMMARY_KEEP_RECENT")
    @classmethod
    def _count_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"count must be ≥ 1, got {v}")
        return v


    @field_validator("KEYWORD_WEIGHT")
    @classmethod
    def _weight_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"KEYWORD_WEIGHT must be ≥ 0, got {v}")
        return v


    @field_validator("KEYWORD_BONUSES")
    @classmethod
    def _bonuses_non_negative(cls, v: list[tuple[str, int]]) -> list[tuple[str, int]]:
        for phrase, bonus in v:
            if not phrase:
                raise ValueError("KEYWORD_BONUSES phrases must be non-empty")
            if bonus < 0:
                raise ValueError(f"KEYWORD_BONUSES bonus for '{phrase}' must be ≥ 0, got {bonus}")
        return v


    @field_validator("OVERRIDE_MARKERS")
    @classmethod
    def _markers_non_empty(cls, v: list[tuple[str, str]]) -> list[tuple[str, str]]:
        for query_marker, passage_marker in v:
            if not query_marker or not passage_marker:
                raise ValueError("OVERRIDE_MARKERS entries must be two non-empty strings")
        return v


    @model_validator(mode="after")
    def _summary_window(self) -> Settings:
        if self.SUMMARY_KEEP_RECENT >= self.SUMMARY_TRIGGER:
            raise ValueError(f"SUMMARY_KEEP_RECENT ({self.SUMMARY_KEEP_RECENT}) must be smaller than SUMMARY_TRIGGER ({self.SUMMARY_TRIGGER})")
        return self

    # ── Pydantic Settings Configuration ────────────────────────────────
    model_config = SettingsConfigDict(env_file=Path(__file__).resolve().parent.parent / ".env", env_file_encoding="utf-8", extra="ignore")


# ── Singleton Instance ─────────────────────────────────────────────────
# Import this throughout the project:
#     from thunder.config.settings import settings
settings = Settings()
