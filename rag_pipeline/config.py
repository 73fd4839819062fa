"""
config.py
=========
Runtime settings read from the environment (a ``.env`` file is loaded by
``backend.main`` before the first call to ``get_settings``).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List


def _clean_env(name: str, default: str = "") -> str:
    value = os.getenv(name, default)
    return value.strip().strip('"').strip("'")


def _env_int(name: str, default: int) -> int:
    raw = _clean_env(name, str(default))
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = _clean_env(name, str(default))
    try:
        return float(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = _clean_env(name, "true" if default else "false").lower()
    return raw in ("1", "true", "yes", "on")


def _env_list(name: str) -> List[str]:
    return [item.strip() for item in _clean_env(name, "").split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    ollama_base_url: str = "http://localhost:11434"
    embed_model: str = "nomic-embed-text"
    generation_model: str = "gemma3:1b"
    generation_fallbacks: List[str] = field(default_factory=list)
    probe_timeout: float = 5.0

    chunk_size: int = 500
    chunk_overlap: int = 50
    retrieval_top_k: int = 3

    llm_classifier_enabled: bool = True
    database_url: str = "sqlite:///./matches.db"
    max_upload_mb: int = 10
    frontend_url: str = "http://localhost:3000"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build (once) the process-wide settings from environment variables."""
    return Settings(
        ollama_base_url        = _clean_env("OLLAMA_BASE_URL", "http://localhost:11434").rstrip("/"),
        embed_model            = _clean_env("OLLAMA_EMBED_MODEL", "nomic-embed-text"),
        generation_model       = _clean_env("OLLAMA_MODEL", "gemma3:1b"),
        generation_fallbacks   = _env_list("OLLAMA_MODEL_FALLBACKS"),
        probe_timeout          = _env_float("OLLAMA_PROBE_TIMEOUT", 5.0),
        chunk_size             = _env_int("CHUNK_SIZE", 500),
        chunk_overlap          = _env_int("CHUNK_OVERLAP", 50),
        retrieval_top_k        = _env_int("RETRIEVAL_TOP_K", 3),
        llm_classifier_enabled = _env_bool("LLM_CLASSIFIER_ENABLED", True),
        database_url           = _clean_env("DATABASE_URL", "sqlite:///./matches.db"),
        max_upload_mb          = _env_int("MAX_UPLOAD_MB", 10),
        frontend_url           = _clean_env("FRONTEND_URL", "http://localhost:3000"),
    )
