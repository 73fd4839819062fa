"""
schemas/response.py
===================
Pydantic v2 request / response models for the question-answering API.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


def _utc_now() -> str:
    return datetime.now(UTC).isoformat(timespec="seconds").replace("+00:00", "Z")


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class DatabaseQuestion(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question: str = Field(..., description="Question about teams, matches, or competitions",
                          examples=["How many teams are in the database?"])
    include_context: bool = Field(False, alias="includeContext",
                                  description="Return the database context used for the answer")


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class DocumentAnswerResponse(BaseModel):
    answer: str
    chunks_total: int = 0
    chunks_used: int = 0
    top_score: Optional[float] = None


class DatabaseAnswerResponse(BaseModel):
    answer: str
    query_type: str
    confidence: float
    context: Optional[str] = None


class OllamaStatusResponse(BaseModel):
    available: bool
    models: List[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str = "ok"
    ollama_available: bool
    ollama_models: List[str] = Field(default_factory=list)
    database_ready: bool
    team_count: int = 0
    match_count: int = 0
    api_version: str = "1.0.0"


class ErrorResponse(BaseModel):
    error: str
    detail: Optional[str] = None
    timestamp: str = Field(default_factory=_utc_now)
