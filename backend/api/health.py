"""
api/health.py
=============
GET /api/health          — liveness plus model-server and dataset readiness.
GET /api/ollama/status   — model-server availability and installed models.

The model-server probe is bounded (5 s by default) and only reports status;
it never gates the answering endpoints.
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError

from backend.api.deps import get_ollama_client, get_repository
from backend.schemas.response import HealthResponse, OllamaStatusResponse
from dataset_engine.data_source import SqlMatchRepository
from rag_pipeline.ollama_client import OllamaClient

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/api/ollama/status", response_model=OllamaStatusResponse)
async def ollama_status(client: OllamaClient = Depends(get_ollama_client)):
    """Report whether the model server answers, and which models it has installed."""
    status = await asyncio.to_thread(client.check_availability)
    return OllamaStatusResponse(available=status.available, models=status.models)


@router.get("/api/health", response_model=HealthResponse)
async def health_check(
    client: OllamaClient = Depends(get_ollama_client),
    repository: SqlMatchRepository = Depends(get_repository),
):
    """Return service status and component readiness flags."""
    status = await asyncio.to_thread(client.check_availability)

    try:
        team_count = await asyncio.to_thread(repository.count_teams)
        match_count = await asyncio.to_thread(repository.count_matches)
        database_ready = True
    except SQLAlchemyError as exc:
        logger.warning("Dataset health check failed: %s", exc)
        team_count, match_count, database_ready = 0, 0, False

    return HealthResponse(
        ollama_available = status.available,
        ollama_models    = status.models,
        database_ready   = database_ready,
        team_count       = team_count,
        match_count      = match_count,
    )
