"""
main.py
=======
FastAPI application entry point for the document and dataset
question-answering service.

Run locally:
  uvicorn backend.main:app --reload --port 8000

The lifespan handler creates the dataset tables once at startup and logs
whether the model server is reachable. An unreachable model server is not
fatal; requests that need it fail with 503 until it comes back.
"""

from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv  # type: ignore
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Load .env from project root (one level above this file's package)
load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))

from backend.api.ask import router as ask_router, to_http_exception
from backend.api.deps import get_ollama_client, get_session_factory
from backend.api.health import router as health_router
from backend.schemas.response import ErrorResponse
from rag_pipeline.config import get_settings
from rag_pipeline.errors import RagError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan: startup / shutdown
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialise singletons before first request."""
    logger.info("Question-answering backend starting up…")

    # 1. Dataset engine + schema
    get_session_factory()

    # 2. Model server probe (informational only)
    status = await asyncio.to_thread(get_ollama_client().check_availability)
    if status.available:
        logger.info("Ollama reachable; installed models: %s", ", ".join(status.models) or "none")
    else:
        logger.warning("Ollama not reachable at %s; answering endpoints will return 503",
                       get_settings().ollama_base_url)

    logger.info("All components initialised. Ready.")
    yield

    logger.info("Question-answering backend shutting down.")


# ---------------------------------------------------------------------------
# Error handling
# ---------------------------------------------------------------------------

async def rag_error_handler(request: Request, exc: RagError) -> JSONResponse:
    http_exc = to_http_exception(exc)
    logger.error("%s %s failed with %s: %s", request.method, request.url.path,
                 type(exc).__name__, exc)
    body = ErrorResponse(error=type(exc).__name__, detail=http_exc.detail)
    return JSONResponse(status_code=http_exc.status_code, content=body.model_dump())


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app() -> FastAPI:
    app = FastAPI(
        title       = "Document & Dataset Q&A API",
        description = (
            "Retrieval-augmented question answering over an uploaded PDF and "
            "over a football teams/matches dataset, backed by a local Ollama "
            "model server."
        ),
        version     = "1.0.0",
        docs_url    = "/docs",
        redoc_url   = "/redoc",
        lifespan    = lifespan,
    )

    # ── CORS ──────────────────────────────────────────────────────────────
    origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        get_settings().frontend_url,
    ]
    app.add_middleware(
        CORSMiddleware,
        allow_origins     = origins,
        allow_credentials = True,
        allow_methods     = ["*"],
        allow_headers     = ["*"],
    )

    # ── Errors ────────────────────────────────────────────────────────────
    app.add_exception_handler(RagError, rag_error_handler)

    # ── Routers ───────────────────────────────────────────────────────────
    app.include_router(health_router)
    app.include_router(ask_router)

    return app


app = create_app()
