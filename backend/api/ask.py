"""
api/ask.py
==========
POST /api/ask/document
----------------------
multipart/form-data:
  • file     : UploadFile (.pdf or .txt, size capped by MAX_UPLOAD_MB)
  • question : str

POST /api/ask/database
----------------------
JSON body ``{"question": str, "includeContext": bool}``.

Both endpoints run the blocking pipeline in a worker thread and map the
error taxonomy onto HTTP statuses:

  InputError                        → 400
  UpstreamUnavailable               → 503  (model server down)
  UpstreamInvalidResponse           → 502  (model server answered nothing useful)
  EmbeddingFailure                  → 503 / 502 depending on its cause
  AllModelsFailedError              → 503 / 502 depending on the last cause
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from backend.api.deps import get_dataset_service, get_document_service
from backend.schemas.response import (
    DatabaseAnswerResponse,
    DatabaseQuestion,
    DocumentAnswerResponse,
)
from dataset_engine.dataset_qa import DatasetQAService
from rag_pipeline.config import get_settings
from rag_pipeline.document_qa import DocumentQAService
from rag_pipeline.errors import (
    AllModelsFailedError,
    EmbeddingFailure,
    InputError,
    RagError,
    UpstreamInvalidResponse,
    UpstreamUnavailable,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ask", tags=["Ask"])

_UNAVAILABLE_DETAIL = "Cannot connect to the model server. Make sure Ollama is running."


def to_http_exception(exc: RagError) -> HTTPException:
    if isinstance(exc, InputError):
        return HTTPException(status.HTTP_400_BAD_REQUEST, detail=str(exc))

    if isinstance(exc, EmbeddingFailure):
        unavailable = exc.unavailable
    elif isinstance(exc, AllModelsFailedError):
        unavailable = exc.unreachable
    elif isinstance(exc, (UpstreamUnavailable, UpstreamInvalidResponse)):
        unavailable = isinstance(exc, UpstreamUnavailable)
    else:
        return HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))

    if unavailable:
        return HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail=f"{_UNAVAILABLE_DETAIL} ({exc})")
    return HTTPException(status.HTTP_502_BAD_GATEWAY, detail=f"Model server returned an unusable response: {exc}")


@router.post("/document", response_model=DocumentAnswerResponse)
async def ask_document(
    file: UploadFile = File(..., description="PDF or plain-text document"),
    question: str = Form(..., description="Question about the document"),
    service: DocumentQAService = Depends(get_document_service),
):
    """Answer a question from the uploaded document's text."""
    if not question.strip():
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="Missing file or question")

    content = await file.read()
    if not content:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="Missing file or question")

    max_bytes = get_settings().max_upload_mb * 1024 * 1024
    if len(content) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Document exceeds {get_settings().max_upload_mb} MB limit.",
        )

    try:
        result = await asyncio.to_thread(
            service.answer_from_file, file.filename or "", content, question
        )
    except RagError as exc:
        logger.error("Document question failed: %s", exc)
        raise to_http_exception(exc) from exc

    return DocumentAnswerResponse(
        answer       = result.answer,
        chunks_total = result.chunks_total,
        chunks_used  = result.chunks_used,
        top_score    = result.top_score,
    )


@router.post("/database", response_model=DatabaseAnswerResponse, response_model_exclude_none=True)
async def ask_database(
    body: DatabaseQuestion,
    service: DatasetQAService = Depends(get_dataset_service),
):
    """Answer a question about teams and matches from the dataset."""
    if not body.question.strip():
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="Question is required and cannot be empty")

    try:
        result = await asyncio.to_thread(service.ask, body.question, body.include_context)
    except RagError as exc:
        logger.error("Database question failed: %s", exc)
        raise to_http_exception(exc) from exc

    return DatabaseAnswerResponse(
        answer     = result.answer,
        query_type = result.query_type,
        confidence = result.confidence,
        context    = result.context,
    )
