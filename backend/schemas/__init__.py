# backend/schemas/__init__.py
from backend.schemas.response import (
    DatabaseAnswerResponse,
    DatabaseQuestion,
    DocumentAnswerResponse,
    ErrorResponse,
    HealthResponse,
    OllamaStatusResponse,
)

__all__ = [
    "DatabaseAnswerResponse", "DatabaseQuestion", "DocumentAnswerResponse",
    "ErrorResponse", "HealthResponse", "OllamaStatusResponse",
]
