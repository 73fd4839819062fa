"""
api/deps.py
===========
Process-wide singletons wired from Settings, exposed as FastAPI dependencies.
Tests replace them through ``app.dependency_overrides``.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from sqlalchemy.orm import sessionmaker

from dataset_engine.data_source import (
    SqlMatchRepository,
    create_db_engine,
    create_session_factory,
    init_db,
)
from dataset_engine.dataset_qa import DatasetQAService
from dataset_engine.dataset_retriever import DatasetRetriever
from dataset_engine.fetch_planner import FetchPlanner
from dataset_engine.query_classifier import QueryClassifier
from rag_pipeline.config import get_settings
from rag_pipeline.document_qa import DocumentQAService
from rag_pipeline.embedder import OllamaEmbedder
from rag_pipeline.llm_engine import DATASET_PROMPT, DOCUMENT_PROMPT, AnswerGateway, candidate_models
from rag_pipeline.ollama_client import OllamaClient
from rag_pipeline.vector_store import RequestVectorStore

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_ollama_client() -> OllamaClient:
    settings = get_settings()
    return OllamaClient(settings.ollama_base_url, probe_timeout=settings.probe_timeout)


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker:
    engine = create_db_engine(get_settings().database_url)
    init_db(engine)
    return create_session_factory(engine)


@lru_cache(maxsize=1)
def get_repository() -> SqlMatchRepository:
    return SqlMatchRepository(get_session_factory())


@lru_cache(maxsize=1)
def get_vector_store() -> RequestVectorStore:
    return RequestVectorStore()


def _models():
    settings = get_settings()
    return candidate_models(settings.generation_model, settings.generation_fallbacks)


@lru_cache(maxsize=1)
def get_document_service() -> DocumentQAService:
    settings = get_settings()
    client = get_ollama_client()
    return DocumentQAService(
        embedder      = OllamaEmbedder(client, settings.embed_model),
        gateway       = AnswerGateway(client.generate, _models(), DOCUMENT_PROMPT),
        store         = get_vector_store(),
        chunk_size    = settings.chunk_size,
        chunk_overlap = settings.chunk_overlap,
        top_k         = settings.retrieval_top_k,
    )


@lru_cache(maxsize=1)
def get_dataset_service() -> DatasetQAService:
    settings = get_settings()
    client = get_ollama_client()
    repository = get_repository()
    gateway = AnswerGateway(client.generate, _models(), DATASET_PROMPT)

    if settings.llm_classifier_enabled:
        classifier = QueryClassifier(complete=gateway.complete, catalog=repository)
        planner = FetchPlanner(complete=gateway.complete, catalog=repository)
    else:
        classifier = QueryClassifier()
        planner = None
    logger.info("Model-assisted classification %s", "enabled" if planner else "disabled")

    return DatasetQAService(
        classifier = classifier,
        retriever  = DatasetRetriever(repository, planner=planner),
        gateway    = gateway,
    )
