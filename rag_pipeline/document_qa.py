"""
document_qa.py
==============
Answer a question from the text of one uploaded document.

Pipeline (strictly sequential, one request at a time per call):

  1. Validate the question
  2. Split the text into chunks              (chunker)
  3. Embed every chunk                       (embedder)
  4. Store the vectors under a request id    (vector_store.put)
  5. Embed the question and rank the chunks  (retriever)
  6. Sentinel answer when nothing is relevant, else ask the model (llm_engine)

The request's vectors are released on every exit path.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from rag_pipeline.chunker import DEFAULT_CHUNK_SIZE, DEFAULT_OVERLAP_WORDS, split_text_into_chunks
from rag_pipeline.document_loader import load_document_text
from rag_pipeline.embedder import OllamaEmbedder
from rag_pipeline.errors import EmptyInputError
from rag_pipeline.llm_engine import AnswerGateway
from rag_pipeline.retriever import (
    DEFAULT_TOP_K,
    DocumentRetriever,
    RetrievalStrategy,
    format_document_context,
)
from rag_pipeline.similarity import VectorRecord
from rag_pipeline.vector_store import RequestVectorStore, new_request_id

logger = logging.getLogger(__name__)

NO_RELEVANT_DOCUMENT_ANSWER = (
    "I cannot find relevant information in the provided PDF to answer this question."
)


@dataclass
class DocumentAnswer:
    answer: str
    request_id: str
    chunks_total: int
    chunks_used: int
    top_score: Optional[float] = None


class DocumentQAService:
    def __init__(
        self,
        embedder: OllamaEmbedder,
        gateway: AnswerGateway,
        store: Optional[RequestVectorStore] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_overlap: int = DEFAULT_OVERLAP_WORDS,
        top_k: int = DEFAULT_TOP_K,
    ):
        self.embedder = embedder
        self.gateway = gateway
        self.store = store if store is not None else RequestVectorStore()
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.top_k = top_k

    def answer_from_file(self, filename: str, content: bytes, question: str) -> DocumentAnswer:
        _require_question(question)
        text = load_document_text(filename, content)
        return self.answer_from_text(text, question)

    def answer_from_text(self, text: str, question: str) -> DocumentAnswer:
        _require_question(question)
        request_id = new_request_id()
        logger.info("Starting document question answering for request %s", request_id)

        try:
            with self.store.request_scope(request_id):
                return self._run(request_id, text, question)
        except Exception as exc:
            logger.error("Request %s failed: %s", request_id, exc)
            raise

    def _run(self, request_id: str, text: str, question: str) -> DocumentAnswer:
        logger.info("Step 1: Splitting text into chunks...")
        chunks = split_text_into_chunks(text, self.chunk_size, self.chunk_overlap)
        texts = [c.text for c in chunks]

        logger.info("Step 2: Generating embeddings for chunks...")
        vectors = self.embedder.embed_texts(texts)

        logger.info("Step 3: Storing embeddings...")
        self.store.put(request_id, [VectorRecord(text=t, embedding=v) for t, v in zip(texts, vectors)])

        logger.info("Step 4: Finding relevant chunks...")
        retriever: RetrievalStrategy = DocumentRetriever(self.embedder, self.store, request_id, top_k=self.top_k)
        bundle = retriever.retrieve(question)
        top_score = bundle.data[0].score if bundle.data else None

        if bundle.is_empty:
            return DocumentAnswer(
                answer       = NO_RELEVANT_DOCUMENT_ANSWER,
                request_id   = request_id,
                chunks_total = len(chunks),
                chunks_used  = 0,
                top_score    = top_score,
            )

        logger.info("Step 5: Generating answer...")
        answer = self.gateway.answer(question, format_document_context(bundle.data))
        logger.info("Successfully completed request %s", request_id)

        return DocumentAnswer(
            answer       = answer,
            request_id   = request_id,
            chunks_total = len(chunks),
            chunks_used  = len(bundle.data),
            top_score    = top_score,
        )


def _require_question(question: str) -> None:
    if not question or not question.strip():
        raise EmptyInputError("Question is required and cannot be empty")
