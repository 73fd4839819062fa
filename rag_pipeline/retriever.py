"""
retriever.py
============
Retrieval strategies turn a question into a bounded context for the answer
gateway. Two implementations share the ``retrieve`` shape:

  DocumentRetriever  — this module; searches the request's vector store.
  DatasetRetriever   — dataset_engine.dataset_retriever; fetches records.

Document strategy:
  1. Embed the question with the same model used for the chunks.
  2. Cosine search over the request's chunks (top_k = 3).
  3. Keep only chunks scoring at or above the relevance threshold. If the
     best chunk is below it, the bundle says "no context" and the caller
     answers with a sentinel instead of asking the model.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Protocol

from rag_pipeline.embedder import OllamaEmbedder
from rag_pipeline.similarity import RELEVANCE_THRESHOLD, RankedChunk, is_relevant
from rag_pipeline.vector_store import RequestVectorStore

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 3

BUNDLE_DOCUMENT_CHUNKS = "document_chunks"
BUNDLE_NO_DATA = "no_data"


@dataclass(frozen=True)
class ContextBundle:
    type: str
    data: Any = None

    @property
    def is_empty(self) -> bool:
        return self.type == BUNDLE_NO_DATA or self.data is None


class RetrievalStrategy(Protocol):
    def retrieve(self, question: str, classification: Optional[Any] = None) -> ContextBundle:
        ...


class DocumentRetriever:
    """Bound to one request's entry in a ``RequestVectorStore``."""

    def __init__(
        self,
        embedder: OllamaEmbedder,
        store: RequestVectorStore,
        request_id: str,
        top_k: int = DEFAULT_TOP_K,
        threshold: float = RELEVANCE_THRESHOLD,
    ):
        self.embedder = embedder
        self.store = store
        self.request_id = request_id
        self.top_k = top_k
        self.threshold = threshold

    def retrieve(self, question: str, classification: Optional[Any] = None) -> ContextBundle:
        query_vec = self.embedder.embed_query(question)
        ranked = self.store.search(self.request_id, query_vec, self.top_k)

        if not is_relevant(ranked, self.threshold):
            logger.warning("No relevant chunks found with sufficient similarity")
            return ContextBundle(type=BUNDLE_NO_DATA, data=ranked)

        kept = [chunk for chunk in ranked if chunk.score >= self.threshold]
        return ContextBundle(type=BUNDLE_DOCUMENT_CHUNKS, data=kept)


def format_document_context(chunks: List[RankedChunk]) -> str:
    """Join chunk texts verbatim, best first, separated by blank lines."""
    return "\n\n".join(chunk.text for chunk in chunks)
