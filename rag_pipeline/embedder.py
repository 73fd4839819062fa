"""
embedder.py
===========
Convert text strings into dense embedding vectors through the model server.

Texts are embedded one at a time, in order, to bound load on the server.
The first failing element aborts the whole batch; nothing partial is kept.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from rag_pipeline.errors import EmbeddingFailure, RagError
from rag_pipeline.ollama_client import OllamaClient

logger = logging.getLogger(__name__)

DEFAULT_EMBED_MODEL = "nomic-embed-text"
_PROGRESS_EVERY = 10


class OllamaEmbedder:
    def __init__(self, client: OllamaClient, model: str = DEFAULT_EMBED_MODEL):
        self.client = client
        self.model = model

    def embed_texts(self, texts: Sequence[str]) -> List[List[float]]:
        """Return one vector per input text, in input order."""
        if not texts:
            return []

        logger.info("Generating embeddings for %d texts with %s", len(texts), self.model)
        vectors: List[List[float]] = []
        for idx, text in enumerate(texts):
            try:
                vectors.append(self.client.embed(self.model, text))
            except RagError as exc:
                logger.error("Failed to generate embedding for item %d: %s", idx, exc)
                raise EmbeddingFailure(idx, exc) from exc

            if (idx + 1) % _PROGRESS_EVERY == 0:
                logger.info("Generated %d/%d embeddings", idx + 1, len(texts))

        return vectors

    def embed_query(self, text: str) -> List[float]:
        """Embed one question with the same model as the chunks."""
        return self.embed_texts([text])[0]
