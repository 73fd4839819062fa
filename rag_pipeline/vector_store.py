"""
vector_store.py
===============
Request-scoped, in-memory vector store.

Each document question gets its own entry, keyed by an opaque request id.
The entry is written once, searched, then released when the request ends,
whether it succeeded or failed. Memory is bounded by the in-flight
requests. Requests only touch their own key, so no locking is needed.
"""

from __future__ import annotations

import logging
import random
import string
import time
from contextlib import contextmanager
from typing import Dict, Iterator, List, Sequence

from rag_pipeline.errors import NoStoreForRequest
from rag_pipeline.similarity import RankedChunk, VectorRecord, rank_records

logger = logging.getLogger(__name__)

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def new_request_id(prefix: str = "") -> str:
    """Millisecond timestamp plus a random base-36 suffix, e.g. ``1718000000000-k3j9x0q2a``."""
    suffix = "".join(random.choices(_SUFFIX_ALPHABET, k=9))
    request_id = f"{int(time.time() * 1000)}-{suffix}"
    return f"{prefix}-{request_id}" if prefix else request_id


class RequestVectorStore:
    def __init__(self) -> None:
        self._stores: Dict[str, List[VectorRecord]] = {}

    def __len__(self) -> int:
        return len(self._stores)

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._stores

    def active_requests(self) -> List[str]:
        return list(self._stores)

    def put(self, request_id: str, records: Sequence[VectorRecord]) -> None:
        """Store ``records`` for ``request_id``, replacing anything stored before."""
        self._stores[request_id] = list(records)
        logger.info("Stored %d embeddings for request %s", len(records), request_id)

    def search(self, request_id: str, query_vector: Sequence[float], top_k: int = 3) -> List[RankedChunk]:
        """Return at most ``top_k`` records, best cosine score first."""
        records = self._stores.get(request_id)
        if records is None:
            raise NoStoreForRequest(request_id)

        top = rank_records(query_vector, records)[: max(0, top_k)]
        logger.info(
            "Found %d relevant chunks with scores: %s",
            len(top), ", ".join(f"{c.score:.3f}" for c in top),
        )
        return top

    def release(self, request_id: str) -> None:
        """Drop the entry for ``request_id``. Safe to call more than once."""
        if self._stores.pop(request_id, None) is not None:
            logger.info("Cleaned up memory for request %s", request_id)

    @contextmanager
    def request_scope(self, request_id: str) -> Iterator[str]:
        """Release the request's entry on every exit path."""
        try:
            yield request_id
        finally:
            self.release(request_id)
