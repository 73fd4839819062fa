"""
similarity.py
=============
Cosine scoring and ranking of stored vectors against a query vector.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from rag_pipeline.errors import DimensionMismatchError

RELEVANCE_THRESHOLD = 0.1


@dataclass(frozen=True)
class VectorRecord:
    text: str
    embedding: List[float]


@dataclass(frozen=True)
class RankedChunk:
    text: str
    score: float


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    dot(a, b) / (|a| * |b|), or 0.0 when either vector has zero norm.

    A null vector has no direction, so it ranks last instead of failing.
    Vectors must be non-empty and of equal length.
    """
    if a is None or b is None or len(a) == 0 or len(b) == 0:
        raise DimensionMismatchError("Invalid vectors for similarity calculation")
    if len(a) != len(b):
        raise DimensionMismatchError(f"Vector dimensions differ: {len(a)} != {len(b)}")

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    na = float(np.linalg.norm(va))
    nb = float(np.linalg.norm(vb))
    if na == 0.0 or nb == 0.0:
        return 0.0

    score = float(np.dot(va, vb)) / (na * nb)
    return max(min(score, 1.0), -1.0)


def rank_records(query_vector: Sequence[float], records: Sequence[VectorRecord]) -> List[RankedChunk]:
    """Score every record and sort descending; equal scores keep insertion order."""
    scored = [
        RankedChunk(text=record.text, score=cosine_similarity(query_vector, record.embedding))
        for record in records
    ]
    # sorted() is stable
    return sorted(scored, key=lambda chunk: chunk.score, reverse=True)


def is_relevant(ranked: Sequence[RankedChunk], threshold: float = RELEVANCE_THRESHOLD) -> bool:
    """False when nothing was ranked or the best score is below ``threshold``."""
    return bool(ranked) and ranked[0].score >= threshold
