"""
chunker.py
==========
Split raw document text into overlapping, sentence-aligned chunks.

Greedy single pass: sentences are appended to the current chunk until the
next one would push it past ``target_size`` characters. The closed chunk's
last ``overlap_words // 10`` words seed the next chunk. A sentence longer than
``target_size`` is kept whole.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List

from rag_pipeline.errors import EmptyInputError, InputError

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 500
DEFAULT_OVERLAP_WORDS = 50
MIN_CHUNK_CHARS = 10

_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


@dataclass(frozen=True)
class Chunk:
    text: str
    sequence: int


def split_sentences(text: str) -> List[str]:
    return _SENTENCE_BOUNDARY.split(text)


def split_text_into_chunks(
    text: str,
    target_size: int = DEFAULT_CHUNK_SIZE,
    overlap_words: int = DEFAULT_OVERLAP_WORDS,
) -> List[Chunk]:
    """
    Parameters
    ----------
    text          : document text, must contain non-whitespace characters
    target_size   : soft upper bound on chunk length in characters (> 0)
    overlap_words : overlap budget; ``overlap_words // 10`` words are carried over

    Returns
    -------
    Chunks numbered from 0 in document order.
    """
    if target_size <= 0:
        raise InputError(f"target_size must be positive, got {target_size}")
    if overlap_words < 0:
        raise InputError(f"overlap_words must be >= 0, got {overlap_words}")
    if not text or not text.strip():
        raise EmptyInputError("Document text is empty")

    carry = overlap_words // 10
    pieces: List[str] = []
    current = ""

    for sentence in split_sentences(text):
        if len(current + sentence) > target_size and current.strip():
            closed = current.strip()
            pieces.append(closed)
            tail = closed.split(" ")[-carry:] if carry > 0 else []
            current = " ".join(tail) + " " if tail else ""
        current += sentence + " "

    if current.strip():
        pieces.append(current.strip())

    kept = [p for p in pieces if len(p) >= MIN_CHUNK_CHARS]
    logger.info("Split text into %d chunks (%d dropped as too short)", len(kept), len(pieces) - len(kept))

    if not kept:
        raise EmptyInputError("No valid text chunks found in document")
    return [Chunk(text=p, sequence=i) for i, p in enumerate(kept)]
