"""
errors.py
=========
Exception hierarchy shared by the document and dataset question-answering
paths.

  RagError
   ├── InputError                  bad question / empty document (HTTP 400)
   │    └── EmptyInputError
   ├── UpstreamUnavailable         model server cannot be reached (HTTP 503)
   │    ├── ServiceUnavailable     … embedding endpoint
   │    └── ServiceUnreachable     … generation endpoint
   ├── UpstreamInvalidResponse     model server answered nothing usable (HTTP 502)
   │    ├── InvalidResponse        … embedding endpoint
   │    └── BadModelResponse       … generation endpoint
   ├── EmbeddingFailure            one element of an embedding batch failed
   ├── AllModelsFailedError        every model of the fallback chain failed
   ├── NoStoreForRequest           vector store searched outside its lifecycle
   └── DimensionMismatchError      vectors of different length compared
"""

from __future__ import annotations

from typing import List, Optional, Tuple


class RagError(Exception):
    """Base class for every error raised by the answering core."""


# ---------------------------------------------------------------------------
# Caller input
# ---------------------------------------------------------------------------

class InputError(RagError, ValueError):
    """Invalid caller input. Surfaced immediately, never retried."""


class EmptyInputError(InputError):
    """A question or document carries no usable text."""


# ---------------------------------------------------------------------------
# Model server
# ---------------------------------------------------------------------------

class UpstreamUnavailable(RagError):
    """The model server could not be reached at the transport level."""


class ServiceUnavailable(UpstreamUnavailable):
    """The embedding endpoint is unreachable."""


class ServiceUnreachable(UpstreamUnavailable):
    """The generation endpoint is unreachable."""


class UpstreamInvalidResponse(RagError):
    """The model server answered, but the payload is unusable."""


class InvalidResponse(UpstreamInvalidResponse):
    """The embedding endpoint returned a malformed or absent vector."""


class BadModelResponse(UpstreamInvalidResponse):
    """The generation endpoint returned an error status or an empty response."""


class EmbeddingFailure(RagError):
    """An embedding batch was aborted at ``index``; ``cause`` is the classified error."""

    def __init__(self, index: int, cause: RagError):
        self.index = index
        self.cause = cause
        super().__init__(f"Embedding failed for item {index}: {cause}")

    @property
    def unavailable(self) -> bool:
        return isinstance(self.cause, UpstreamUnavailable)


class AllModelsFailedError(RagError):
    """Every model identifier in the fallback chain failed."""

    def __init__(self, attempts: List[Tuple[str, RagError]]):
        self.attempts = list(attempts)
        self.last_cause: Optional[RagError] = attempts[-1][1] if attempts else None
        summary = " | ".join(f"{model}: {exc}" for model, exc in self.attempts)
        super().__init__(f"All models failed. {summary}".strip())

    @property
    def unreachable(self) -> bool:
        return isinstance(self.last_cause, UpstreamUnavailable)


# ---------------------------------------------------------------------------
# Vector store
# ---------------------------------------------------------------------------

class NoStoreForRequest(RagError, KeyError):
    """``search`` called before ``put`` or after ``release`` for a request id."""

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"No embeddings found for request {request_id}")

    def __str__(self) -> str:
        return self.args[0]


class DimensionMismatchError(RagError, ValueError):
    """Two vectors of different dimensionality were compared."""
