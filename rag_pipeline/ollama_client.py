"""
ollama_client.py
================
Thin HTTP client for an Ollama-compatible model server.

Endpoints used:
  POST /api/embeddings  {model, prompt}                → {embedding: [float]}
  POST /api/generate    {model, prompt, stream=false}  → {response: str}
  GET  /api/tags                                       → {models: [{name}]}

Transport failures and payload failures are classified separately so callers
can tell "the backend is down" from "the backend answered nothing useful".
Generation calls carry no timeout. The availability probe has a total
deadline of ``probe_timeout`` seconds; past it the call is abandoned and the
server reported unavailable.
"""

from __future__ import annotations

import json
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from typing import Any, List, Optional

import requests

from rag_pipeline.errors import (
    BadModelResponse,
    InvalidResponse,
    ServiceUnavailable,
    ServiceUnreachable,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:11434"
PROBE_TIMEOUT_SEC = 5.0

# one byte per read: the probe deadline is checked between reads
_PROBE_READ_BYTES = 1

_probe_pool = ThreadPoolExecutor(max_workers=4, thread_name_prefix="ollama-probe")


@dataclass
class OllamaStatus:
    available: bool
    models: List[str] = field(default_factory=list)


class OllamaClient:
    """Blocking client over a shared ``requests.Session``."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        session: Optional[requests.Session] = None,
        probe_timeout: float = PROBE_TIMEOUT_SEC,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.probe_timeout = probe_timeout

    # ------------------------------------------------------------------
    # Embeddings
    # ------------------------------------------------------------------

    def embed(self, model: str, prompt: str) -> List[float]:
        url = f"{self.base_url}/api/embeddings"
        try:
            resp = self.session.post(url, json={"model": model, "prompt": prompt})
        except requests.RequestException as exc:
            raise ServiceUnavailable(
                f"Cannot connect to Ollama. Make sure Ollama is running on {self.base_url} ({exc})"
            ) from exc

        if not resp.ok:
            raise InvalidResponse(f"Ollama API error: {resp.status_code} {resp.reason}")

        data = _json_or_none(resp)
        embedding = data.get("embedding") if isinstance(data, dict) else None
        if not isinstance(embedding, list) or not embedding:
            raise InvalidResponse("Invalid embedding response from Ollama")
        try:
            return [float(x) for x in embedding]
        except (TypeError, ValueError) as exc:
            raise InvalidResponse("Embedding contains non-numeric values") from exc

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate(self, model: str, prompt: str) -> str:
        url = f"{self.base_url}/api/generate"
        try:
            resp = self.session.post(
                url, json={"model": model, "prompt": prompt, "stream": False}
            )
        except requests.RequestException as exc:
            raise ServiceUnreachable(
                f"Cannot connect to Ollama. Make sure Ollama is running on {self.base_url} ({exc})"
            ) from exc

        if not resp.ok:
            raise BadModelResponse(f"Model {model} returned {resp.status_code}")

        data = _json_or_none(resp)
        if data is None:
            raise BadModelResponse(f"Model {model} returned a non-JSON body")
        text = data.get("response") if isinstance(data, dict) else None
        if not isinstance(text, str) or not text.strip():
            raise BadModelResponse(f"Model {model} returned an empty response")
        return text.strip()

    # ------------------------------------------------------------------
    # Availability probe
    # ------------------------------------------------------------------

    def list_models(self) -> List[str]:
        """GET /api/tags, read incrementally and dropped once the deadline passes."""
        deadline = time.monotonic() + self.probe_timeout
        resp = self.session.get(
            f"{self.base_url}/api/tags", timeout=self.probe_timeout, stream=True
        )
        try:
            resp.raise_for_status()
            body = bytearray()
            for piece in resp.iter_content(chunk_size=_PROBE_READ_BYTES):
                body.extend(piece)
                if time.monotonic() > deadline:
                    raise requests.Timeout(f"Ollama probe exceeded {self.probe_timeout:g}s")
        finally:
            resp.close()

        data = json.loads(bytes(body) or b"{}")
        if not isinstance(data, dict):
            raise ValueError("Unexpected /api/tags payload")
        return [m.get("name", "") for m in data.get("models") or [] if isinstance(m, dict)]

    def check_availability(self) -> OllamaStatus:
        """
        Report whether the model server answers, and which models it has.
        Never raises; returns within ``probe_timeout`` seconds.
        """
        future = _probe_pool.submit(self.list_models)
        try:
            models = future.result(timeout=self.probe_timeout)
        except FutureTimeout:
            future.cancel()
            logger.error("Ollama availability check timed out after %gs", self.probe_timeout)
            return OllamaStatus(available=False)
        except (requests.RequestException, ValueError, AttributeError) as exc:
            logger.error("Ollama availability check failed: %s", exc)
            return OllamaStatus(available=False)

        logger.info("Available Ollama models: %s", ", ".join(models))
        return OllamaStatus(available=True, models=models)


def _json_or_none(resp: requests.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return None
