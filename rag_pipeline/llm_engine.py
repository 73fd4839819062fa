"""
llm_engine.py
=============
Answer gateway: the single integration point with the generation model.

Builds the final prompt from a fixed instruction template, then walks an
ordered list of model identifiers. The first model returning a non-empty
response wins; every failure is logged and the next model is tried. When the
list is exhausted, ``AllModelsFailedError`` carries each attempt and the last
cause.

The backing call is injected as ``generate(model, prompt) -> str`` so tests
can script failures deterministically.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Sequence, Tuple

from rag_pipeline.errors import AllModelsFailedError, BadModelResponse, RagError

logger = logging.getLogger(__name__)

GenerateFn = Callable[[str, str], str]

DEFAULT_MODEL = "gemma3:1b"


# ---------------------------------------------------------------------------
# Prompt templates
# ---------------------------------------------------------------------------

DOCUMENT_PROMPT = """You are a helpful assistant that answers questions based on provided context.

Context:
{context}

Question: {question}

Instructions:
- Answer only based on the provided context
- If the context doesn't contain relevant information, say "I cannot find relevant information in the provided context to answer this question."
- Be concise and accurate
- Cite specific parts of the context when possible

Answer:"""

DATASET_PROMPT = """You are a helpful assistant that answers questions about football/soccer teams and matches based on the provided database information.

Database Context:
{context}

Question: {question}

Instructions:
- Answer only based on the provided database context
- If the context doesn't contain relevant information, say "I cannot find relevant information in the database to answer this question."
- Be concise and accurate
- Provide specific details from the database when available
- If asked about match times, competitions, or team details, include them in your response

Answer:"""


def candidate_models(primary: str = DEFAULT_MODEL, fallbacks: Sequence[str] = ()) -> List[str]:
    """Return the ordered, de-duplicated model fallback list."""
    unique: List[str] = []
    for model in [primary, *fallbacks]:
        model = (model or "").strip()
        if model and model not in unique:
            unique.append(model)
    return unique


# ---------------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------------

class AnswerGateway:
    def __init__(self, generate: GenerateFn, models: Sequence[str], template: str = DOCUMENT_PROMPT):
        if not models:
            raise ValueError("AnswerGateway needs at least one model identifier")
        self._generate = generate
        self.models = list(models)
        self.template = template

    def build_prompt(self, question: str, context: str) -> str:
        return self.template.format(context=context, question=question)

    def complete(self, prompt: str) -> str:
        """Send ``prompt`` down the fallback chain and return the first answer."""
        attempts: List[Tuple[str, RagError]] = []
        for model in self.models:
            logger.info("Trying model: %s", model)
            try:
                text = self._generate(model, prompt)
            except RagError as exc:
                logger.warning("Model %s failed: %s", model, exc)
                attempts.append((model, exc))
                continue

            text = (text or "").strip()
            if text:
                logger.info("Successfully used model: %s", model)
                return text

            logger.warning("Model %s returned an empty response", model)
            attempts.append((model, BadModelResponse(f"Model {model} returned an empty response")))

        raise AllModelsFailedError(attempts)

    def answer(self, question: str, context: str) -> str:
        return self.complete(self.build_prompt(question, context))
