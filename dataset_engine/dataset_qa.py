"""
dataset_qa.py
=============
Answer a question from the structured football dataset.

  1. Classify the question           (query_classifier)
  2. Fetch a bounded set of records  (dataset_retriever)
  3. Render them as text             (context_formatter)
  4. Ask the model                   (rag_pipeline.llm_engine)

An empty fetch still reaches the model, with the "no relevant data" sentinel
as context.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from dataset_engine.context_formatter import format_dataset_context
from dataset_engine.query_classifier import QueryClassifier
from rag_pipeline.errors import EmptyInputError
from rag_pipeline.llm_engine import AnswerGateway
from rag_pipeline.retriever import RetrievalStrategy
from rag_pipeline.vector_store import new_request_id

logger = logging.getLogger(__name__)


@dataclass
class DatasetAnswer:
    answer: str
    query_type: str
    confidence: float
    context: Optional[str] = None


class DatasetQAService:
    def __init__(self, classifier: QueryClassifier, retriever: RetrievalStrategy, gateway: AnswerGateway):
        self.classifier = classifier
        self.retriever = retriever
        self.gateway = gateway

    def ask(self, question: str, include_context: bool = False) -> DatasetAnswer:
        if not question or not question.strip():
            raise EmptyInputError("Question is required and cannot be empty")

        request_id = new_request_id("db")
        logger.info("Starting database query for request %s: %s", request_id, question)

        try:
            logger.info("Step 1: Analyzing question...")
            classification = self.classifier.classify(question)

            logger.info("Step 2: Fetching relevant data from database...")
            bundle = self.retriever.retrieve(question, classification)

            logger.info("Step 3: Formatting data for AI context...")
            context = format_dataset_context(bundle)

            logger.info("Step 4: Getting AI response...")
            answer = self.gateway.answer(question, context)
        except Exception as exc:
            logger.error("Database query request %s failed: %s", request_id, exc)
            raise

        logger.info("Successfully completed database query for request %s", request_id)
        return DatasetAnswer(
            answer     = answer,
            query_type = classification.query_type.value,
            confidence = classification.confidence,
            context    = context if include_context else None,
        )
