"""
fetch_planner.py
================
Ask the generation model to pick one data-fetch operation for a question the
rule tier was unsure about.

The model chooses from the fixed FetchOperation set and must reply with one
strict JSON object. Any reply that does not validate yields ``None`` and the
caller falls back to the classification's direct mapping.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Callable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from dataset_engine.query_classifier import QueryClassification, strip_code_fences
from rag_pipeline.errors import RagError

logger = logging.getLogger(__name__)


class FetchOperation(str, Enum):
    TEAM_BY_NAME           = "team_by_name"
    MATCHES_BY_TEAM        = "matches_by_team"
    MATCHES_BY_COMPETITION = "matches_by_competition"
    UPCOMING_MATCHES       = "upcoming_matches"
    MATCHES_BETWEEN        = "matches_between"
    ALL_TEAMS              = "all_teams"
    ALL_MATCHES            = "all_matches"
    COUNT_TEAMS            = "count_teams"
    COUNT_MATCHES          = "count_matches"


_OPERATION_HELP = {
    FetchOperation.TEAM_BY_NAME:           "details of one team (needs name)",
    FetchOperation.MATCHES_BY_TEAM:        "a team's details and matches (needs name)",
    FetchOperation.MATCHES_BY_COMPETITION: "matches of one competition (needs competition)",
    FetchOperation.UPCOMING_MATCHES:       "matches scheduled after now",
    FetchOperation.MATCHES_BETWEEN:        "matches between two dates (needs dateFrom, dateTo)",
    FetchOperation.ALL_TEAMS:              "list of teams",
    FetchOperation.ALL_MATCHES:            "list of matches",
    FetchOperation.COUNT_TEAMS:            "number of teams",
    FetchOperation.COUNT_MATCHES:          "number of matches",
}

_NEEDS_NAME = (FetchOperation.TEAM_BY_NAME, FetchOperation.MATCHES_BY_TEAM)

_PLAN_PROMPT = """You decide which single database operation best answers a question about football teams and matches.

Operations:
{operations}

Known teams: {teams}
Known competitions: {competitions}

Question: {question}

Reply with ONLY one JSON object, no prose:
{{"operation": "<operation name>", "arguments": {{"name": null, "competition": null, "dateFrom": null, "dateTo": null}}}}"""


@dataclass(frozen=True)
class FetchPlan:
    operation: FetchOperation
    name: Optional[str] = None
    competition: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None


class _PlanArguments(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    competition: Optional[str] = None
    date_from: Optional[date] = Field(None, alias="dateFrom")
    date_to: Optional[date] = Field(None, alias="dateTo")


class _PlanReply(BaseModel):
    operation: FetchOperation
    arguments: _PlanArguments = Field(default_factory=_PlanArguments)

    @model_validator(mode="after")
    def _required_arguments(self) -> "_PlanReply":
        args = self.arguments
        if self.operation in _NEEDS_NAME and not (args.name or "").strip():
            raise ValueError(f"{self.operation.value} requires a name")
        if self.operation == FetchOperation.MATCHES_BY_COMPETITION and not (args.competition or "").strip():
            raise ValueError("matches_by_competition requires a competition")
        if self.operation == FetchOperation.MATCHES_BETWEEN:
            if args.date_from is None or args.date_to is None:
                raise ValueError("matches_between requires dateFrom and dateTo")
            if args.date_from > args.date_to:
                raise ValueError("dateFrom is after dateTo")
        return self


def parse_fetch_plan(text: str) -> Optional[FetchPlan]:
    try:
        reply = _PlanReply.model_validate(json.loads(strip_code_fences(text)))
    except (json.JSONDecodeError, ValidationError) as exc:
        logger.warning("Discarding fetch plan: %s", exc)
        return None

    args = reply.arguments
    return FetchPlan(
        operation   = reply.operation,
        name        = args.name.strip() if args.name else None,
        competition = args.competition.strip() if args.competition else None,
        date_from   = args.date_from,
        date_to     = args.date_to,
    )


class FetchPlanner:
    def __init__(self, complete: Callable[[str], str], catalog):
        self.complete = complete
        self.catalog = catalog

    def build_prompt(self, question: str) -> str:
        operations = "\n".join(f"- {op.value}: {_OPERATION_HELP[op]}" for op in FetchOperation)
        teams: List[str] = self.catalog.list_team_names()
        competitions: List[str] = self.catalog.list_competitions()
        return _PLAN_PROMPT.format(
            operations   = operations,
            teams        = ", ".join(teams) or "(none)",
            competitions = ", ".join(competitions) or "(none)",
            question     = question,
        )

    def plan(self, question: str, classification: QueryClassification) -> Optional[FetchPlan]:
        """Return the model's plan, or None when it is unavailable or malformed."""
        try:
            reply = self.complete(self.build_prompt(question))
        except RagError as exc:
            logger.warning("Fetch planning unavailable for %s question: %s",
                           classification.query_type.value, exc)
            return None

        plan = parse_fetch_plan(reply)
        if plan is not None:
            logger.info("Fetch plan selected: %s", plan.operation.value)
        return plan
