"""
query_classifier.py
===================
Map a free-text dataset question to a QueryClassification.

Two tiers, deterministic first:

  1. Rule tier — keyword matching on the lower-cased question picks one of
     the QueryType values, extracts parameters, and assigns a fixed
     confidence (explicit rules 0.7–0.9, unmatched default 0.5).

  2. Model tier — optional. When a completion callable and a catalog are
     configured and the rule confidence is below ``refine_below``, the model
     is shown the real team names and competitions and must answer with one
     strict JSON object. The reply is validated with pydantic; anything that
     does not validate (or any upstream failure) is discarded and the rule
     result is returned unchanged.

Team names come from a deliberately simple heuristic: tokens longer than two
characters whose first character is unchanged by upper-casing. It misses
lower-case names and picks up sentence-initial words; callers depend on that
exact behaviour.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Callable, FrozenSet, List, Optional, Protocol, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from rag_pipeline.errors import RagError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------

class QueryType(str, Enum):
    TEAM_MATCHES        = "team_matches"          # entity relationship
    UPCOMING_MATCHES    = "upcoming_matches"      # temporal filter
    COMPETITION_MATCHES = "competition_matches"   # categorical filter
    TEAMS_COUNT         = "teams_count"           # aggregate count
    MATCHES_COUNT       = "matches_count"         # aggregate count
    ALL_TEAMS           = "all_teams"             # full listing
    ALL_MATCHES         = "all_matches"           # full listing
    DATE_RANGE_MATCHES  = "date_range_matches"    # date range
    GENERAL             = "general"


class EntityKind(str, Enum):
    TEAMS   = "teams"
    MATCHES = "matches"


@dataclass(frozen=True)
class QueryParameters:
    team_names: Tuple[str, ...] = ()
    competitions: Tuple[str, ...] = ()
    date_from: Optional[date] = None
    date_to: Optional[date] = None


@dataclass(frozen=True)
class QueryClassification:
    query_type: QueryType
    entities: FrozenSet[EntityKind] = frozenset()
    parameters: QueryParameters = field(default_factory=QueryParameters)
    confidence: float = 0.5
    source: str = "rules"


# ---------------------------------------------------------------------------
# Rule tier
# ---------------------------------------------------------------------------

CONFIDENCE_DEFAULT = 0.5
CONFIDENCE_COUNT = 0.9
CONFIDENCE_LISTING = 0.85
CONFIDENCE_DATE_RANGE = 0.85
CONFIDENCE_FILTER = 0.8
CONFIDENCE_WEAK_FILTER = 0.7

COMPETITION_KEYWORDS = (
    "premier league",
    "champions league",
    "europa league",
    "world cup",
    "euro",
    "copa",
)

_ISO_DATE = re.compile(r"\b(\d{4}-\d{2}-\d{2})\b")

_TEAMS = frozenset({EntityKind.TEAMS})
_MATCHES = frozenset({EntityKind.MATCHES})
_TEAMS_AND_MATCHES = frozenset({EntityKind.TEAMS, EntityKind.MATCHES})


def extract_team_names(question: str) -> List[str]:
    return [
        word for word in question.split(" ")
        if len(word) > 2 and word[0] == word[0].upper()
    ]


def extract_competition_names(question: str) -> List[str]:
    lower = question.lower()
    return [keyword for keyword in COMPETITION_KEYWORDS if keyword in lower]


def extract_dates(question: str) -> List[date]:
    found: List[date] = []
    for raw in _ISO_DATE.findall(question):
        try:
            found.append(date.fromisoformat(raw))
        except ValueError:
            logger.debug("Ignoring invalid date %r in question", raw)
    return found


def _mentions_match(lower: str) -> bool:
    return "match" in lower or "game" in lower


def classify_by_rules(question: str) -> QueryClassification:
    """Deterministic keyword classification. First matching rule wins."""
    lower = question.lower()

    if "team" in lower and _mentions_match(lower):
        names = tuple(extract_team_names(question))
        return QueryClassification(
            query_type = QueryType.TEAM_MATCHES,
            entities   = _TEAMS_AND_MATCHES,
            parameters = QueryParameters(team_names=names),
            confidence = CONFIDENCE_FILTER if names else CONFIDENCE_WEAK_FILTER,
        )

    dates = extract_dates(question)
    if dates:
        start, end = min(dates), max(dates)
        return QueryClassification(
            query_type = QueryType.DATE_RANGE_MATCHES,
            entities   = _MATCHES,
            parameters = QueryParameters(date_from=start, date_to=end),
            confidence = CONFIDENCE_DATE_RANGE,
        )

    if any(word in lower for word in ("upcoming", "next", "future")):
        return QueryClassification(
            query_type = QueryType.UPCOMING_MATCHES,
            entities   = _MATCHES,
            confidence = CONFIDENCE_FILTER,
        )

    if any(word in lower for word in ("competition", "league", "tournament")):
        competitions = tuple(extract_competition_names(question))
        return QueryClassification(
            query_type = QueryType.COMPETITION_MATCHES,
            entities   = _MATCHES,
            parameters = QueryParameters(competitions=competitions),
            confidence = CONFIDENCE_FILTER if competitions else CONFIDENCE_WEAK_FILTER,
        )

    if any(word in lower for word in ("how many", "count", "total")):
        if "team" in lower:
            return QueryClassification(QueryType.TEAMS_COUNT, _TEAMS, confidence=CONFIDENCE_COUNT)
        if _mentions_match(lower):
            return QueryClassification(QueryType.MATCHES_COUNT, _MATCHES, confidence=CONFIDENCE_COUNT)

    if "all teams" in lower or "list teams" in lower:
        return QueryClassification(QueryType.ALL_TEAMS, _TEAMS, confidence=CONFIDENCE_LISTING)

    if "all matches" in lower or "list matches" in lower:
        return QueryClassification(QueryType.ALL_MATCHES, _MATCHES, confidence=CONFIDENCE_LISTING)

    entities = set()
    if "team" in lower:
        entities.add(EntityKind.TEAMS)
    if _mentions_match(lower):
        entities.add(EntityKind.MATCHES)
    return QueryClassification(
        query_type = QueryType.GENERAL,
        entities   = frozenset(entities),
        confidence = CONFIDENCE_DEFAULT,
    )


# ---------------------------------------------------------------------------
# Model tier
# ---------------------------------------------------------------------------

CompleteFn = Callable[[str], str]


class DatasetCatalog(Protocol):
    def list_team_names(self) -> List[str]: ...
    def list_competitions(self) -> List[str]: ...


_CLASSIFICATION_PROMPT = """You classify questions about a football database of teams and matches.

Known teams: {teams}
Known competitions: {competitions}

Allowed queryType values: {query_types}
Allowed entities values: teams, matches

Question: {question}

Reply with ONLY one JSON object, no prose, using exactly this shape:
{{"queryType": "<one allowed value>", "entities": ["teams" | "matches"], "parameters": {{"teamNames": [], "competitions": [], "dateFrom": null, "dateTo": null}}, "confidence": <number between 0 and 1>}}
Use team and competition names exactly as listed above. Dates use YYYY-MM-DD."""

_CODE_FENCE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")


class _ModelParameters(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    team_names: List[str] = Field(default_factory=list, alias="teamNames")
    competitions: List[str] = Field(default_factory=list)
    date_from: Optional[date] = Field(None, alias="dateFrom")
    date_to: Optional[date] = Field(None, alias="dateTo")

    @model_validator(mode="after")
    def _ordered_dates(self) -> "_ModelParameters":
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("dateFrom is after dateTo")
        return self


class _ModelClassification(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    query_type: QueryType = Field(alias="queryType")
    entities: List[EntityKind] = Field(default_factory=list)
    parameters: _ModelParameters = Field(default_factory=_ModelParameters)
    confidence: float = Field(ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _required_parameters(self) -> "_ModelClassification":
        params = self.parameters
        if self.query_type == QueryType.TEAM_MATCHES and not params.team_names:
            raise ValueError("team_matches requires teamNames")
        if self.query_type == QueryType.COMPETITION_MATCHES and not params.competitions:
            raise ValueError("competition_matches requires competitions")
        if self.query_type == QueryType.DATE_RANGE_MATCHES and params.date_from is None:
            raise ValueError("date_range_matches requires dateFrom")
        return self


def strip_code_fences(text: str) -> str:
    return _CODE_FENCE.sub("", (text or "").strip()).strip()


def build_classification_prompt(question: str, teams: List[str], competitions: List[str]) -> str:
    return _CLASSIFICATION_PROMPT.format(
        teams        = ", ".join(teams) or "(none)",
        competitions = ", ".join(competitions) or "(none)",
        query_types  = ", ".join(t.value for t in QueryType),
        question     = question,
    )


def parse_model_classification(text: str) -> Optional[QueryClassification]:
    """Return a classification for a valid JSON reply, or None for anything else."""
    try:
        payload = json.loads(strip_code_fences(text))
        parsed = _ModelClassification.model_validate(payload)
    except (json.JSONDecodeError, ValidationError) as exc:
        logger.warning("Discarding model classification: %s", exc)
        return None

    params = parsed.parameters
    date_to = params.date_to or params.date_from
    return QueryClassification(
        query_type = parsed.query_type,
        entities   = frozenset(parsed.entities),
        parameters = QueryParameters(
            team_names   = tuple(params.team_names),
            competitions = tuple(params.competitions),
            date_from    = params.date_from,
            date_to      = date_to,
        ),
        confidence = parsed.confidence,
        source     = "model",
    )


class QueryClassifier:
    def __init__(
        self,
        complete: Optional[CompleteFn] = None,
        catalog: Optional[DatasetCatalog] = None,
        refine_below: float = 0.8,
    ):
        self.complete = complete
        self.catalog = catalog
        self.refine_below = refine_below

    @property
    def model_tier_available(self) -> bool:
        return self.complete is not None and self.catalog is not None

    def classify(self, question: str) -> QueryClassification:
        result = classify_by_rules(question)
        logger.info(
            "Rule classification: %s (confidence %.2f, params %s)",
            result.query_type.value, result.confidence, result.parameters,
        )
        if not self.model_tier_available or result.confidence >= self.refine_below:
            return result

        refined = self._classify_with_model(question)
        if refined is None:
            return result

        logger.info(
            "Model classification: %s (confidence %.2f)",
            refined.query_type.value, refined.confidence,
        )
        return refined

    def _classify_with_model(self, question: str) -> Optional[QueryClassification]:
        try:
            prompt = build_classification_prompt(
                question,
                self.catalog.list_team_names(),
                self.catalog.list_competitions(),
            )
            reply = self.complete(prompt)
        except RagError as exc:
            logger.warning("Model classification unavailable: %s", exc)
            return None
        return parse_model_classification(reply)
