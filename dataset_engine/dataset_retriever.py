"""
dataset_retriever.py
====================
Dataset retrieval strategy: classification → one bounded fetch → ContextBundle.

High-confidence classifications map straight to a fetch. Below
``PLAN_BELOW_CONFIDENCE`` the fetch planner (if configured) picks the
operation; a missing or malformed plan falls back to the direct mapping.
Every listing is capped. A team resolved from several name tokens is listed once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional

from dataset_engine.data_source import MatchDataSource, MatchRecord, TeamRecord
from dataset_engine.fetch_planner import FetchOperation, FetchPlan, FetchPlanner
from dataset_engine.query_classifier import QueryClassification, QueryType
from rag_pipeline.retriever import BUNDLE_NO_DATA, ContextBundle

logger = logging.getLogger(__name__)

PLAN_BELOW_CONFIDENCE = 0.7

MAX_LISTING_ROWS = 50
GENERAL_TEAM_ROWS = 10
GENERAL_MATCH_ROWS = 20


@dataclass(frozen=True)
class TeamMatches:
    name: str
    team: Optional[TeamRecord] = None
    matches: List[MatchRecord] = field(default_factory=list)


@dataclass(frozen=True)
class GeneralSnapshot:
    teams: List[TeamRecord] = field(default_factory=list)
    matches: List[MatchRecord] = field(default_factory=list)


_NO_DATA = ContextBundle(type=BUNDLE_NO_DATA, data=None)


class DatasetRetriever:
    def __init__(
        self,
        source: MatchDataSource,
        planner: Optional[FetchPlanner] = None,
        max_rows: int = MAX_LISTING_ROWS,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.source = source
        self.planner = planner
        self.max_rows = max_rows
        self.clock = clock

    def retrieve(self, question: str, classification: Optional[QueryClassification] = None) -> ContextBundle:
        if classification is None:
            raise ValueError("DatasetRetriever needs a classification")

        if self.planner is not None and classification.confidence < PLAN_BELOW_CONFIDENCE:
            plan = self.planner.plan(question, classification)
            if plan is not None:
                return self._fetch_for_plan(plan)
            logger.info("Falling back to direct mapping for %s", classification.query_type.value)

        return self._fetch_for_classification(classification)

    # ------------------------------------------------------------------
    # Direct mapping
    # ------------------------------------------------------------------

    def _fetch_for_classification(self, c: QueryClassification) -> ContextBundle:
        params = c.parameters
        qtype = c.query_type
        logger.info("Fetching data for query type: %s, parameters: %s", qtype.value, params)

        if qtype == QueryType.TEAM_MATCHES:
            if not params.team_names:
                return _NO_DATA
            return self._team_matches(params.team_names)

        if qtype == QueryType.UPCOMING_MATCHES:
            return self._bundle(qtype, self.source.find_upcoming_matches(self.clock(), self.max_rows))

        if qtype == QueryType.COMPETITION_MATCHES:
            if not params.competitions:
                return _NO_DATA
            rows: List[MatchRecord] = []
            for competition in params.competitions:
                rows.extend(self.source.find_matches_by_competition(competition, self.max_rows))
            return self._bundle(qtype, rows[: self.max_rows])

        if qtype == QueryType.DATE_RANGE_MATCHES:
            if params.date_from is None:
                return _NO_DATA
            end = params.date_to or params.date_from
            return self._bundle(qtype, self.source.find_matches_between(params.date_from, end, self.max_rows))

        if qtype == QueryType.TEAMS_COUNT:
            return ContextBundle(type=qtype.value, data=self.source.count_teams())

        if qtype == QueryType.MATCHES_COUNT:
            return ContextBundle(type=qtype.value, data=self.source.count_matches())

        if qtype == QueryType.ALL_TEAMS:
            return self._bundle(qtype, self.source.list_teams(self.max_rows))

        if qtype == QueryType.ALL_MATCHES:
            return self._bundle(qtype, self.source.list_matches(self.max_rows))

        snapshot = GeneralSnapshot(
            teams   = self.source.list_teams(GENERAL_TEAM_ROWS),
            matches = self.source.list_matches(GENERAL_MATCH_ROWS),
        )
        return ContextBundle(type=QueryType.GENERAL.value, data=snapshot)

    # ------------------------------------------------------------------
    # Model-chosen plan
    # ------------------------------------------------------------------

    def _fetch_for_plan(self, plan: FetchPlan) -> ContextBundle:
        op = plan.operation
        logger.info("Fetching data for planned operation: %s", op.value)

        if op == FetchOperation.TEAM_BY_NAME:
            team = self.source.find_team_by_name(plan.name or "")
            if team is None:
                return _NO_DATA
            return ContextBundle(
                type=QueryType.TEAM_MATCHES.value,
                data=[TeamMatches(name=team.name, team=team)],
            )
        if op == FetchOperation.MATCHES_BY_TEAM:
            return self._team_matches((plan.name or "",))
        if op == FetchOperation.MATCHES_BY_COMPETITION:
            rows = self.source.find_matches_by_competition(plan.competition or "", self.max_rows)
            return self._bundle(QueryType.COMPETITION_MATCHES, rows)
        if op == FetchOperation.UPCOMING_MATCHES:
            rows = self.source.find_upcoming_matches(self.clock(), self.max_rows)
            return self._bundle(QueryType.UPCOMING_MATCHES, rows)
        if op == FetchOperation.MATCHES_BETWEEN:
            rows = self.source.find_matches_between(plan.date_from, plan.date_to, self.max_rows)
            return self._bundle(QueryType.DATE_RANGE_MATCHES, rows)
        if op == FetchOperation.ALL_TEAMS:
            return self._bundle(QueryType.ALL_TEAMS, self.source.list_teams(self.max_rows))
        if op == FetchOperation.ALL_MATCHES:
            return self._bundle(QueryType.ALL_MATCHES, self.source.list_matches(self.max_rows))
        if op == FetchOperation.COUNT_TEAMS:
            return ContextBundle(type=QueryType.TEAMS_COUNT.value, data=self.source.count_teams())
        return ContextBundle(type=QueryType.MATCHES_COUNT.value, data=self.source.count_matches())

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _team_matches(self, names) -> ContextBundle:
        entries: List[TeamMatches] = []
        seen = set()
        for name in names:
            team = self.source.find_team_by_name(name)
            lookup = team.name if team else name
            if lookup.lower() in seen:
                continue
            seen.add(lookup.lower())
            matches = self.source.find_matches_by_team(lookup, self.max_rows)
            if team is None and not matches:
                continue
            entries.append(TeamMatches(name=lookup, team=team, matches=matches))
        return self._bundle(QueryType.TEAM_MATCHES, entries)

    @staticmethod
    def _bundle(qtype: QueryType, rows: list) -> ContextBundle:
        if not rows:
            return _NO_DATA
        return ContextBundle(type=qtype.value, data=rows)
