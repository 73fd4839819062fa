"""
context_formatter.py
====================
Render a dataset ContextBundle as the plain-text context handed to the
answer gateway. Pure: no I/O, no side effects.

Empty or unrecognised data renders a fixed sentinel sentence, never an empty
string, so the model is told explicitly that nothing was found.
"""

from __future__ import annotations

from typing import Iterable, List

from dataset_engine.data_source import MatchRecord, TeamRecord
from dataset_engine.dataset_retriever import GeneralSnapshot, TeamMatches
from dataset_engine.query_classifier import QueryType
from rag_pipeline.retriever import ContextBundle

NO_DATA_SENTINEL = "No relevant data found in the database."
NO_DATA_FOR_QUESTION = "No relevant data found for your question."


def _match_line(match: MatchRecord, with_time: bool = True, with_competition: bool = True) -> str:
    line = f"- {match.home_team_name} vs {match.away_team_name}"
    if with_time and match.match_time:
        line += f" on {match.match_time}"
    if with_competition and match.competition_name:
        line += f" ({match.competition_name})"
    return line


def _match_block(title: str, matches: Iterable[MatchRecord], **kw) -> str:
    lines = [f"{title}:"]
    lines.extend(_match_line(m, **kw) for m in matches)
    return "\n".join(lines)


def _team_matches(entries: List[TeamMatches]) -> str:
    blocks: List[str] = []
    for index, entry in enumerate(entries, start=1):
        lines = [f"Team {index}: {entry.team.name if entry.team else entry.name}"]
        if entry.team and entry.team.image:
            lines.append(f"Image: {entry.team.image}")
        if entry.matches:
            lines.append("Matches:")
            lines.extend(_match_line(m) for m in entry.matches)
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def _all_teams(teams: List[TeamRecord]) -> str:
    lines = ["All Teams:"]
    for team in teams:
        line = f"- {team.name}"
        if team.image:
            line += f" (Image: {team.image})"
        lines.append(line)
    return "\n".join(lines)


def _general(snapshot: GeneralSnapshot) -> str:
    parts: List[str] = []
    if snapshot.teams:
        parts.append("Teams:\n" + "\n".join(f"- {t.name}" for t in snapshot.teams))
    if snapshot.matches:
        parts.append(_match_block("Recent Matches", snapshot.matches, with_time=False))
    return "\n\n".join(parts) if parts else NO_DATA_SENTINEL


def format_dataset_context(bundle: ContextBundle) -> str:
    if bundle is None or bundle.data is None or bundle.data == []:
        return NO_DATA_SENTINEL

    kind, data = bundle.type, bundle.data

    if kind == QueryType.TEAM_MATCHES.value:
        return _team_matches(data)
    if kind == QueryType.UPCOMING_MATCHES.value:
        return _match_block("Upcoming Matches", data)
    if kind == QueryType.COMPETITION_MATCHES.value:
        return _match_block("Competition Matches", data, with_competition=False)
    if kind == QueryType.DATE_RANGE_MATCHES.value:
        return _match_block("Matches in Date Range", data)
    if kind == QueryType.TEAMS_COUNT.value:
        return f"Total number of teams in the database: {data}"
    if kind == QueryType.MATCHES_COUNT.value:
        return f"Total number of matches in the database: {data}"
    if kind == QueryType.ALL_TEAMS.value:
        return _all_teams(data)
    if kind == QueryType.ALL_MATCHES.value:
        return _match_block("All Matches", data)
    if kind == QueryType.GENERAL.value:
        return _general(data)
    return NO_DATA_FOR_QUESTION
