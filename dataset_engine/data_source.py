"""
data_source.py
==============
Structured-data capability used by the dataset retrieval strategy.

The answering core only relies on the ``MatchDataSource`` protocol: plain
``TeamRecord`` / ``MatchRecord`` values and counts. ``SqlMatchRepository``
implements it on SQLAlchemy; every call opens and closes its own session.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Iterable, List, Mapping, Optional, Protocol, Sequence

from sqlalchemy import create_engine, func, or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from dataset_engine.models import Base, Match, Team

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Records handed to the core
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TeamRecord:
    name: str
    image: Optional[str] = None


@dataclass(frozen=True)
class MatchRecord:
    home_team_name: str
    away_team_name: str
    competition_name: Optional[str] = None
    match_time: Optional[str] = None
    competition_link: Optional[str] = None
    match_link: Optional[str] = None


class MatchDataSource(Protocol):
    def find_team_by_name(self, name: str) -> Optional[TeamRecord]: ...
    def find_matches_by_team(self, name: str, limit: int) -> List[MatchRecord]: ...
    def find_matches_by_competition(self, competition: str, limit: int) -> List[MatchRecord]: ...
    def find_upcoming_matches(self, now: datetime, limit: int) -> List[MatchRecord]: ...
    def find_matches_between(self, start: date, end: date, limit: int) -> List[MatchRecord]: ...
    def list_teams(self, limit: int) -> List[TeamRecord]: ...
    def list_matches(self, limit: int) -> List[MatchRecord]: ...
    def count_teams(self) -> int: ...
    def count_matches(self) -> int: ...
    def list_team_names(self) -> List[str]: ...
    def list_competitions(self) -> List[str]: ...


def _team_record(team: Team) -> TeamRecord:
    return TeamRecord(name=team.name, image=team.image)


def _iso_utc(moment: datetime) -> str:
    # match_time is stored as naive UTC ISO text
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment.isoformat(timespec="seconds")


def _match_record(match: Match) -> MatchRecord:
    return MatchRecord(
        home_team_name   = match.home_team_name,
        away_team_name   = match.away_team_name,
        competition_name = match.competition_name,
        match_time       = match.match_time,
        competition_link = match.competition_link,
        match_link       = match.match_link,
    )


# ---------------------------------------------------------------------------
# Engine / session helpers
# ---------------------------------------------------------------------------

def create_db_engine(database_url: str) -> Engine:
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url.rstrip("/") == "sqlite:":
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url, pool_pre_ping=True)


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    Base.metadata.create_all(engine)


# ---------------------------------------------------------------------------
# SQL implementation
# ---------------------------------------------------------------------------

class SqlMatchRepository:
    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def find_team_by_name(self, name: str) -> Optional[TeamRecord]:
        """Exact (case-insensitive) match first, then the shortest substring match."""
        needle = (name or "").strip().lower()
        if not needle:
            return None
        with self._session_factory() as session:
            team = session.scalars(
                select(Team).where(func.lower(Team.name) == needle)
            ).first()
            if team is None:
                team = session.scalars(
                    select(Team)
                    .where(Team.name.icontains(needle, autoescape=True))
                    .order_by(func.length(Team.name), Team.name)
                ).first()
            return _team_record(team) if team else None

    def find_matches_by_team(self, name: str, limit: int) -> List[MatchRecord]:
        needle = (name or "").strip().lower()
        if not needle:
            return []
        stmt = (
            select(Match)
            .where(or_(
                Match.home_team_name.icontains(needle, autoescape=True),
                Match.away_team_name.icontains(needle, autoescape=True),
            ))
            .order_by(Match.match_time, Match.id)
            .limit(limit)
        )
        return self._matches(stmt)

    def find_matches_by_competition(self, competition: str, limit: int) -> List[MatchRecord]:
        needle = (competition or "").strip().lower()
        if not needle:
            return []
        stmt = (
            select(Match)
            .where(Match.competition_name.icontains(needle, autoescape=True))
            .order_by(Match.match_time, Match.id)
            .limit(limit)
        )
        return self._matches(stmt)

    def find_upcoming_matches(self, now: datetime, limit: int) -> List[MatchRecord]:
        """Matches after ``now``; an aware ``now`` is compared in UTC."""
        stmt = (
            select(Match)
            .where(Match.match_time > _iso_utc(now))
            .order_by(Match.match_time.asc(), Match.id)
            .limit(limit)
        )
        return self._matches(stmt)

    def find_matches_between(self, start: date, end: date, limit: int) -> List[MatchRecord]:
        """Matches whose ``match_time`` falls on any day from ``start`` to ``end`` inclusive."""
        upper = (end + timedelta(days=1)).isoformat()
        stmt = (
            select(Match)
            .where(Match.match_time >= start.isoformat(), Match.match_time < upper)
            .order_by(Match.match_time.asc(), Match.id)
            .limit(limit)
        )
        return self._matches(stmt)

    def list_teams(self, limit: int) -> List[TeamRecord]:
        with self._session_factory() as session:
            teams = session.scalars(select(Team).order_by(Team.id).limit(limit)).all()
            return [_team_record(t) for t in teams]

    def list_matches(self, limit: int) -> List[MatchRecord]:
        return self._matches(select(Match).order_by(Match.id).limit(limit))

    def count_teams(self) -> int:
        with self._session_factory() as session:
            return int(session.scalar(select(func.count()).select_from(Team)) or 0)

    def count_matches(self) -> int:
        with self._session_factory() as session:
            return int(session.scalar(select(func.count()).select_from(Match)) or 0)

    def list_team_names(self) -> List[str]:
        with self._session_factory() as session:
            return list(session.scalars(select(Team.name).order_by(Team.name)).all())

    def list_competitions(self) -> List[str]:
        with self._session_factory() as session:
            rows = session.scalars(
                select(Match.competition_name)
                .where(Match.competition_name.is_not(None))
                .distinct()
                .order_by(Match.competition_name)
            ).all()
            return [r for r in rows if r]

    def _matches(self, stmt) -> List[MatchRecord]:
        with self._session_factory() as session:
            return [_match_record(m) for m in session.scalars(stmt).all()]


# ---------------------------------------------------------------------------
# Seeding
# ---------------------------------------------------------------------------

def seed_dataset(
    session_factory: Callable[[], Session],
    teams: Iterable[Mapping],
    matches: Sequence[Mapping],
) -> int:
    """
    Insert teams and matches (plain dicts with ORM column names). Match rows
    are linked to teams by name. Returns the number of rows inserted.
    """
    inserted = 0
    with session_factory() as session:
        by_name = {}
        for row in teams:
            team = Team(name=row["name"], image=row.get("image"))
            session.add(team)
            by_name[team.name] = team
            inserted += 1
        session.flush()

        for row in matches:
            match = Match(**dict(row))
            home = by_name.get(match.home_team_name)
            away = by_name.get(match.away_team_name)
            match.home_team_id = home.id if home else None
            match.away_team_id = away.id if away else None
            session.add(match)
            inserted += 1

        session.commit()
    logger.info("Seeded %d dataset rows", inserted)
    return inserted
