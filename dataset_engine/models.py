"""
models.py
=========
SQLAlchemy ORM models for the football dataset (teams and matches).

``match_time`` is stored as an ISO-8601 string; ISO strings sort
chronologically, so range filters compare them directly.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class AuditMixin:
    """Integer primary key plus who/when audit columns."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_by: Mapped[str] = mapped_column(String(255), default="admin@admin.com", nullable=False)
    updated_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


class Team(AuditMixin, Base):
    __tablename__ = "teams"

    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    image: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

    home_matches: Mapped[List["Match"]] = relationship(
        back_populates="home_team", foreign_keys="Match.home_team_id"
    )
    away_matches: Mapped[List["Match"]] = relationship(
        back_populates="away_team", foreign_keys="Match.away_team_id"
    )

    def __repr__(self) -> str:
        return f"Team(id={self.id!r}, name={self.name!r})"


class Match(AuditMixin, Base):
    __tablename__ = "matches"

    home_team_name: Mapped[str] = mapped_column(String(255), nullable=False)
    away_team_name: Mapped[str] = mapped_column(String(255), nullable=False)
    home_team_image: Mapped[str] = mapped_column(String(1024), nullable=False, default="")
    away_team_image: Mapped[str] = mapped_column(String(1024), nullable=False, default="")
    competition_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    match_time: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    competition_link: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    match_link: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

    home_team_id: Mapped[Optional[int]] = mapped_column(ForeignKey("teams.id"), nullable=True)
    away_team_id: Mapped[Optional[int]] = mapped_column(ForeignKey("teams.id"), nullable=True)

    home_team: Mapped[Optional[Team]] = relationship(
        back_populates="home_matches", foreign_keys=[home_team_id]
    )
    away_team: Mapped[Optional[Team]] = relationship(
        back_populates="away_matches", foreign_keys=[away_team_id]
    )

    def __repr__(self) -> str:
        return f"Match(id={self.id!r}, {self.home_team_name!r} vs {self.away_team_name!r})"
