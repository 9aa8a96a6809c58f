"""Database models using SQLModel."""

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, Column, DateTime
from sqlmodel import Field, SQLModel


class Match(SQLModel, table=True):
    """
    One football fixture or basketball game.

    match_id carries the sport offset (see matchcast.sports), so provider ids
    from both sports share a single key space.
    """

    __tablename__ = "matches"

    match_id: int = Field(
        sa_column=Column(BigInteger, primary_key=True, autoincrement=False),
        description="Offset-encoded provider id",
    )
    sport: str = Field(default="football", max_length=20, index=True)
    # Naive UTC
    date: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime, index=True, nullable=True),
        description="Kickoff (naive UTC)",
    )
    status: Optional[str] = Field(default=None, max_length=30, description="NS, FT, Q1, ...")

    home_team_id: Optional[int] = Field(default=None, index=True)
    away_team_id: Optional[int] = Field(default=None, index=True)
    home_team: Optional[str] = Field(default=None, max_length=255, index=True)
    away_team: Optional[str] = Field(default=None, max_length=255, index=True)

    # Goals for football, points for basketball. NULL if not played.
    home_goals: Optional[int] = Field(default=None)
    away_goals: Optional[int] = Field(default=None)


class MatchFeatures(SQLModel, table=True):
    """Cached rolling features for one match. Overwritten on every recomputation."""

    __tablename__ = "match_features"

    match_id: int = Field(
        sa_column=Column(BigInteger, primary_key=True, autoincrement=False),
    )
    sport: str = Field(default="football", max_length=20)
    home_form: float = Field(default=0.0, description="Share of recent matches won (0-1)")
    away_form: float = Field(default=0.0, description="Share of recent matches won (0-1)")
    home_goals_avg: float = Field(default=0.0, description="Mean goals/points scored")
    away_goals_avg: float = Field(default=0.0, description="Mean goals/points scored")
    computed_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False),
    )
