"""Shared fixtures: in-memory database and match builders."""

from datetime import datetime
from typing import Optional

import pytest_asyncio

from matchcast.database import build_engine, build_session_factory, init_db
from matchcast.models import Match


@pytest_asyncio.fixture
async def engine():
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


def make_match(
    match_id: int,
    home: Optional[str],
    away: Optional[str],
    date: Optional[datetime],
    home_goals: Optional[int] = None,
    away_goals: Optional[int] = None,
    sport: str = "football",
    home_team_id: Optional[int] = None,
    away_team_id: Optional[int] = None,
    status: str = "FT",
) -> Match:
    return Match(
        match_id=match_id,
        sport=sport,
        date=date,
        status=status,
        home_team_id=home_team_id,
        away_team_id=away_team_id,
        home_team=home,
        away_team=away,
        home_goals=home_goals,
        away_goals=away_goals,
    )
