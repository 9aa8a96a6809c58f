"""Read/write access to stored matches and cached features."""

import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from matchcast.models import Match, MatchFeatures
from matchcast.sports import candidate_match_ids

logger = logging.getLogger(__name__)


def _scored_filters():
    return (
        Match.date.isnot(None),
        Match.home_goals.isnot(None),
        Match.away_goals.isnot(None),
    )


class MatchStore:
    """
    Repository over the matches and match_features tables.

    History queries only return scored matches (date and both scores known),
    most recent first.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_match(self, match_id: int) -> Optional[Match]:
        return await self.session.get(Match, match_id)

    async def find_match(self, raw_id) -> Optional[Match]:
        """Resolve a bare id against every sport's offset range."""
        for candidate in candidate_match_ids(raw_id):
            match = await self.get_match(candidate)
            if match is not None:
                return match
        return None

    async def get_team_recent_matches(
        self,
        sport: str,
        team_name: Optional[str],
        exclude_id: Optional[int],
        before_date: Optional[datetime],
        limit: int,
    ) -> list[Match]:
        """Scored matches of a team in one sport, newest first."""
        if not team_name:
            return []

        conditions = [
            Match.sport == sport,
            or_(Match.home_team == team_name, Match.away_team == team_name),
            *_scored_filters(),
        ]
        if exclude_id is not None:
            conditions.append(Match.match_id != exclude_id)
        if before_date is not None:
            conditions.append(Match.date < before_date)

        result = await self.session.execute(
            select(Match).where(*conditions).order_by(Match.date.desc()).limit(limit)
        )
        return list(result.scalars().all())

    async def get_head_to_head(
        self,
        sport: str,
        team_a: Optional[str],
        team_b: Optional[str],
        exclude_id: Optional[int],
        before_date: Optional[datetime],
        limit: int,
    ) -> list[Match]:
        """Scored meetings of two teams in either orientation, newest first."""
        if not team_a or not team_b:
            return []

        conditions = [
            Match.sport == sport,
            or_(
                and_(Match.home_team == team_a, Match.away_team == team_b),
                and_(Match.home_team == team_b, Match.away_team == team_a),
            ),
            *_scored_filters(),
        ]
        if exclude_id is not None:
            conditions.append(Match.match_id != exclude_id)
        if before_date is not None:
            conditions.append(Match.date < before_date)

        result = await self.session.execute(
            select(Match).where(*conditions).order_by(Match.date.desc()).limit(limit)
        )
        return list(result.scalars().all())

    async def get_sport_matches(self, sport: str) -> list[Match]:
        """Every stored match of a sport, oldest first."""
        result = await self.session.execute(
            select(Match).where(Match.sport == sport).order_by(Match.date.asc())
        )
        return list(result.scalars().all())

    async def get_sports(self) -> list[str]:
        result = await self.session.execute(select(Match.sport).distinct())
        return [row for row in result.scalars().all() if row]

    async def upsert_matches(self, matches: Iterable[Match]) -> int:
        """Insert or replace matches by match_id in a single commit."""
        count = 0
        for match in matches:
            if match.match_id is None:
                continue
            await self.session.merge(match)
            count += 1
        if count:
            await self.session.commit()
            logger.debug(f"Upserted {count} matches")
        return count

    async def save_features(self, rows: Iterable[MatchFeatures]) -> int:
        """Overwrite cached features for the given matches."""
        count = 0
        for row in rows:
            await self.session.merge(row)
            count += 1
        if count:
            await self.session.commit()
        return count

    async def get_features(self, match_id: int) -> Optional[MatchFeatures]:
        return await self.session.get(MatchFeatures, match_id)

    async def list_matches(
        self,
        sport: str,
        statuses: Iterable[str],
        mode: str = "live",
        limit: int = 20,
        date_range: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> list[Match]:
        """
        Stored live or upcoming matches of a sport.

        live: status in `statuses`, newest first (undated rows count as now).
        upcoming: status in `statuses` or kickoff not yet passed, soonest
        first; with date_range="today" only kickoffs on the current UTC day.
        """
        now = now or datetime.utcnow()
        statuses = list(statuses)
        query = select(Match).where(Match.sport == sport)

        if mode == "live":
            query = query.where(Match.status.in_(statuses)).order_by(
                func.coalesce(Match.date, now).desc()
            )
        elif date_range == "today":
            day_start = datetime(now.year, now.month, now.day)
            query = query.where(
                Match.date.isnot(None),
                Match.date >= day_start,
                Match.date < day_start + timedelta(days=1),
            ).order_by(Match.date.asc())
        else:
            query = query.where(
                or_(
                    Match.status.in_(statuses),
                    and_(Match.date.isnot(None), Match.date >= now),
                )
            ).order_by(Match.date.asc())

        result = await self.session.execute(query.limit(limit))
        return list(result.scalars().all())
