"""Abstract base class for match history providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from matchcast.models import Match


@dataclass
class MatchData:
    """Data transfer object for a provider match, already offset-encoded."""

    match_id: int
    sport: str
    date: Optional[datetime]
    status: Optional[str]
    home_team_id: Optional[int]
    away_team_id: Optional[int]
    home_team: Optional[str]
    away_team: Optional[str]
    home_goals: Optional[int] = None
    away_goals: Optional[int] = None

    def to_model(self) -> Match:
        return Match(
            match_id=self.match_id,
            sport=self.sport,
            date=self.date,
            status=self.status,
            home_team_id=self.home_team_id,
            away_team_id=self.away_team_id,
            home_team=self.home_team,
            away_team=self.away_team,
            home_goals=self.home_goals,
            away_goals=self.away_goals,
        )


class HistoryProvider(ABC):
    """
    Source of historical matches used to backfill sparse local history.

    Every method is best-effort: failures are logged and produce an empty
    list, never an exception.
    """

    @abstractmethod
    async def backfill_team_history(self, team_id: int, limit: int, sport: str) -> list[MatchData]:
        """
        Fetch and store the last `limit` matches of a team.

        Args:
            team_id: Provider team id (not offset-encoded).
            limit: Number of matches to request.
            sport: "football" or "basketball".

        Returns:
            The stored matches (possibly empty).
        """
        pass

    @abstractmethod
    async def backfill_head_to_head(
        self,
        team_a_id: int,
        team_b_id: int,
        limit: int,
        sport: str,
    ) -> list[MatchData]:
        """Fetch and store the last `limit` meetings of two teams."""
        pass

    @abstractmethod
    async def fetch_matches(
        self,
        sport: str,
        mode: str = "live",
        limit: int = 20,
        date_range: Optional[str] = None,
    ) -> list[MatchData]:
        """Fetch and store live or upcoming matches."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections."""
        pass
