"""ETL module for fetching and storing match history."""

from matchcast.etl.api_sports import APISportsProvider, map_basketball_game, map_football_fixture
from matchcast.etl.base import HistoryProvider, MatchData

__all__ = [
    "HistoryProvider",
    "MatchData",
    "APISportsProvider",
    "map_basketball_game",
    "map_football_fixture",
]
