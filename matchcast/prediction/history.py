"""History context for a target match, with on-demand backfill of sparse data."""

import asyncio
import logging
from typing import Hashable, Optional

from matchcast.etl.base import HistoryProvider
from matchcast.llm.prompt import H2H_HISTORY_SIZE, TEAM_HISTORY_SIZE
from matchcast.models import Match
from matchcast.schemas import HistoryContext
from matchcast.sports import normalize_sport
from matchcast.store import MatchStore
from matchcast.telemetry import record_backfill

logger = logging.getLogger(__name__)

# Fewer usable local matches than this triggers one backfill request
BACKFILL_THRESHOLD = 3


class BackfillMemo:
    """
    Keys of teams (and pairings) already backfilled by this process.

    Lives as long as its owner (normally the PredictionService) and is lost
    on restart. It only saves outbound calls: a repeated backfill is
    wasteful, not wrong. claim() is guarded by a lock so concurrent
    requests cannot both win the same key; release() hands a key back after
    a backfill that produced nothing, so it is tried again later.
    """

    def __init__(self):
        self._keys: set[Hashable] = set()
        self._lock = asyncio.Lock()

    async def claim(self, key: Hashable) -> bool:
        """Record key; True only for the first caller."""
        async with self._lock:
            if key in self._keys:
                return False
            self._keys.add(key)
            return True

    async def release(self, key: Hashable) -> None:
        async with self._lock:
            self._keys.discard(key)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def clear(self) -> None:
        self._keys.clear()


def team_key(sport: str, team_id: int) -> tuple:
    return (sport, team_id)


def pairing_key(sport: str, team_a_id: int, team_b_id: int) -> tuple:
    low, high = sorted((team_a_id, team_b_id))
    return (sport, "h2h", low, high)


class HistoryContextBuilder:
    """
    Assembles recent form and head-to-head lists for a match.

    Each list is read from the store first. When it holds fewer than
    BACKFILL_THRESHOLD matches and the provider ids are known, exactly one
    backfill request is issued for that team or pairing and the store is
    queried again.
    """

    def __init__(
        self,
        store: MatchStore,
        provider: Optional[HistoryProvider] = None,
        memo: Optional[BackfillMemo] = None,
    ):
        self.store = store
        self.provider = provider
        self.memo = memo if memo is not None else BackfillMemo()

    async def _team_recent(self, match: Match, sport: str, team_name: Optional[str]) -> list[Match]:
        return await self.store.get_team_recent_matches(
            sport, team_name, match.match_id, match.date, TEAM_HISTORY_SIZE
        )

    async def _head_to_head(self, match: Match, sport: str) -> list[Match]:
        return await self.store.get_head_to_head(
            sport, match.home_team, match.away_team, match.match_id, match.date, H2H_HISTORY_SIZE
        )

    async def _backfill_team(self, sport: str, team_id: Optional[int]) -> bool:
        if self.provider is None or not team_id:
            return False
        key = team_key(sport, team_id)
        if not await self.memo.claim(key):
            return False

        record_backfill(sport, "team")
        try:
            fetched = await self.provider.backfill_team_history(team_id, TEAM_HISTORY_SIZE, sport)
        except Exception as e:
            logger.warning(f"Team history backfill failed for {sport} team {team_id}: {e}")
            fetched = []
        if not fetched:
            await self.memo.release(key)
            return False
        logger.info(f"Backfilled {len(fetched)} matches for {sport} team {team_id}")
        return True

    async def _backfill_pairing(self, sport: str, home_id: Optional[int], away_id: Optional[int]) -> bool:
        if self.provider is None or not home_id or not away_id:
            return False
        key = pairing_key(sport, home_id, away_id)
        if not await self.memo.claim(key):
            return False

        record_backfill(sport, "head_to_head")
        try:
            fetched = await self.provider.backfill_head_to_head(home_id, away_id, H2H_HISTORY_SIZE, sport)
        except Exception as e:
            logger.warning(f"Head-to-head backfill failed for {sport} {home_id} vs {away_id}: {e}")
            fetched = []
        if not fetched:
            await self.memo.release(key)
            return False
        logger.info(f"Backfilled {len(fetched)} head-to-head matches for {sport} {home_id} vs {away_id}")
        return True

    async def build(self, match: Match) -> HistoryContext:
        """Context for `match`, backfilling sparse lists first."""
        sport = normalize_sport(match.sport)

        home_recent = await self._team_recent(match, sport, match.home_team)
        if len(home_recent) < BACKFILL_THRESHOLD and await self._backfill_team(sport, match.home_team_id):
            home_recent = await self._team_recent(match, sport, match.home_team)

        away_recent = await self._team_recent(match, sport, match.away_team)
        if len(away_recent) < BACKFILL_THRESHOLD and await self._backfill_team(sport, match.away_team_id):
            away_recent = await self._team_recent(match, sport, match.away_team)

        head_to_head = await self._head_to_head(match, sport)
        if len(head_to_head) < BACKFILL_THRESHOLD and await self._backfill_pairing(
            sport, match.home_team_id, match.away_team_id
        ):
            head_to_head = await self._head_to_head(match, sport)

        return HistoryContext(
            sport=sport,
            home_team=match.home_team,
            away_team=match.away_team,
            home_recent=home_recent,
            away_recent=away_recent,
            head_to_head=head_to_head,
        )

