"""Rolling team features (form and scoring average) for match prediction."""

import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from matchcast.config import get_settings
from matchcast.models import Match
from matchcast.schemas import FeatureRecord, TeamStats
from matchcast.sports import normalize_sport, to_number
from matchcast.store import MatchStore

logger = logging.getLogger(__name__)
settings = get_settings()

DEFAULT_WINDOW_SIZE = 10
DEFAULT_LOOKBACK_DAYS = 365


def _team_goals(match: Match, team_name: str) -> Optional[tuple[float, float]]:
    """(scored, conceded) for team_name, or None if either score is unknown."""
    home_goals = to_number(match.home_goals)
    away_goals = to_number(match.away_goals)
    if home_goals is None or away_goals is None:
        return None
    if match.home_team == team_name:
        return home_goals, away_goals
    return away_goals, home_goals


def calculate_team_stats(
    matches: Iterable[Match],
    team_name: Optional[str],
    reference_date: Optional[datetime] = None,
    window_size: int = DEFAULT_WINDOW_SIZE,
    lookback_days: int = DEFAULT_LOOKBACK_DAYS,
) -> TeamStats:
    """
    Form and scoring average of a team as of reference_date.

    Only matches of the team played strictly before the reference date and
    no more than lookback_days earlier count, and only when both scores are
    known. Of those, the window_size nearest to the reference date are used.

    Args:
        matches: Candidate matches of a single sport.
        team_name: Team to evaluate.
        reference_date: Kickoff of the target match; None means now.
        window_size: Number of most recent matches kept.
        lookback_days: Maximum age of a counted match, in days.

    Returns:
        TeamStats; (0, 0) when no match qualifies.
    """
    if not team_name:
        return TeamStats()

    reference = reference_date or datetime.utcnow()
    cutoff = reference - timedelta(days=lookback_days)

    relevant = [
        match
        for match in matches
        if match.date is not None
        and (match.home_team == team_name or match.away_team == team_name)
        and cutoff <= match.date < reference
        and _team_goals(match, team_name) is not None
    ]
    relevant.sort(key=lambda m: m.date)
    relevant = relevant[-window_size:] if window_size > 0 else []

    if not relevant:
        return TeamStats()

    wins = 0
    games = 0
    scored_total = 0.0
    for match in relevant:
        scored, conceded = _team_goals(match, team_name)
        games += 1
        scored_total += scored
        if scored > conceded:
            wins += 1

    form = wins / max(games, 1)
    scoring_avg = round(scored_total / games, 2) if games else 0.0
    return TeamStats(form=form, scoring_avg=scoring_avg)


def build_feature_record(
    match: Match,
    sport_matches: Iterable[Match],
    window_size: int = DEFAULT_WINDOW_SIZE,
    lookback_days: int = DEFAULT_LOOKBACK_DAYS,
) -> FeatureRecord:
    """Features for one match from the stored matches of its sport."""
    sport_matches = list(sport_matches)
    home = calculate_team_stats(sport_matches, match.home_team, match.date, window_size, lookback_days)
    away = calculate_team_stats(sport_matches, match.away_team, match.date, window_size, lookback_days)
    return FeatureRecord(
        match_id=match.match_id,
        sport=normalize_sport(match.sport),
        home_form=home.form,
        away_form=away.form,
        home_scoring_avg=home.scoring_avg,
        away_scoring_avg=away.scoring_avg,
    )


class FeatureEngine:
    """
    Computes and caches per-match features.

    The cache (match_features table) is keyed by match id and every
    computation overwrites the previous row.
    """

    def __init__(
        self,
        session: AsyncSession,
        window_size: int = None,
        lookback_days: int = None,
    ):
        self.session = session
        self.store = MatchStore(session)
        self.window_size = window_size or settings.FEATURE_WINDOW_SIZE
        self.lookback_days = lookback_days or settings.FEATURE_LOOKBACK_DAYS

    async def calculate_features(self) -> list[FeatureRecord]:
        """Recompute features for every stored match, grouped by sport."""
        records: list[FeatureRecord] = []
        by_sport: dict[str, list[Match]] = defaultdict(list)

        for sport in await self.store.get_sports():
            for match in await self.store.get_sport_matches(sport):
                by_sport[normalize_sport(match.sport)].append(match)

        for sport, sport_matches in by_sport.items():
            for match in sport_matches:
                records.append(
                    build_feature_record(match, sport_matches, self.window_size, self.lookback_days)
                )
            logger.info(f"Computed features for {len(sport_matches)} {sport} matches")

        await self.store.save_features(record.to_row() for record in records)
        return records

    async def refresh_match_features(self, match: Match) -> Optional[FeatureRecord]:
        """
        Recompute and store the features of a single match.

        Returns None when neither team is known, since nothing can be derived.
        """
        if not match.home_team and not match.away_team:
            logger.warning(f"Match {match.match_id} has no team names, features not computable")
            return None

        sport_matches = await self.store.get_sport_matches(normalize_sport(match.sport))
        record = build_feature_record(match, sport_matches, self.window_size, self.lookback_days)
        await self.store.save_features([record.to_row()])
        return record

    async def get_features(self, match_id: int) -> Optional[FeatureRecord]:
        row = await self.store.get_features(match_id)
        if row is None:
            return None
        return FeatureRecord.from_row(row)
