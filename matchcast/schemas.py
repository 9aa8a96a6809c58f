"""Data transfer objects shared across the prediction pipeline."""

from dataclasses import asdict, dataclass, field
from typing import Optional

from matchcast.models import Match, MatchFeatures


@dataclass(frozen=True)
class TeamStats:
    """Rolling performance of one team as of a reference date."""

    form: float = 0.0  # share of qualifying matches won
    scoring_avg: float = 0.0  # mean goals/points scored


@dataclass
class FeatureRecord:
    """Per-match features consumed by the prompt builder and rule model."""

    match_id: int
    sport: str
    home_form: float
    away_form: float
    home_scoring_avg: float
    away_scoring_avg: float

    @classmethod
    def from_row(cls, row: MatchFeatures) -> "FeatureRecord":
        return cls(
            match_id=row.match_id,
            sport=row.sport,
            home_form=float(row.home_form or 0.0),
            away_form=float(row.away_form or 0.0),
            home_scoring_avg=float(row.home_goals_avg or 0.0),
            away_scoring_avg=float(row.away_goals_avg or 0.0),
        )

    def to_row(self) -> MatchFeatures:
        return MatchFeatures(
            match_id=self.match_id,
            sport=self.sport,
            home_form=self.home_form,
            away_form=self.away_form,
            home_goals_avg=self.home_scoring_avg,
            away_goals_avg=self.away_scoring_avg,
        )


@dataclass
class HistoryContext:
    """
    Recent form and head-to-head record for one target match.

    Built per request and never persisted. Lists are newest first and hold
    only matches played before the target.
    """

    sport: str
    home_team: Optional[str]
    away_team: Optional[str]
    home_recent: list[Match] = field(default_factory=list)
    away_recent: list[Match] = field(default_factory=list)
    head_to_head: list[Match] = field(default_factory=list)


@dataclass
class Probabilities:
    home: float
    draw: float
    away: float

    def total(self) -> float:
        return self.home + self.draw + self.away


@dataclass
class BettingAdvice:
    recommendation: str
    confidence: float
    reasoning: str


@dataclass
class CanonicalPrediction:
    """Validated forecast returned to every caller."""

    match_id: int
    prediction: str
    probabilities: Probabilities
    explanation: str
    betting_advice: BettingAdvice
    engine: str = "rule-based"

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class PredictionError:
    """Explicit failure result for caller input problems."""

    error: str

    def to_dict(self) -> dict:
        return {"error": self.error}
