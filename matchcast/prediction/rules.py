"""
Rule-based predictor: the terminal fallback tier.

A fixed linear score over form and scoring differences picks the outcome;
probabilities get a small uniform jitter so repeated fallbacks do not return
identical numbers. The outcome and recommendation depend only on the score.
"""

from typing import Optional

import numpy as np

from matchcast.llm.prompt import get_sport_meta
from matchcast.models import Match
from matchcast.schemas import BettingAdvice, CanonicalPrediction, FeatureRecord, Probabilities
from matchcast.sports import BASKETBALL, normalize_sport

ENGINE_NAME = "rule-based"

EDGE_THRESHOLD = 0.3
MAX_CONFIDENCE = 0.85
NO_EDGE_CONFIDENCE = 0.6
JITTER_SCALE = 0.1

HOME_WIN_LABEL = "Home win"
AWAY_WIN_LABEL = "Away win"

NO_EDGE_RECOMMENDATIONS = {
    BASKETBALL: "Avoid the spread",
}
DEFAULT_NO_EDGE_RECOMMENDATION = "Under 2.5 goals"


def clamp(low: float, high: float, value: float) -> float:
    return max(low, min(high, value))


def rule_score(features: FeatureRecord) -> float:
    """(home_form - away_form) + (home_scoring_avg - away_scoring_avg)"""
    return (features.home_form - features.away_form) + (
        features.home_scoring_avg - features.away_scoring_avg
    )


def rule_based_predict(
    match: Match,
    features: FeatureRecord,
    rng: Optional[np.random.Generator] = None,
) -> CanonicalPrediction:
    """
    Deterministic-outcome prediction with jittered probabilities. Never fails.

    Args:
        match: Target match.
        features: Its features.
        rng: Randomness source for the jitter; a fresh entropy-seeded
            generator when omitted. Pass a seeded one to pin the output.
    """
    rng = rng if rng is not None else np.random.default_rng()
    sport = normalize_sport(match.sport)
    meta = get_sport_meta(sport)
    score = rule_score(features)

    if score > EDGE_THRESHOLD:
        prediction = HOME_WIN_LABEL
        recommendation = HOME_WIN_LABEL
        confidence = min(MAX_CONFIDENCE, 0.5 + abs(score))
    elif score < -EDGE_THRESHOLD:
        prediction = AWAY_WIN_LABEL
        recommendation = AWAY_WIN_LABEL
        confidence = min(MAX_CONFIDENCE, 0.5 + abs(score))
    else:
        prediction = meta.draw_label
        recommendation = NO_EDGE_RECOMMENDATIONS.get(sport, DEFAULT_NO_EDGE_RECOMMENDATION)
        confidence = NO_EDGE_CONFIDENCE

    def jitter() -> float:
        return float(rng.uniform(-JITTER_SCALE, JITTER_SCALE))

    prob_home = clamp(0.1, 0.8, 0.5 + score + jitter())
    prob_away = clamp(0.1, 0.8, 0.5 - score + jitter())
    prob_draw = clamp(0.05, 0.6, 0.2 + jitter())

    total = prob_home + prob_away + prob_draw

    form_diff = features.home_form - features.away_form
    scoring_diff = features.home_scoring_avg - features.away_scoring_avg

    return CanonicalPrediction(
        match_id=match.match_id,
        prediction=prediction,
        probabilities=Probabilities(
            home=round(prob_home / total, 2),
            draw=round(prob_draw / total, 2),
            away=round(prob_away / total, 2),
        ),
        explanation=" | ".join(
            [
                f"Rule-based model score={round(score, 2)}",
                f"form diff {round(form_diff, 2)}",
                f"{meta.scoring_label} diff {round(scoring_diff, 2)}",
            ]
        ),
        betting_advice=BettingAdvice(
            recommendation=recommendation,
            confidence=round(confidence, 2),
            reasoning=f"Based on the teams' form and {meta.scoring_label.lower()} differences.",
        ),
        engine=ENGINE_NAME,
    )
