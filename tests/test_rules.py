"""Tests for the rule-based fallback predictor."""

import numpy as np
import pytest

from matchcast.prediction.rules import rule_based_predict, rule_score
from matchcast.schemas import FeatureRecord
from tests.conftest import make_match


def _features(home_form, away_form, home_avg, away_avg, sport="football", match_id=1):
    return FeatureRecord(
        match_id=match_id,
        sport=sport,
        home_form=home_form,
        away_form=away_form,
        home_scoring_avg=home_avg,
        away_scoring_avg=away_avg,
    )


class TestRuleBasedPredict:

    def test_strong_home_edge(self):
        match = make_match(1, "Alpha", "Beta", None)
        features = _features(0.8, 0.2, 2.1, 0.9)

        prediction = rule_based_predict(match, features, rng=np.random.default_rng(0))

        assert rule_score(features) == pytest.approx(1.8)
        assert prediction.prediction == "Home win"
        assert prediction.betting_advice.recommendation == "Home win"
        assert prediction.betting_advice.confidence == 0.85
        assert prediction.engine == "rule-based"
        assert prediction.probabilities.home > prediction.probabilities.away

    def test_away_edge(self):
        match = make_match(1, "Alpha", "Beta", None)
        prediction = rule_based_predict(match, _features(0.3, 0.5, 1.0, 1.2), rng=np.random.default_rng(0))

        assert prediction.prediction == "Away win"
        assert prediction.betting_advice.recommendation == "Away win"
        assert prediction.betting_advice.confidence == 0.85

    def test_moderate_edge_confidence(self):
        match = make_match(1, "Alpha", "Beta", None)
        # score 0.33: just past the edge threshold, below the confidence cap
        prediction = rule_based_predict(match, _features(0.55, 0.5, 1.28, 1.0), rng=np.random.default_rng(0))

        assert prediction.prediction == "Home win"
        assert prediction.betting_advice.confidence == 0.83

    def test_narrow_margin_football(self):
        match = make_match(1, "Alpha", "Beta", None)
        prediction = rule_based_predict(match, _features(0.5, 0.5, 1.0, 1.1), rng=np.random.default_rng(0))

        assert prediction.prediction == "Draw"
        assert prediction.betting_advice.recommendation == "Under 2.5 goals"
        assert prediction.betting_advice.confidence == 0.6

    def test_narrow_margin_basketball(self):
        match = make_match(5_000_000_001, "Alpha", "Beta", None, sport="basketball")
        features = _features(0.5, 0.5, 100.0, 100.0, sport="basketball", match_id=5_000_000_001)

        prediction = rule_based_predict(match, features, rng=np.random.default_rng(0))

        assert prediction.betting_advice.recommendation == "Avoid the spread"
        assert "Points diff" in prediction.explanation

    def test_no_history_is_a_no_edge_call(self):
        match = make_match(1, "Alpha", "Beta", None)
        prediction = rule_based_predict(match, _features(0.0, 0.0, 0.0, 0.0))

        assert prediction.prediction == "Draw"
        assert prediction.betting_advice.confidence == 0.6

    @pytest.mark.parametrize("seed", [0, 1, 7, 123])
    def test_probabilities_form_a_distribution(self, seed):
        match = make_match(1, "Alpha", "Beta", None)
        prediction = rule_based_predict(match, _features(0.9, 0.1, 3.0, 0.5), rng=np.random.default_rng(seed))
        probs = prediction.probabilities

        for value in (probs.home, probs.draw, probs.away):
            assert 0.0 <= value <= 1.0
        assert probs.total() == pytest.approx(1.0, abs=0.02)

    def test_seeded_rng_is_reproducible(self):
        match = make_match(1, "Alpha", "Beta", None)
        features = _features(0.6, 0.4, 1.5, 1.0)

        first = rule_based_predict(match, features, rng=np.random.default_rng(42))
        second = rule_based_predict(match, features, rng=np.random.default_rng(42))

        assert first.to_dict() == second.to_dict()

    def test_explanation_names_the_score(self):
        match = make_match(1, "Alpha", "Beta", None)
        prediction = rule_based_predict(match, _features(0.8, 0.2, 2.0, 1.0), rng=np.random.default_rng(0))

        assert prediction.explanation.startswith("Rule-based model score=1.6")
        assert "Goals diff 1.0" in prediction.explanation
