"""Tests for the generator prompt."""

from datetime import datetime

from matchcast.llm.prompt import (
    build_prediction_prompt,
    format_head_to_head,
    format_team_history,
)
from matchcast.schemas import FeatureRecord, HistoryContext
from tests.conftest import make_match


def _features(sport="football", match_id=10):
    return FeatureRecord(
        match_id=match_id,
        sport=sport,
        home_form=0.6,
        away_form=0.3,
        home_scoring_avg=1.8,
        away_scoring_avg=1.1,
    )


class TestHistoryBlocks:

    def test_empty_team_history(self):
        assert format_team_history([], "Alpha", "Last matches Alpha", "football") == (
            "Last matches Alpha: No data available."
        )

    def test_empty_head_to_head(self):
        assert format_head_to_head([], "Head-to-head", "football") == "Head-to-head: No head-to-head matches found."

    def test_team_history_lines_from_team_view(self):
        rows = [
            make_match(2, "Gamma", "Alpha", datetime(2024, 3, 8), 0, 2),
            make_match(1, "Alpha", "Beta", datetime(2024, 3, 1), 1, 1),
        ]
        block = format_team_history(rows, "Alpha", "Last 2 matches Alpha", "football")

        assert block.startswith("Last 2 matches Alpha (record 1W-1D-0L, Goals 3:1):")
        assert "W 2024-03-08 | A vs Gamma | 2-0" in block
        assert "D 2024-03-01 | H vs Beta | 1-1" in block

    def test_head_to_head_lines(self):
        rows = [make_match(1, "Alpha", "Beta", datetime(2024, 3, 1), 2, 1)]
        block = format_head_to_head(rows, "Head-to-head (Alpha vs Beta)", "football")

        assert "1 home wins / 0 away wins / 0 draws" in block
        assert "H 2024-03-01: Alpha 2-1 Beta" in block


class TestBuildPredictionPrompt:

    def test_prompt_without_history(self):
        match = make_match(10, "Alpha", "Beta", datetime(2024, 6, 1))
        context = HistoryContext(sport="football", home_team="Alpha", away_team="Beta")

        prompt = build_prediction_prompt(match, _features(), context)

        assert "You are a football analyst" in prompt
        assert "Match ID: 10" in prompt
        assert "home_form (0-1, 1=best): 0.6" in prompt
        assert "home_goals_avg: 1.8" in prompt
        assert "Last matches Alpha: No data available." in prompt
        assert "Head-to-head (Alpha vs Beta): No head-to-head matches found." in prompt

    def test_basketball_vocabulary(self):
        match = make_match(5_000_000_010, "Lakers", "Celtics", datetime(2024, 6, 1), sport="basketball")
        context = HistoryContext(sport="basketball", home_team="Lakers", away_team="Celtics")

        prompt = build_prediction_prompt(match, _features("basketball", 5_000_000_010), context)

        assert "basketball analyst" in prompt
        assert "home_points_avg: 1.8" in prompt
        assert "point production" in prompt
        assert "goals" not in prompt.lower()

    def test_missing_team_block_dropped(self):
        match = make_match(10, "Alpha", None, datetime(2024, 6, 1))
        context = HistoryContext(sport="football", home_team="Alpha", away_team=None)

        prompt = build_prediction_prompt(match, _features(), context)

        assert "Away team: unknown" in prompt
        assert "None" not in prompt
        assert prompt.count("No data available.") == 1

    def test_prompt_is_pure(self):
        match = make_match(10, "Alpha", "Beta", datetime(2024, 6, 1))
        context = HistoryContext(
            sport="football",
            home_team="Alpha",
            away_team="Beta",
            home_recent=[make_match(1, "Alpha", "Gamma", datetime(2024, 5, 1), 3, 0)],
        )

        assert build_prediction_prompt(match, _features(), context) == build_prediction_prompt(
            match, _features(), context
        )
