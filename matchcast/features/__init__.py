"""Feature engineering module."""

from matchcast.features.engineering import FeatureEngine, build_feature_record, calculate_team_stats

__all__ = ["FeatureEngine", "build_feature_record", "calculate_team_stats"]
