"""Prediction pipeline: history context, tiered generation and rule-based fallback."""

from matchcast.prediction.history import BackfillMemo, HistoryContextBuilder
from matchcast.prediction.rules import rule_based_predict
from matchcast.prediction.service import PredictionService, PredictionStage

__all__ = [
    "BackfillMemo",
    "HistoryContextBuilder",
    "PredictionService",
    "PredictionStage",
    "rule_based_predict",
]
