"""
Tiered prediction orchestrator.

Stages run strictly in order (remote generator, local generator, rule-based
model) and the first validated prediction wins. A stage without its
configuration is skipped silently. Each call is awaited to completion before
the next stage starts; nothing runs in parallel.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

import numpy as np

from matchcast.database import AsyncSessionLocal
from matchcast.etl.base import HistoryProvider
from matchcast.features.engineering import FeatureEngine
from matchcast.llm.base import TextGenerator
from matchcast.llm.llama_client import RemoteLlamaClient
from matchcast.llm.ollama_client import OllamaClient
from matchcast.llm.parsing import normalize_response
from matchcast.llm.prompt import build_prediction_prompt
from matchcast.models import Match
from matchcast.prediction.history import BackfillMemo, HistoryContextBuilder
from matchcast.prediction.rules import rule_based_predict
from matchcast.schemas import CanonicalPrediction, FeatureRecord, HistoryContext, PredictionError
from matchcast.sports import parse_match_id
from matchcast.store import MatchStore
from matchcast.telemetry import record_generator_latency, record_prediction, record_tier_failure

logger = logging.getLogger(__name__)

ERROR_INVALID_ID = "Invalid match id"
ERROR_NOT_FOUND = "Match not found"
ERROR_NO_FEATURES = "No features found"

PredictionResult = Union[CanonicalPrediction, PredictionError]


@dataclass
class PredictionRequest:
    """Everything a stage needs to produce a prediction."""

    match: Match
    features: FeatureRecord
    context: HistoryContext
    prompt: str


@dataclass
class PredictionStage:
    """One tier: skipped unless is_enabled(); attempt() returns None to fall through."""

    name: str
    is_enabled: Callable[[], bool]
    attempt: Callable[[PredictionRequest], Awaitable[Optional[CanonicalPrediction]]]


class PredictionService:
    """
    Resolves a match id into a CanonicalPrediction.

    Owns the backfill memo, so memoized backfills live exactly as long as
    the service instance.
    """

    def __init__(
        self,
        session_factory: Callable = None,
        provider: Optional[HistoryProvider] = None,
        remote: Optional[TextGenerator] = None,
        local: Optional[TextGenerator] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        self.session_factory = session_factory or AsyncSessionLocal
        self.provider = provider
        self.remote = remote if remote is not None else RemoteLlamaClient()
        self.local = local if local is not None else OllamaClient()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.memo = BackfillMemo()

        self.stages: list[PredictionStage] = [
            PredictionStage("remote", lambda: self.remote.configured, self._attempt_remote),
            PredictionStage("local", lambda: self.local.configured, self._attempt_local),
            PredictionStage("rule-based", lambda: True, self._attempt_rules),
        ]

    async def close(self) -> None:
        await self.remote.close()
        await self.local.close()
        if self.provider is not None:
            await self.provider.close()

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _call_generator(self, client: TextGenerator, request: PredictionRequest, allow_declared_engine: bool):
        start = time.time()
        result = await client.generate(request.prompt)
        record_generator_latency(client.name, time.time() - start)

        if not result.ok:
            reason = "model_not_found" if result.status == "MODEL_NOT_FOUND" else "unavailable"
            record_tier_failure(client.name, reason)
            return None

        prediction = normalize_response(
            result.payload,
            request.match.match_id,
            engine=client.name,
            allow_declared_engine=allow_declared_engine,
        )
        if prediction is None:
            record_tier_failure(client.name, "invalid_payload")
        return prediction

    async def _attempt_remote(self, request: PredictionRequest) -> Optional[CanonicalPrediction]:
        prediction = await self._call_generator(self.remote, request, allow_declared_engine=True)
        if prediction is None:
            logger.warning("Remote generator gave no valid prediction, falling back to the local generator")
        return prediction

    async def _attempt_local(self, request: PredictionRequest) -> Optional[CanonicalPrediction]:
        prediction = await self._call_generator(self.local, request, allow_declared_engine=False)
        if prediction is None:
            logger.warning("Local generator gave no valid prediction, falling back to the rule-based model")
        return prediction

    async def _attempt_rules(self, request: PredictionRequest) -> CanonicalPrediction:
        return rule_based_predict(request.match, request.features, rng=self.rng)

    async def run_stages(self, request: PredictionRequest) -> CanonicalPrediction:
        """Evaluate stages left to right; the first non-None result wins."""
        for stage in self.stages:
            if not stage.is_enabled():
                continue
            try:
                prediction = await stage.attempt(request)
            except Exception as e:
                if stage is self.stages[-1]:
                    raise
                logger.exception(f"Stage {stage.name} failed unexpectedly: {e}")
                record_tier_failure(stage.name, "error")
                continue
            if prediction is not None:
                return prediction

        # Unreachable while the rule-based stage is last
        return await self._attempt_rules(request)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def ensure_match_history(self, raw_match_id: Any) -> Optional[HistoryContext]:
        """Backfill sparse history for a match without predicting."""
        if parse_match_id(raw_match_id) is None:
            return None
        async with self.session_factory() as session:
            store = MatchStore(session)
            match = await store.find_match(raw_match_id)
            if match is None:
                return None
            return await HistoryContextBuilder(store, self.provider, self.memo).build(match)

    async def predict(self, raw_match_id: Any) -> PredictionResult:
        """
        Predict one match.

        Args:
            raw_match_id: Match id as given by the caller (int or numeric
                string, with or without the sport offset).

        Returns:
            CanonicalPrediction, or PredictionError for an invalid or
            unknown id or uncomputable features.
        """
        if parse_match_id(raw_match_id) is None:
            return PredictionError(ERROR_INVALID_ID)

        async with self.session_factory() as session:
            store = MatchStore(session)
            match = await store.find_match(raw_match_id)
            if match is None:
                return PredictionError(ERROR_NOT_FOUND)

            context = await HistoryContextBuilder(store, self.provider, self.memo).build(match)

            features = await FeatureEngine(session).refresh_match_features(match)
            if features is None:
                return PredictionError(ERROR_NO_FEATURES)

            request = PredictionRequest(
                match=match,
                features=features,
                context=context,
                prompt=build_prediction_prompt(match, features, context),
            )

        prediction = await self.run_stages(request)
        record_prediction(prediction.engine)
        logger.info(f"Match {match.match_id}: {prediction.prediction} via {prediction.engine}")
        return prediction

