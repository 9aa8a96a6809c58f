"""
Prometheus metrics for the prediction pipeline.

Labels are restricted to low-cardinality values only:
- sport:   "football", "basketball"
- entity:  "team", "head-to-head", "fixtures", "upcoming"
- engine:  "remote", "local", "rule-based" (or the engine name a remote payload declares)
- tier:    "remote", "local"
- reason:  "unavailable", "model_not_found", "invalid_payload", "error"

Match ids, team names and raw payloads belong in logs, never in labels.
Recording is best-effort and never blocks the main flow.
"""

import logging

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Histogram,
    generate_latest,
)

logger = logging.getLogger(__name__)

# =============================================================================
# INGESTION METRICS
# =============================================================================

provider_requests_total = Counter(
    "matchcast_provider_requests_total",
    "Total requests to the match history provider",
    ["sport", "entity", "status_code"],
)

provider_latency_ms = Histogram(
    "matchcast_provider_latency_ms",
    "Provider request latency in milliseconds",
    ["sport", "entity"],
    buckets=[50, 100, 250, 500, 1000, 2500, 5000, 10000, 15000],
)

backfill_requests_total = Counter(
    "matchcast_backfill_requests_total",
    "Backfill requests issued for sparse local history",
    ["sport", "kind"],
)

# =============================================================================
# PREDICTION METRICS
# =============================================================================

predictions_total = Counter(
    "matchcast_predictions_total",
    "Predictions served, by producing engine",
    ["engine"],
)

tier_failures_total = Counter(
    "matchcast_tier_failures_total",
    "Generator tiers that fell through to the next tier",
    ["tier", "reason"],
)

generator_latency_seconds = Histogram(
    "matchcast_generator_latency_seconds",
    "Generator call latency in seconds",
    ["tier"],
    buckets=[0.5, 1, 2, 5, 10, 20, 30, 60],
)


def record_provider_request(sport: str, entity: str, status_code: int, latency_ms: float) -> None:
    """Record a provider request count and latency."""
    try:
        provider_requests_total.labels(sport=sport, entity=entity, status_code=str(status_code)).inc()
        provider_latency_ms.labels(sport=sport, entity=entity).observe(latency_ms)
    except Exception as e:
        logger.warning(f"Failed to record provider request metric: {e}")


def record_backfill(sport: str, kind: str) -> None:
    try:
        backfill_requests_total.labels(sport=sport, kind=kind).inc()
    except Exception as e:
        logger.warning(f"Failed to record backfill metric: {e}")


def record_prediction(engine: str) -> None:
    try:
        predictions_total.labels(engine=engine).inc()
    except Exception as e:
        logger.warning(f"Failed to record prediction metric: {e}")


def record_tier_failure(tier: str, reason: str) -> None:
    try:
        tier_failures_total.labels(tier=tier, reason=reason).inc()
    except Exception as e:
        logger.warning(f"Failed to record tier failure metric: {e}")


def record_generator_latency(tier: str, seconds: float) -> None:
    try:
        generator_latency_seconds.labels(tier=tier).observe(seconds)
    except Exception as e:
        logger.warning(f"Failed to record generator latency metric: {e}")


def get_metrics_text() -> tuple[str, str]:
    """
    Generate Prometheus metrics text output.

    Returns:
        Tuple of (content, content_type)
    """
    return generate_latest(REGISTRY).decode("utf-8"), CONTENT_TYPE_LATEST
