"""
Prediction pipeline telemetry.

Provides Prometheus metrics for:
- Provider ingestion (requests, latency, backfills)
- Generator tiers (latency, fallthrough reasons)
- Served predictions by engine
"""

from matchcast.telemetry.metrics import (
    backfill_requests_total,
    generator_latency_seconds,
    predictions_total,
    provider_latency_ms,
    provider_requests_total,
    tier_failures_total,
    record_backfill,
    record_generator_latency,
    record_prediction,
    record_provider_request,
    record_tier_failure,
    get_metrics_text,
)

__all__ = [
    "backfill_requests_total",
    "generator_latency_seconds",
    "predictions_total",
    "provider_latency_ms",
    "provider_requests_total",
    "tier_failures_total",
    "record_backfill",
    "record_generator_latency",
    "record_prediction",
    "record_provider_request",
    "record_tier_failure",
    "get_metrics_text",
]
