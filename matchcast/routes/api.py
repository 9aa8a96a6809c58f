"""Core routes: health, predictions, metrics.

Auth per-endpoint:
- /health: public
- /predictions/{match_id}: public
- /metrics: Bearer token (METRICS_BEARER_TOKEN, empty = open)
"""

from fastapi import APIRouter, Header, HTTPException, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from matchcast.config import get_settings
from matchcast.prediction.service import ERROR_INVALID_ID, PredictionService
from matchcast.schemas import PredictionError
from matchcast.telemetry import get_metrics_text

router = APIRouter(tags=["core"])
settings = get_settings()


class HealthResponse(BaseModel):
    status: str


def get_prediction_service(request: Request) -> PredictionService:
    return request.app.state.prediction_service


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(status="ok")


@router.get("/predictions/{match_id}")
async def get_prediction(match_id: str, request: Request):
    """
    Predict one match.

    `match_id` may be the stored id or the raw provider id of any sport.
    Invalid ids return 400; unknown matches or uncomputable features 404.
    """
    result = await get_prediction_service(request).predict(match_id)
    if isinstance(result, PredictionError):
        status_code = 400 if result.error == ERROR_INVALID_ID else 404
        raise HTTPException(status_code=status_code, detail=result.error)
    return result.to_dict()


@router.get("/metrics")
async def prometheus_metrics(
    authorization: str = Header(None, alias="Authorization"),
):
    """
    Prometheus metrics endpoint.

    Exposes provider requests and latency, backfills, generator tier
    latency and fall-through reasons, and predictions by engine.
    """
    expected_token = settings.METRICS_BEARER_TOKEN
    if expected_token:
        if not authorization:
            return PlainTextResponse(
                content="# Unauthorized: Missing Authorization header\n",
                status_code=401,
                media_type="text/plain",
            )
        # Extract token from "Bearer <token>"
        parts = authorization.split(" ", 1)
        if len(parts) != 2 or parts[0].lower() != "bearer":
            return PlainTextResponse(
                content="# Unauthorized: Invalid Authorization format\n",
                status_code=401,
                media_type="text/plain",
            )
        if parts[1] != expected_token:
            return PlainTextResponse(
                content="# Unauthorized: Invalid token\n",
                status_code=401,
                media_type="text/plain",
            )

    content, content_type = get_metrics_text()
    return PlainTextResponse(content=content, media_type=content_type)
