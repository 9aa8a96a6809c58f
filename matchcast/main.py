"""Matchcast prediction API."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from matchcast.config import get_settings
from matchcast.database import AsyncSessionLocal, close_db, init_db
from matchcast.etl import APISportsProvider
from matchcast.prediction import PredictionService
from matchcast.routes.api import router as core_router

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting Matchcast...")
    await init_db()

    provider = APISportsProvider(AsyncSessionLocal, settings=settings)
    app.state.prediction_service = PredictionService(AsyncSessionLocal, provider=provider)
    logger.info(
        f"Generators: remote={'on' if settings.LLAMA_SERVER_URL else 'off'}, "
        f"local={settings.OLLAMA_MODEL or 'off'}"
    )

    yield

    # Shutdown
    logger.info("Shutting down...")
    await app.state.prediction_service.close()
    await close_db()


app = FastAPI(
    title="Matchcast",
    description="Match outcome predictions with tiered LLM generation and rule-based fallback",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(core_router)
