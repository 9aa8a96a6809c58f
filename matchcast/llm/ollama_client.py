"""Local Ollama client (second prediction tier)."""

import logging
import time
from typing import Optional

import httpx

from matchcast.config import Settings, get_settings
from matchcast.llm.base import GenerationResult, TextGenerator, decode_body

logger = logging.getLogger(__name__)


class OllamaClient(TextGenerator):
    """Async client for Ollama's /api/generate (non-streaming)."""

    name = "local"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = settings or get_settings()
        super().__init__(timeout=settings.OLLAMA_TIMEOUT_SECONDS, transport=transport)
        self.host = (settings.OLLAMA_HOST or "").strip().rstrip("/")
        self.model = (settings.OLLAMA_MODEL or "").strip()

    @property
    def configured(self) -> bool:
        return bool(self.model and self.host)

    async def generate(self, prompt: str) -> GenerationResult:
        if not self.configured:
            return GenerationResult(status="DISABLED", error="OLLAMA_MODEL not configured")

        client = await self._get_client()
        payload = {"model": self.model, "prompt": prompt, "stream": False}

        start_time = time.time()
        try:
            response = await client.post(f"{self.host}/api/generate", json=payload)
            elapsed_ms = int((time.time() - start_time) * 1000)

            if response.status_code == 404:
                logger.warning(
                    f"Ollama model '{self.model}' not found. Install it with 'ollama pull {self.model}'."
                )
                return GenerationResult(
                    status="MODEL_NOT_FOUND",
                    exec_ms=elapsed_ms,
                    error=f"Model {self.model} not found",
                )

            if response.status_code != 200:
                error_text = response.text[:300]
                logger.error(f"Ollama error {response.status_code}: {error_text}")
                return GenerationResult(
                    status="ERROR",
                    exec_ms=elapsed_ms,
                    error=f"HTTP {response.status_code}: {error_text}",
                )

            return GenerationResult(status="COMPLETED", payload=decode_body(response), exec_ms=elapsed_ms)

        except httpx.TimeoutException:
            elapsed_ms = int((time.time() - start_time) * 1000)
            logger.error(f"Ollama call timed out after {elapsed_ms}ms")
            return GenerationResult(status="TIMEOUT", exec_ms=elapsed_ms, error="Request timed out")
        except httpx.HTTPError as e:
            elapsed_ms = int((time.time() - start_time) * 1000)
            logger.error(f"Ollama call failed: {e}")
            return GenerationResult(status="ERROR", exec_ms=elapsed_ms, error=str(e))
