"""
Remote llama server client (first prediction tier).

Single request/response call: POST the prompt to LLAMA_SERVER_URL and hand
the body, whatever its shape, to the response normalizer.
"""

import logging
import time
from typing import Optional

import httpx

from matchcast.config import Settings, get_settings
from matchcast.llm.base import GenerationResult, TextGenerator, decode_body

logger = logging.getLogger(__name__)


class RemoteLlamaClient(TextGenerator):
    """Async client for a remote llama completion endpoint."""

    name = "remote"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = settings or get_settings()
        super().__init__(timeout=settings.LLAMA_TIMEOUT_SECONDS, transport=transport)
        self.url = (settings.LLAMA_SERVER_URL or "").strip()
        self.max_tokens = settings.LLAMA_MAX_TOKENS
        self.temperature = settings.LLAMA_TEMPERATURE

    @property
    def configured(self) -> bool:
        return bool(self.url)

    async def generate(self, prompt: str) -> GenerationResult:
        if not self.configured:
            return GenerationResult(status="DISABLED", error="LLAMA_SERVER_URL not configured")

        client = await self._get_client()
        payload = {
            "prompt": prompt,
            "maxTokens": self.max_tokens,
            "temperature": self.temperature,
            "stop": ["\n\n"],
        }

        start_time = time.time()
        try:
            response = await client.post(self.url, json=payload)
            elapsed_ms = int((time.time() - start_time) * 1000)

            if response.status_code != 200:
                error_text = response.text[:300]
                logger.error(f"Remote llama error {response.status_code}: {error_text}")
                return GenerationResult(
                    status="ERROR",
                    exec_ms=elapsed_ms,
                    error=f"HTTP {response.status_code}: {error_text}",
                )

            return GenerationResult(status="COMPLETED", payload=decode_body(response), exec_ms=elapsed_ms)

        except httpx.TimeoutException:
            elapsed_ms = int((time.time() - start_time) * 1000)
            logger.error(f"Remote llama call timed out after {elapsed_ms}ms")
            return GenerationResult(status="TIMEOUT", exec_ms=elapsed_ms, error="Request timed out")
        except httpx.HTTPError as e:
            elapsed_ms = int((time.time() - start_time) * 1000)
            logger.error(f"Remote llama call failed: {e}")
            return GenerationResult(status="ERROR", exec_ms=elapsed_ms, error=str(e))
