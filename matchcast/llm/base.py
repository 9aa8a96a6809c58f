"""Common result type and interface for text generator clients."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

import httpx


@dataclass
class GenerationResult:
    """Outcome of a single generator call."""

    status: str  # COMPLETED, ERROR, TIMEOUT, MODEL_NOT_FOUND, DISABLED
    payload: Any = None  # Raw response body (parsed JSON when possible, else text)
    exec_ms: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "COMPLETED" and self.payload is not None


class TextGenerator(ABC):
    """
    A prediction tier backed by a free-form text generator.

    generate() never raises: transport failures come back as a
    GenerationResult with a non-COMPLETED status.
    """

    name: str = "generator"

    def __init__(self, timeout: float, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    @abstractmethod
    def configured(self) -> bool:
        """Whether the tier has the configuration it needs to run."""
        pass

    @abstractmethod
    async def generate(self, prompt: str) -> GenerationResult:
        pass

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                headers={"Content-Type": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None


def decode_body(response: httpx.Response) -> Any:
    """JSON body when the response is JSON, raw text otherwise."""
    try:
        return response.json()
    except ValueError:
        return response.text or None
