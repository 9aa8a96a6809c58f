"""Text generator clients, prompt building and response normalization."""

from matchcast.llm.base import GenerationResult, TextGenerator
from matchcast.llm.llama_client import RemoteLlamaClient
from matchcast.llm.ollama_client import OllamaClient
from matchcast.llm.parsing import extract_json, normalize_incoming_payload, normalize_prediction, normalize_response
from matchcast.llm.prompt import build_prediction_prompt

__all__ = [
    "GenerationResult",
    "TextGenerator",
    "RemoteLlamaClient",
    "OllamaClient",
    "extract_json",
    "normalize_incoming_payload",
    "normalize_prediction",
    "normalize_response",
    "build_prediction_prompt",
]
