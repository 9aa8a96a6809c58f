"""
Normalizes raw generator output into a CanonicalPrediction.

Generators return anything from bare JSON to chat-completion envelopes with
the JSON buried in a text field. Extraction is an ordered list of
strategies tried in sequence; validation then enforces the probability
schema. Nothing in this module raises on bad input: failure is None.
"""

import json
import logging
import math
import re
from typing import Any, Callable, Optional

from matchcast.schemas import BettingAdvice, CanonicalPrediction, Probabilities
from matchcast.sports import to_number

logger = logging.getLogger(__name__)

# Fields that commonly carry the generated text (or a nested object)
TEXT_FIELDS = ("response", "completion", "output", "text", "content", "generated_text", "message")
# Fields that commonly carry a list of candidate generations
CANDIDATE_FIELDS = ("results", "generations", "choices", "candidates", "outputs")

# Envelopes observed in practice nest at most a few levels deep
MAX_DEPTH = 3

DEFAULT_PREDICTION = "Draw"
DEFAULT_EXPLANATION = "No explanation provided."
DEFAULT_RECOMMENDATION = "No recommendation"
DEFAULT_REASONING = "No reasoning provided."

_TRAILING_COMMA = re.compile(r",\s*([}\]])")


def _strip_code_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def _find_object_span(text: str) -> Optional[str]:
    """First '{' up to its matching '}' (or the last '}' if unbalanced)."""
    start = text.find("{")
    if start < 0:
        return None

    depth = 0
    end = -1
    for i, char in enumerate(text[start:], start):
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                end = i + 1
                break

    if end < 0:
        end = text.rfind("}") + 1
    if end <= start:
        return None
    return text[start:end]


def repair_json(json_text: str) -> str:
    """Single quotes to double quotes, trailing commas removed."""
    return _TRAILING_COMMA.sub(r"\1", json_text.replace("'", '"'))


def extract_json(text: Any) -> Optional[dict]:
    """
    Parse the first JSON object found in free text.

    Strict parsing first, then one pass over the repaired text.
    """
    if not text or not isinstance(text, str):
        return None

    json_text = _find_object_span(_strip_code_fences(text))
    if json_text is None:
        return None

    for candidate in (json_text, repair_json(json_text)):
        try:
            parsed = json.loads(candidate)
        except (json.JSONDecodeError, ValueError):
            continue
        return parsed if isinstance(parsed, dict) else None

    logger.debug(f"Unparseable JSON span (first 200 chars): {json_text[:200]}")
    return None


# =============================================================================
# EXTRACTION STRATEGIES
# Each takes (payload, depth) and returns a candidate dict or None.
# =============================================================================


def _from_text(raw: Any, depth: int) -> Optional[dict]:
    if not isinstance(raw, str):
        return None
    parsed = extract_json(raw)
    if parsed is None or "probabilities" in parsed or depth >= MAX_DEPTH:
        return parsed
    # An envelope serialized as text sits at the same depth as its text
    return normalize_incoming_payload(parsed, depth) or parsed


def _already_prediction(raw: Any, depth: int) -> Optional[dict]:
    if isinstance(raw, dict) and raw.get("prediction") and raw.get("probabilities"):
        return raw
    return None


def _from_text_fields(raw: Any, depth: int) -> Optional[dict]:
    if not isinstance(raw, dict) or depth >= MAX_DEPTH:
        return None
    for key in TEXT_FIELDS:
        value = raw.get(key)
        if isinstance(value, (str, dict, list)):
            parsed = normalize_incoming_payload(value, depth + 1)
            if parsed is not None:
                return parsed
    return None


def _from_candidate_fields(raw: Any, depth: int) -> Optional[dict]:
    if depth >= MAX_DEPTH:
        return None
    if isinstance(raw, list):
        entries = raw
    elif isinstance(raw, dict):
        entries = []
        for key in CANDIDATE_FIELDS:
            value = raw.get(key)
            if isinstance(value, list):
                entries.extend(value)
    else:
        return None

    for entry in entries:
        parsed = normalize_incoming_payload(entry, depth + 1)
        if parsed is not None:
            return parsed
    return None


def _loose_object(raw: Any, depth: int) -> Optional[dict]:
    if isinstance(raw, dict) and (raw.get("match_id") or raw.get("probabilities")):
        return raw
    return None


EXTRACTION_STRATEGIES: tuple[Callable[[Any, int], Optional[dict]], ...] = (
    _from_text,
    _already_prediction,
    _from_text_fields,
    _from_candidate_fields,
    _loose_object,
)


def normalize_incoming_payload(raw: Any, depth: int = 0) -> Optional[dict]:
    """Locate the prediction object inside an arbitrary generator payload."""
    if not raw:
        return None
    for strategy in EXTRACTION_STRATEGIES:
        candidate = strategy(raw, depth)
        if candidate is not None:
            return candidate
    return None


# =============================================================================
# VALIDATION
# =============================================================================


def _probability(value: Any) -> Optional[float]:
    if isinstance(value, str):
        value = value.strip().rstrip("%")
    return to_number(value)


def _text(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return default


def _confidence(value: Any) -> float:
    number = _probability(value)
    if number is None:
        return 0.0
    if 1.0 < number <= 100.0:
        # Percent scale
        number = number / 100.0
    return round(min(max(number, 0.0), 1.0), 2)


def normalize_prediction(payload: Any, match_id: int, engine: str = "remote") -> Optional[CanonicalPrediction]:
    """
    Validate a candidate object and coerce it into the canonical schema.

    Only the three probabilities decide validity: each must be a finite
    number and their sum must be positive. Everything else falls back to a
    fixed placeholder.
    """
    if not isinstance(payload, dict):
        return None

    probs = payload.get("probabilities")
    if not isinstance(probs, dict):
        return None

    home = _probability(probs.get("home"))
    draw = _probability(probs.get("draw"))
    away = _probability(probs.get("away"))
    if home is None or draw is None or away is None:
        return None
    # Negative mass is treated as zero
    home, draw, away = max(home, 0.0), max(draw, 0.0), max(away, 0.0)

    total = home + draw + away
    if not math.isfinite(total) or total <= 0:
        return None

    advice = payload.get("betting_advice") or payload.get("bettingAdvice") or {}
    if not isinstance(advice, dict):
        advice = {}

    return CanonicalPrediction(
        match_id=match_id,
        prediction=_text(payload.get("prediction"), DEFAULT_PREDICTION),
        probabilities=Probabilities(
            home=round(home / total, 2),
            draw=round(draw / total, 2),
            away=round(away / total, 2),
        ),
        explanation=_text(payload.get("explanation"), DEFAULT_EXPLANATION),
        betting_advice=BettingAdvice(
            recommendation=_text(advice.get("recommendation"), DEFAULT_RECOMMENDATION),
            confidence=_confidence(advice.get("confidence")),
            reasoning=_text(advice.get("reasoning"), DEFAULT_REASONING),
        ),
        engine=engine,
    )


def normalize_response(
    raw: Any,
    match_id: int,
    engine: str,
    source: str = None,
    allow_declared_engine: bool = False,
) -> Optional[CanonicalPrediction]:
    """
    Full normalization of one generator response.

    Logs a warning that tells "no prediction structure" apart from
    "structure found but probabilities unusable".

    Args:
        raw: Raw generator payload (text, dict or list).
        match_id: Id the prediction is attached to.
        engine: Engine name recorded on the prediction.
        source: Label used in log messages (defaults to engine).
        allow_declared_engine: Prefer an "engine" string declared by the
            payload itself over `engine`.

    Returns:
        CanonicalPrediction or None.
    """
    source = source or engine
    try:
        candidate = normalize_incoming_payload(raw)
        if candidate is None:
            logger.warning(f"{source}: response has no recognizable prediction structure")
            return None

        declared = candidate.get("engine") if allow_declared_engine else None
        if isinstance(declared, str) and declared.strip():
            engine = declared.strip()

        prediction = normalize_prediction(candidate, match_id, engine)
        if prediction is None:
            logger.warning(f"{source}: prediction structure found but probabilities are unusable")
        return prediction
    except Exception as e:
        logger.warning(f"{source}: failed to normalize response: {e}")
        return None
