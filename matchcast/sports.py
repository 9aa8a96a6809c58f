"""
Supported sports and the shared match id space.

API-Sports ids for football fixtures and basketball games overlap, so
basketball ids are shifted by a constant larger than any plausible provider
id. A bare id can then be resolved by testing each sport's offset range.
"""

import math
from typing import Any, Optional

FOOTBALL = "football"
BASKETBALL = "basketball"
DEFAULT_SPORT = FOOTBALL

SPORT_OFFSETS: dict[str, int] = {
    FOOTBALL: 0,
    BASKETBALL: 5_000_000_000,
}

SUPPORTED_SPORTS = tuple(SPORT_OFFSETS)


def to_number(value: Any) -> Optional[float]:
    """Coerce ints, floats and numeric strings; None for anything else."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def parse_match_id(value: Any) -> Optional[int]:
    """Parse a caller-supplied match id. Only non-negative integral values pass."""
    number = to_number(value)
    if number is None or number < 0 or not number.is_integer():
        return None
    return int(number)


def normalize_sport(sport: Optional[str]) -> str:
    if sport and sport.lower() in SPORT_OFFSETS:
        return sport.lower()
    return DEFAULT_SPORT


def compose_match_id(raw_id: Any, sport: str) -> Optional[int]:
    """Shift a provider id into the sport's range."""
    base = parse_match_id(raw_id)
    if base is None:
        return None
    return base + SPORT_OFFSETS.get(sport, 0)


def sport_for_match_id(match_id: int) -> str:
    """The sport whose offset range contains match_id."""
    best_sport, best_offset = DEFAULT_SPORT, 0
    for sport, offset in SPORT_OFFSETS.items():
        if best_offset <= offset <= match_id:
            best_sport, best_offset = sport, offset
    return best_sport


def candidate_match_ids(value: Any) -> list[int]:
    """
    Ids to try, in order, when resolving a caller-supplied id.

    The id itself first, then the id shifted into and out of every non-zero
    offset range.
    """
    base = parse_match_id(value)
    if base is None:
        return []

    candidates = [base]
    for offset in SPORT_OFFSETS.values():
        if offset == 0:
            continue
        candidates.append(base + offset)
        if base >= offset:
            candidates.append(base - offset)

    seen = set()
    ordered = []
    for candidate in candidates:
        if candidate >= 0 and candidate not in seen:
            seen.add(candidate)
            ordered.append(candidate)
    return ordered
