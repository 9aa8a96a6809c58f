"""API-Sports (api-football v3 / api-basketball v1) history provider."""

import logging
import time
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Optional

import httpx

from matchcast.config import Settings, get_settings
from matchcast.etl.base import HistoryProvider, MatchData
from matchcast.models import Match
from matchcast.sports import BASKETBALL, FOOTBALL, compose_match_id, to_number
from matchcast.store import MatchStore
from matchcast.telemetry import record_provider_request

logger = logging.getLogger(__name__)

FOOTBALL_BASE_URL = "https://v3.football.api-sports.io/fixtures"
BASKETBALL_BASE_URL = "https://v1.basketball.api-sports.io/games"

FOOTBALL_HOST = "v3.football.api-sports.io"
BASKETBALL_HOST = "v1.basketball.api-sports.io"

LIVE_STATUS_CODES = {
    FOOTBALL: ["1H", "2H", "HT", "ET", "BT", "P", "LIVE"],
    BASKETBALL: ["Q1", "Q2", "Q3", "Q4", "OT", "BT", "LIVE"],
}

UPCOMING_STATUS_CODES = {
    FOOTBALL: ["NS", "TBD", "TBA", "PST", "SUSP", "CANC", "INT", "POST"],
    BASKETBALL: ["NS", "Not Started", "Scheduled", "TBD", "PST", "SUSP"],
}

# Upper bound of days scanned when football "next=N" returns nothing
UPCOMING_FALLBACK_MAX_DAYS = 7


def parse_iso_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string into a naive UTC datetime."""
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _from_timestamp(value: Any) -> Optional[datetime]:
    number = to_number(value)
    if number is None:
        return None
    return datetime.fromtimestamp(number, tz=timezone.utc).replace(tzinfo=None)


def _as_int(value: Any) -> Optional[int]:
    number = to_number(value)
    if number is None or not number.is_integer():
        return None
    return int(number)


def _score(value: Any) -> Optional[int]:
    # Scores arrive as JSON numbers; strings are not trusted as results
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return _as_int(value)


def _status_code(raw: Any) -> Optional[str]:
    if isinstance(raw, dict):
        return raw.get("short") or raw.get("long")
    if isinstance(raw, str):
        return raw
    return None


def map_football_fixture(payload: dict) -> Optional[MatchData]:
    """Map an api-football fixture into MatchData. None if it has no usable id."""
    if not isinstance(payload, dict):
        return None

    fixture = payload.get("fixture") or {}
    teams = payload.get("teams") or {}
    goals = payload.get("goals") or {}
    home = teams.get("home") or {}
    away = teams.get("away") or {}

    match_id = compose_match_id(
        fixture.get("id") or payload.get("id") or payload.get("match_id"), FOOTBALL
    )
    if match_id is None:
        return None

    match_date = (
        parse_iso_datetime(fixture.get("date"))
        or _from_timestamp(fixture.get("timestamp"))
        or parse_iso_datetime(payload.get("date"))
    )

    return MatchData(
        match_id=match_id,
        sport=FOOTBALL,
        date=match_date,
        status=_status_code(fixture.get("status")),
        home_team_id=_as_int(home.get("id")),
        away_team_id=_as_int(away.get("id")),
        home_team=home.get("name"),
        away_team=away.get("name"),
        home_goals=_score(goals.get("home")),
        away_goals=_score(goals.get("away")),
    )


def _basketball_date(game: dict) -> Optional[datetime]:
    raw_date = game.get("date")
    if isinstance(raw_date, str):
        if "T" in raw_date:
            return parse_iso_datetime(raw_date)
        raw_time = game.get("time") if isinstance(game.get("time"), str) else "00:00"
        parsed = parse_iso_datetime(f"{raw_date}T{raw_time}")
        if parsed is not None:
            return parsed

    parsed = _from_timestamp(game.get("timestamp"))
    if parsed is not None:
        return parsed

    raw_time = game.get("time")
    if isinstance(raw_time, dict):
        return parse_iso_datetime(raw_time.get("datetime"))
    return None


def map_basketball_game(payload: dict) -> Optional[MatchData]:
    """Map an api-basketball game into MatchData. None if it has no usable id."""
    if not isinstance(payload, dict):
        return None

    teams = payload.get("teams") or {}
    scores = payload.get("scores") or {}
    home = teams.get("home") or {}
    away = teams.get("away") or {}
    home_scores = scores.get("home") or {}
    away_scores = scores.get("away") or {}

    match_id = compose_match_id(
        payload.get("id") or payload.get("game_id") or payload.get("match_id"), BASKETBALL
    )
    if match_id is None:
        return None

    home_total = home_scores.get("total")
    if home_total is None:
        home_total = home_scores.get("points")
    away_total = away_scores.get("total")
    if away_total is None:
        away_total = away_scores.get("points")

    return MatchData(
        match_id=match_id,
        sport=BASKETBALL,
        date=_basketball_date(payload),
        status=_status_code(payload.get("status")),
        home_team_id=_as_int(home.get("id")),
        away_team_id=_as_int(away.get("id")),
        home_team=home.get("name"),
        away_team=away.get("name"),
        home_goals=_score(home_total),
        away_goals=_score(away_total),
    )


MAPPERS: dict[str, Callable[[dict], Optional[MatchData]]] = {
    FOOTBALL: map_football_fixture,
    BASKETBALL: map_basketball_game,
}


def resolve_basketball_season(settings: Settings, today: Optional[date] = None) -> str:
    """Configured season, else "YYYY-YYYY+1" with the season rolling over in July."""
    if settings.API_BASKETBALL_SEASON:
        return settings.API_BASKETBALL_SEASON
    today = today or datetime.utcnow().date()
    if today.month >= 7:
        return f"{today.year}-{today.year + 1}"
    return f"{today.year - 1}-{today.year}"


class APISportsProvider(HistoryProvider):
    """
    History provider backed by API-Sports.

    Fetched matches are mapped to the canonical match shape and upserted
    through `session_factory` before being returned.
    """

    def __init__(
        self,
        session_factory: Callable,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings or get_settings()
        self.session_factory = session_factory
        self.timezone = self.settings.API_TIMEZONE
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.settings.API_TIMEOUT_SECONDS))
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def _api_key(self, sport: str) -> str:
        if sport == BASKETBALL:
            return self.settings.basketball_api_key
        return self.settings.API_FOOTBALL_KEY

    def _base_url(self, sport: str) -> str:
        return BASKETBALL_BASE_URL if sport == BASKETBALL else FOOTBALL_BASE_URL

    def _headers(self, sport: str) -> dict:
        return {
            "x-apisports-key": self._api_key(sport),
            "x-rapidapi-host": BASKETBALL_HOST if sport == BASKETBALL else FOOTBALL_HOST,
        }

    async def _request(self, sport: str, url: str, params: dict, label: str) -> list[dict]:
        """
        GET an API-Sports endpoint and return its `response` array.

        Missing keys, HTTP failures and API-level errors are logged and
        yield an empty list.
        """
        if not self._api_key(sport):
            logger.warning(f"{label}: no API key configured for {sport}, skipping request")
            return []

        client = await self._get_client()
        start_time = time.time()
        try:
            response = await client.get(url, params=params, headers=self._headers(sport))
            latency_ms = (time.time() - start_time) * 1000
            record_provider_request(
                sport=sport, entity=_entity(label), status_code=response.status_code, latency_ms=latency_ms
            )

            if response.status_code != 200:
                logger.warning(f"{label} failed: HTTP {response.status_code}")
                return []

            data = response.json() or {}
            if data.get("errors"):
                logger.warning(f"{label} API error: {data['errors']}")
                return []

            items = data.get("response")
            return items if isinstance(items, list) else []

        except httpx.TimeoutException:
            latency_ms = (time.time() - start_time) * 1000
            record_provider_request(sport=sport, entity=_entity(label), status_code=0, latency_ms=latency_ms)
            logger.warning(f"{label} timed out after {latency_ms:.0f}ms")
            return []
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"{label} failed: {e}")
            return []

    async def _store(self, sport: str, payloads: list[dict]) -> list[MatchData]:
        mapper = MAPPERS[sport]
        matches = [m for m in (mapper(p) for p in payloads) if m is not None]
        if not matches:
            return []

        async with self.session_factory() as session:
            await MatchStore(session).upsert_matches(m.to_model() for m in matches)
        logger.info(f"Stored {len(matches)} {sport} matches")
        return matches

    async def backfill_team_history(self, team_id: int, limit: int, sport: str) -> list[MatchData]:
        if not team_id:
            return []

        params = {"team": str(team_id), "timezone": self.timezone}
        if sport == BASKETBALL:
            # api-basketball has no "last" filter; the season bounds the result
            params["season"] = resolve_basketball_season(self.settings)
        else:
            params["last"] = str(limit)

        payloads = await self._request(
            sport, self._base_url(sport), params, f"Team history {sport}/{team_id}"
        )
        if sport == BASKETBALL:
            payloads = _latest(payloads, limit, sport)
        return await self._store(sport, payloads)

    async def backfill_head_to_head(
        self,
        team_a_id: int,
        team_b_id: int,
        limit: int,
        sport: str,
    ) -> list[MatchData]:
        if not team_a_id or not team_b_id:
            return []

        params = {"h2h": f"{team_a_id}-{team_b_id}", "timezone": self.timezone}
        if sport == BASKETBALL:
            params["season"] = resolve_basketball_season(self.settings)
            url = BASKETBALL_BASE_URL
        else:
            params["last"] = str(limit)
            url = f"{FOOTBALL_BASE_URL}/headtohead"

        payloads = await self._request(
            sport, url, params, f"Head-to-head {sport} {team_a_id} vs {team_b_id}"
        )
        if sport == BASKETBALL:
            payloads = _latest(payloads, limit, sport)
        return await self._store(sport, payloads)

    async def fetch_matches(
        self,
        sport: str,
        mode: str = "live",
        limit: int = 20,
        date_range: Optional[str] = None,
    ) -> list[MatchData]:
        params = {"timezone": self.timezone}
        if sport == BASKETBALL:
            params["season"] = resolve_basketball_season(self.settings)

        today = datetime.utcnow().date().isoformat()
        if mode == "upcoming":
            if date_range == "today":
                params["date"] = today
            else:
                params["next"] = str(limit)
        else:
            params["live"] = "all"

        payloads = await self._request(sport, self._base_url(sport), params, f"Fixtures {sport}/{mode}")

        if not payloads and sport == FOOTBALL and mode == "upcoming":
            payloads = await self._upcoming_fallback(limit, date_range)

        return await self._store(sport, payloads[:limit] if mode == "upcoming" else payloads)

    async def _upcoming_fallback(self, limit: int, date_range: Optional[str]) -> list[dict]:
        """Scan football fixtures day by day when `next=N` comes back empty."""
        days = 1 if date_range == "today" else min(max(limit, 1), UPCOMING_FALLBACK_MAX_DAYS)
        start = datetime.utcnow().date()

        results: list[dict] = []
        for offset in range(days):
            if len(results) >= limit:
                break
            day = (start + timedelta(days=offset)).isoformat()
            payloads = await self._request(
                FOOTBALL,
                FOOTBALL_BASE_URL,
                {"timezone": self.timezone, "date": day},
                f"Upcoming fallback {day}",
            )
            results.extend(payloads[: limit - len(results)])
        return results

    async def load_matches(
        self,
        sport: str,
        mode: str = "live",
        limit: int = 20,
        date_range: Optional[str] = None,
    ) -> list[Match]:
        """Stored live or upcoming matches, selected by this API's status codes."""
        table = LIVE_STATUS_CODES if mode == "live" else UPCOMING_STATUS_CODES
        statuses = table.get(sport, table[FOOTBALL])
        async with self.session_factory() as session:
            return await MatchStore(session).list_matches(
                sport, statuses, mode=mode, limit=limit, date_range=date_range
            )


def _latest(payloads: list[dict], limit: int, sport: str) -> list[dict]:
    """Keep the `limit` most recent finished games of a season listing."""
    mapper = MAPPERS[sport]
    dated = []
    for payload in payloads:
        mapped = mapper(payload)
        if mapped is None or mapped.date is None:
            continue
        if mapped.home_goals is None or mapped.away_goals is None:
            continue
        dated.append((mapped.date, payload))
    dated.sort(key=lambda item: item[0], reverse=True)
    return [payload for _, payload in dated[:limit]]


def _entity(label: str) -> str:
    """Metric label from a request label ("Team history football/33" -> "team")."""
    return label.split(" ", 1)[0].lower()
