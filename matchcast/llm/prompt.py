"""Builds the structured prediction prompt sent to the text generators."""

from dataclasses import dataclass
from typing import Optional

from matchcast.models import Match
from matchcast.schemas import FeatureRecord, HistoryContext
from matchcast.sports import BASKETBALL, FOOTBALL, to_number

TEAM_HISTORY_SIZE = 12
H2H_HISTORY_SIZE = 10


@dataclass(frozen=True)
class SportMeta:
    analyst_label: str
    scoring_label: str
    scoring_long: str
    draw_label: str


SPORT_PROMPT_META = {
    FOOTBALL: SportMeta(
        analyst_label="football analyst",
        scoring_label="Goals",
        scoring_long="goal production",
        draw_label="Draw",
    ),
    BASKETBALL: SportMeta(
        analyst_label="basketball analyst",
        scoring_label="Points",
        scoring_long="point production",
        draw_label="Draw",
    ),
}


def get_sport_meta(sport: Optional[str]) -> SportMeta:
    return SPORT_PROMPT_META.get(sport or FOOTBALL, SPORT_PROMPT_META[FOOTBALL])


def _format_date(match: Match) -> str:
    return match.date.date().isoformat() if match.date else "unknown"


def _format_score(value) -> str:
    number = to_number(value)
    if number is None:
        return "?"
    return str(int(number)) if number.is_integer() else str(number)


def summarize_team_history(rows: list[Match], team_name: str) -> dict:
    """Win/draw/loss tally and aggregate score line from the team's view."""
    summary = {"wins": 0, "draws": 0, "losses": 0, "scored": 0.0, "conceded": 0.0}
    for row in rows:
        is_home = row.home_team == team_name
        scored = to_number(row.home_goals if is_home else row.away_goals)
        conceded = to_number(row.away_goals if is_home else row.home_goals)
        if scored is None or conceded is None:
            continue
        summary["scored"] += scored
        summary["conceded"] += conceded
        if scored > conceded:
            summary["wins"] += 1
        elif scored < conceded:
            summary["losses"] += 1
        else:
            summary["draws"] += 1
    return summary


def summarize_head_to_head(rows: list[Match]) -> dict:
    """Home win / away win / draw tally of the listed meetings."""
    summary = {"home_wins": 0, "away_wins": 0, "draws": 0}
    for row in rows:
        home_goals = to_number(row.home_goals)
        away_goals = to_number(row.away_goals)
        if home_goals is None or away_goals is None:
            continue
        if home_goals > away_goals:
            summary["home_wins"] += 1
        elif home_goals < away_goals:
            summary["away_wins"] += 1
        else:
            summary["draws"] += 1
    return summary


def format_team_history(rows: list[Match], team_name: str, title: str, sport: str) -> str:
    """
    One block per team: tally header plus one line per match.

    Example line: ``W 2024-03-01 | H vs Rivals FC | 2-1``
    """
    if not rows:
        return f"{title}: No data available."

    recent = rows[:TEAM_HISTORY_SIZE]
    stats = summarize_team_history(recent, team_name)
    lines = []
    for row in recent:
        is_home = row.home_team == team_name
        opponent = (row.away_team if is_home else row.home_team) or "unknown"
        scored = to_number(row.home_goals if is_home else row.away_goals)
        conceded = to_number(row.away_goals if is_home else row.home_goals)
        if scored is None or conceded is None:
            marker = "?"
        else:
            marker = "W" if scored > conceded else "L" if scored < conceded else "D"
        venue = "H" if is_home else "A"
        lines.append(
            f"{marker} {_format_date(row)} | {venue} vs {opponent} | "
            f"{_format_score(scored)}-{_format_score(conceded)}"
        )

    header = (
        f"{title} (record {stats['wins']}W-{stats['draws']}D-{stats['losses']}L, "
        f"{get_sport_meta(sport).scoring_label} {_format_score(stats['scored'])}:"
        f"{_format_score(stats['conceded'])})"
    )
    return header + ":\n- " + "\n- ".join(lines)


def format_head_to_head(rows: list[Match], title: str, sport: str) -> str:
    """Head-to-head block. Example line: ``H 2024-03-01: Alpha 2-1 Beta``"""
    if not rows:
        return f"{title}: No head-to-head matches found."

    recent = rows[:H2H_HISTORY_SIZE]
    stats = summarize_head_to_head(recent)
    lines = []
    for row in recent:
        home_goals = to_number(row.home_goals)
        away_goals = to_number(row.away_goals)
        if home_goals is None or away_goals is None:
            winner = "?"
        else:
            winner = "H" if home_goals > away_goals else "A" if home_goals < away_goals else "D"
        lines.append(
            f"{winner} {_format_date(row)}: {row.home_team} "
            f"{_format_score(home_goals)}-{_format_score(away_goals)} {row.away_team}"
        )

    header = (
        f"{title} (record {stats['home_wins']} home wins / {stats['away_wins']} away wins / "
        f"{stats['draws']} draws, {get_sport_meta(sport).scoring_label})"
    )
    return header + ":\n- " + "\n- ".join(lines)


def _history_title(team_name: str, rows: list[Match]) -> str:
    if rows:
        return f"Last {min(len(rows), TEAM_HISTORY_SIZE)} matches {team_name}"
    return f"Last matches {team_name}"


def build_prediction_prompt(match: Match, features: FeatureRecord, context: HistoryContext) -> str:
    """Render features and history into the generator prompt. Pure function."""
    sport = context.sport or match.sport or FOOTBALL
    meta = get_sport_meta(sport)
    scoring_short = meta.scoring_label.lower()

    home_block = (
        format_team_history(
            context.home_recent,
            context.home_team,
            _history_title(context.home_team, context.home_recent),
            sport,
        )
        if context.home_team
        else None
    )
    away_block = (
        format_team_history(
            context.away_recent,
            context.away_team,
            _history_title(context.away_team, context.away_recent),
            sport,
        )
        if context.away_team
        else None
    )
    h2h_block = format_head_to_head(
        context.head_to_head,
        f"Head-to-head ({context.home_team or 'home team'} vs {context.away_team or 'away team'})",
        sport,
    )

    lines = [
        f"You are a {meta.analyst_label}. Use the provided features and match history",
        "to produce a well-founded forecast. Respond only with a JSON object with the fields",
        "match_id, prediction, probabilities (home/draw/away), explanation and betting_advice",
        "(recommendation, confidence, reasoning).",
        "",
        f"Match ID: {match.match_id}",
        f"Sport: {sport}",
        f"Home team: {context.home_team or 'unknown'}",
        f"Away team: {context.away_team or 'unknown'}",
        f"home_form (0-1, 1=best): {features.home_form}",
        f"away_form (0-1, 1=best): {features.away_form}",
        f"home_{scoring_short}_avg: {features.home_scoring_avg}",
        f"away_{scoring_short}_avg: {features.away_scoring_avg}",
        "",
        home_block,
        "",
        away_block,
        "",
        h2h_block,
        "",
        f"Consider form trend, {meta.scoring_long}, home/away advantage and head-to-head results.",
        "Answer with the JSON object only, without any additional text.",
    ]
    # Missing team blocks are dropped; blank separators stay
    return "\n".join(line for line in lines if line is not None)
