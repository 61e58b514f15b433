"""Formatting helpers shared by the market commands."""

import re
from datetime import datetime
from typing import Optional, Union
from zoneinfo import ZoneInfo

EASTERN = ZoneInfo("America/New_York")


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an API timestamp ("2023-09-02T16:00:00.000Z") as an aware datetime."""
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def to_millis(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def format_date(dt: datetime) -> str:
    """YYYY-MM-DD in Eastern time."""
    return dt.astimezone(EASTERN).strftime("%Y-%m-%d")


def format_time(dt: datetime, tz: ZoneInfo = EASTERN, label: str = "ET") -> str:
    """12-hour clock without zero minutes, e.g. "3:30 PM ET" or "7 PM ET"."""
    local = dt.astimezone(tz)
    hour = local.hour % 12 or 12
    am_pm = "PM" if local.hour >= 12 else "AM"
    time = f"{hour}:{local.minute:02d}" if local.minute else f"{hour}"
    return f"{time} {am_pm} {label}"


def format_number(value: Union[str, float]) -> str:
    return f"{float(value):g}"


def format_spread(team: Optional[str], spread: Optional[Union[str, float]]) -> str:
    """Signed spread for a team, e.g. "Georgia -21.5" or "TCU +3"."""
    if not team or spread is None:
        return "unknown"
    number = float(spread)
    sign = "" if number < 0 else "+"
    return f"{team} {sign}{format_number(number)}"


def md_bold_if(condition: bool, text: str) -> str:
    return f"**{text}**" if condition else text


def markdown_to_text(markdown: str) -> str:
    """Plain text of the description markdown, as the market platform stores it."""
    return re.sub(r"\*\*(.+?)\*\*", r"\1", markdown).strip()


def _wins(games: list[dict], team: str) -> int:
    return sum(
        1 for g in games
        if (g["awayScore"] > g["homeScore"] if g["awayTeam"] == team else g["homeScore"] > g["awayScore"])
    )


def head_to_head_lines(matchups: dict) -> list[str]:
    """
    Summarize a head-to-head record as markdown lines.

    The overall record is always given; the last five meetings are added
    when they tell a different story.
    """
    games = matchups.get("games") or []
    if not games:
        return []

    team1, team2 = matchups["team1"], matchups["team2"]
    team1_wins, team2_wins = matchups["team1Wins"], matchups["team2Wins"]
    ties = matchups["ties"]

    overall = [
        md_bold_if(team1_wins > team2_wins, f"{team1} {team1_wins}"),
        md_bold_if(team2_wins > team1_wins, f"{team2} {team2_wins}"),
        f"Tie {ties}",
    ]
    lines = [f"Overall: {', '.join(overall)}"]

    last5 = sorted(games, key=lambda g: g["date"], reverse=True)[:5]
    last5_team1 = _wins(last5, team1)
    last5_team2 = _wins(last5, team2)
    last5_ties = sum(1 for g in last5 if g["homeScore"] == g["awayScore"])

    if (last5_team1, last5_team2, last5_ties) != (team1_wins, team2_wins, ties):
        recent = [
            md_bold_if(last5_team1 > last5_team2, f"{team1} {last5_team1}"),
            md_bold_if(last5_team2 > last5_team1, f"{team2} {last5_team2}"),
            f"Tie {last5_ties}",
        ]
        lines.append(f"Last {len(last5)}: {', '.join(recent)}")

    return lines
