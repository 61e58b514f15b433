"""
Scoreboard Command

Prints the live college football scoreboard next to the matching markets.
"""

import asyncio
import logging
import re
from datetime import datetime, timedelta
from typing import Optional, Union

from rich.console import Console
from rich.table import Table
from rich.text import Text

from ..clients import ManifoldClient, StatsClient
from ..config import Config
from ..modules import GameMatches
from .util import parse_timestamp

logger = logging.getLogger(__name__)

CLASSIFICATIONS = ["fbs", "fcs", "ii", "iii"]
STATUSES = ["scheduled", "in_progress", "completed"]
ORDINALS = {1: "1st", 2: "2nd", 3: "3rd", 4: "4th"}

# (header, justify)
COLUMNS = [
    ("ID", "left"),
    ("Market", "right"),
    ("Start", "left"),
    ("Away", "right"),
    ("Score", "center"),
    ("Home", "left"),
    ("Status", "left"),
    ("Sitch", "left"),
]

Cell = Union[str, Text]


def parse_since(since: str, now: datetime) -> Optional[datetime]:
    """Earliest start time to show: yesterday, today, tomorrow or <N>h; None for any."""
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)

    if since == "yesterday":
        return today - timedelta(days=1)
    if since == "today":
        return today
    if since == "tomorrow":
        return today + timedelta(days=1)

    match = re.fullmatch(r"(\d+)h", since or "", re.IGNORECASE)
    if match:
        return now - timedelta(hours=int(match.group(1)))

    return None


def parse_start(game: dict) -> Optional[datetime]:
    """Local kickoff time, or None when the game has no start date yet."""
    start = parse_timestamp(game.get("startDate"))
    return start.astimezone() if start else None


def starts_after(game: dict, min_date: Optional[datetime]) -> bool:
    """Games without a start date are only shown when there is no lower bound."""
    if min_date is None:
        return True
    start = parse_start(game)
    return start is not None and start >= min_date


def clock_seconds(clock: Optional[str]) -> int:
    """Convert a "HH:MM:SS" or "MM:SS" game clock to seconds."""
    if not clock:
        return 0
    seconds = 0
    for part in clock.split(":"):
        seconds = seconds * 60 + int(part or 0)
    return seconds


def remaining_seconds(game: dict) -> int:
    """Approximate game time left, used to sort the table."""
    period = game.get("period") or 0
    return (4 - period) * 15 * 60 + clock_seconds(game.get("clock"))


def format_market(market: Optional[dict]) -> Cell:
    if not market:
        return "None"
    if market.get("isResolved"):
        if market.get("resolution") == "YES":
            return Text("YES", style="green")
        return Text(market.get("resolution") or "NO", style="red")
    return f"{round(market.get('probability', 0) * 100)}%"


def format_status(game: dict) -> str:
    status = game.get("status")
    if status == "completed":
        return "Final"
    if status != "in_progress":
        return "Scheduled"

    clock = game.get("clock") or ""
    if clock.startswith("00:"):
        clock = clock[3:]
    return f"{ORDINALS.get(game.get('period'), '')} {clock}".strip()


def format_situation(game: dict, teams: dict[int, dict]) -> Cell:
    """Down and distance, highlighted when the offense is in scoring range."""
    status = game.get("status")
    if status == "completed":
        return "Game over"
    if status != "in_progress":
        return "N/A"

    situation = game.get("situation") or ""
    away = teams.get(game["awayTeam"]["id"], {})
    home = teams.get(game["homeTeam"]["id"], {})
    abbreviations = [a for a in (away.get("abbreviation"), home.get("abbreviation")) if a]

    # scoring plays are reported as "<ABBR> touchdown" etc.
    if situation and any(situation.startswith(a) for a in abbreviations):
        return Text(situation, style="bold green")

    possession = game.get("possession")
    if possession == "away":
        defense = home
    elif possession == "home":
        defense = away
    else:
        return "N/A"

    if defense.get("abbreviation"):
        pattern = (
            rf"^(\d+)(?:st|nd|rd|th)\s+&\s+(\d+|goal)\s+at\s+"
            rf"{re.escape(defense['abbreviation'])}\s+(\d+)$"
        )
        match = re.match(pattern, situation, re.IGNORECASE)
        if match:
            in_red_zone = int(match.group(3)) <= 25
            return Text(situation, style="bold red" if in_red_zone else "bold yellow")

    return situation or "Unknown"


def team_cell(name: str, leading: bool) -> Text:
    return Text(name, style="bold" if leading else "")


def build_row(game: dict, week_game: Optional[dict], market: Optional[dict], teams: dict[int, dict]) -> list[Cell]:
    away_points = game["awayTeam"].get("points") or 0
    home_points = game["homeTeam"].get("points") or 0
    in_progress = game.get("status") == "in_progress"
    possession = game.get("possession")

    away_name = week_game["away_team"] if week_game else game["awayTeam"]["name"]
    home_name = week_game["home_team"] if week_game else game["homeTeam"]["name"]

    away_cell = team_cell(away_name, away_points > home_points)
    if in_progress and possession == "away":
        away_cell = Text("● ") + away_cell
    home_cell = team_cell(home_name, home_points > away_points)
    if in_progress and possession == "home":
        home_cell.append(" ●")

    start = parse_start(game)
    score = f"{away_points}-{home_points}" if game.get("status") != "scheduled" else "N/A"

    return [
        str(game["id"]),
        format_market(market),
        start.strftime("%m/%d, %H:%M") if start else "TBD",
        away_cell,
        score,
        home_cell,
        format_status(game),
        format_situation(game, teams),
    ]


def render_table(rows: list[list[Cell]]) -> Table:
    table = Table()
    for header, justify in COLUMNS:
        table.add_column(header, justify=justify)
    for row in rows:
        table.add_row(*row)
    return table


class ScoreboardCommand:
    """Joins the statistics scoreboard with market probabilities."""

    def __init__(
        self,
        config: Config,
        matching_games_file: str = "matching-games.json",
        console: Optional[Console] = None,
    ):
        self.config = config
        self.matches = GameMatches(matching_games_file)
        self.stats = StatsClient(config.stats)
        self.manifold = ManifoldClient(config.manifold)
        self.console = console or Console()

    async def run(
        self,
        week: int,
        classification: str = "fbs",
        conference: Optional[str] = None,
        statuses: Optional[list[str]] = None,
        since: str = "any",
        unresolved: bool = False,
    ) -> None:
        try:
            game_markets = self.matches.load().confirmed()
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load or parse matching games: {e}")
            return

        await self.stats.initialize()
        await self.manifold.initialize()
        try:
            week_games = {g["id"]: g for g in await self.stats.get_games(week)}
            scoreboard = await self.stats.get_scoreboard(classification, conference)
            teams = {t["id"]: t for t in await self.stats.get_teams()}

            min_date = parse_since(since, datetime.now().astimezone())
            logger.debug(f"min_date {min_date}")

            games = [
                g for g in scoreboard
                if (not statuses or g.get("status") in statuses) and starts_after(g, min_date)
            ]

            async def fetch_market(game: dict) -> Optional[dict]:
                market_id = game_markets.get(str(game["id"]))
                return await self.manifold.get_market(market_id) if market_id else None

            markets = await asyncio.gather(*[fetch_market(g) for g in games])

            pairs = [
                (game, market) for game, market in zip(games, markets)
                if not unresolved or not (market and market.get("isResolved"))
            ]
            pairs.sort(key=lambda pair: remaining_seconds(pair[0]))

            rows = [build_row(game, week_games.get(game["id"]), market, teams) for game, market in pairs]
            self.console.print(render_table(rows))
        finally:
            await self.stats.close()
            await self.manifold.close()
