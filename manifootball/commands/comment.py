"""
Comment Command

Posts pre-game commentary (line movement, head-to-head record) on the
markets matched to upcoming games.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Optional

from rich.console import Console

from ..clients import ManifoldClient, ManifoldError, StatsClient
from ..config import Config
from ..modules import GameMatches
from .prompt import NO, QUIT, Prompter
from .util import format_spread, head_to_head_lines, parse_timestamp

logger = logging.getLogger(__name__)

LINE_PATTERN = re.compile(r"\bline: (.+?) ([+-]?\d+(?:\.\d+)?)", re.IGNORECASE)


def line_update(home_team: str, spread: Optional[str], market_description: str) -> Optional[str]:
    """
    Describe how the line moved since the market description was written.

    Returns None when there is no line or it has not changed. The indicator
    is ✨ for a first line, 🔼/🔽 for a bigger/smaller spread and 🔀 when the
    favorite flipped.
    """
    if spread is None:
        return None

    match = LINE_PATTERN.search(market_description or "")
    market_team, market_points = match.groups() if match else (None, None)
    if market_team == home_team and float(market_points) == float(spread):
        return None

    change = "✨"
    if market_team and market_points is not None:
        old, new = float(market_points), float(spread)
        flipped = "🔀" if (old > 0 > new) or (old < 0 < new) else ""
        size = "🔼" if abs(old) < abs(new) else "🔽"
        change = f"{format_spread(market_team, market_points)} {size}{flipped}"

    return f"**Line update:** {change} {format_spread(home_team, spread)}."


def build_comment(game: dict, market: Optional[dict], spread: Optional[str], matchups: dict) -> str:
    """Comment markdown for one game; empty when there is nothing to say."""
    content = []

    update = line_update(game["home_team"], spread, (market or {}).get("textDescription") or "")
    if update:
        content.append(update)

    head_to_head = head_to_head_lines(matchups)
    if head_to_head:
        content.append("**Head-to-head:**")
        content.extend(head_to_head)

    return "\n\n".join(content)


class CommentCommand:
    """Interactive commentary for the upcoming games of one week."""

    def __init__(
        self,
        config: Config,
        matching_games_file: str = "matching-games.json",
        prompter: Optional[Prompter] = None,
        console: Optional[Console] = None,
    ):
        self.config = config
        self.stats = StatsClient(config.stats)
        self.manifold = ManifoldClient(config.manifold)
        self.matches = GameMatches(matching_games_file)
        self.console = console or Console()
        self.prompter = prompter or Prompter(self.console)

    async def run(self, week: int, game_id: Optional[str] = None, now: Optional[datetime] = None) -> None:
        try:
            self.matches.load()
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load or parse matching games: {e}")
            return

        now = now or datetime.now(timezone.utc)

        await self.stats.initialize()
        await self.manifold.initialize()
        try:
            try:
                games = sorted(await self.stats.get_games(week), key=lambda g: g.get("start_date") or "")
            except Exception as e:
                logger.error(f"Could not get game schedule: {e}")
                return

            for game in games:
                if game_id and str(game["id"]) != game_id:
                    continue

                start = parse_timestamp(game.get("start_date"))
                if start is None or start < now:
                    continue

                if not await self._comment_on(game, start):
                    self.console.print("Quitting")
                    break
        finally:
            await self.stats.close()
            await self.manifold.close()

    async def _comment_on(self, game: dict, start: datetime) -> bool:
        """Build and post the comment for one game. Returns False to quit."""
        self.console.rule()
        self.console.print(
            f"{start.astimezone():%Y-%m-%d %H:%M}: "
            f"{game['away_team']} ({game.get('away_pregame_elo')}) @ "
            f"{game['home_team']} ({game.get('home_pregame_elo')})"
        )

        market_id = self.matches.market_for(game["id"])
        if not market_id:
            logger.debug(f"No matching market for game {game['id']} - skipping")
            return True

        market = await self.manifold.get_market(market_id)
        spread = await self.stats.get_game_spread(game["id"])
        matchups = await self.stats.get_team_matchups(game["away_team"], game["home_team"])

        content = build_comment(game, market, spread, matchups)
        if not content:
            self.console.print("No content for comment - skipping")
            return True

        self.console.print(f"Comment:\n{content}", markup=False)

        answer = await self.prompter.confirm("Create comment?")
        if answer == QUIT:
            return False
        if answer == NO:
            self.console.print("Skipped creating comment")
            return True

        try:
            created = await self.manifold.create_comment(market_id, content)
            self.console.print(f"Comment created: {created.get('id') if isinstance(created, dict) else created}")
        except ManifoldError as e:
            logger.error(f"Failed to create comment: {e}")
        return True
