"""
Autocreate Command

Walks one week of the schedule, matches every game to an existing market
or creates one, and keeps the market's groups, close time and description
in sync with the game.
"""

import difflib
import json
import logging
from datetime import datetime, timedelta
from typing import Optional

from rich.console import Console
from rich.text import Text

from ..clients import ManifoldClient, ManifoldError, StatsClient
from ..config import Config
from ..modules import GameMatches
from .prompt import NO, QUIT, YES, Prompter
from .util import (
    EASTERN,
    format_date,
    format_spread,
    format_time,
    head_to_head_lines,
    markdown_to_text,
    parse_timestamp,
    to_millis,
)

logger = logging.getLogger(__name__)

MF_GROUPS = {
    "sports-default": "2hGlgVhIyvVaFyQAREPi",
    "football": "Vcf6CYTTSXAiStbKSqQq",
    "college-football": "ky1VPTuxrLXMnHyajZFp",
    "aac": "569048e1-f4f8-41d8-827b-5a89f4fb6d03",
    "acc": "fd88ff6f-22cd-4b94-ac6b-79e9af2bc16f",
    "big-ten": "d1a6645b-90f0-4c35-a0cf-4bf709402f72",
    "big-12": "7f158dd0-db47-4861-abc1-1713e032109c",
    "conference-usa": "aa391c04-a211-4300-b4e7-08d78c2b52aa",
    "midamerican-conference": "1fc39c2a-b6f4-44c8-b58f-97cc0ca0184d",
    "mountain-west-conference": "53ab54e6-558f-4137-9ac7-bb592f23dd3b",
    "pac12": "1749cf04-48bc-4333-b900-2e1bad326051",
    "sec": "fced6b02-8033-4522-bfae-c3b9c0f9744d",
    "sun-belt-conference": "a51e3e61-c09a-4d77-9513-cbd3d5c86625",
}

CONFERENCE_GROUPS = {
    "American Athletic": "aac",
    "ACC": "acc",
    "Big 12": "big-12",
    "Big Ten": "big-ten",
    "Conference USA": "conference-usa",
    "Mid-American": "midamerican-conference",
    "Mountain West": "mountain-west-conference",
    "Pac-12": "pac12",
    "SEC": "sec",
    "Sun Belt": "sun-belt-conference",
}

BASE_GROUPS = ["sports-default", "football", "college-football"]

# Markets close this long after kickoff
CLOSE_PADDING = timedelta(hours=4)


def team_label(team: str, ranks: dict[str, int]) -> str:
    rank = ranks.get(team)
    return f"#{rank} {team}" if rank else team


def market_groups(game: dict) -> list[str]:
    """Group slugs a game's market belongs in: the base groups plus each conference."""
    groups = list(BASE_GROUPS)
    for conference in (game.get("home_conference"), game.get("away_conference")):
        slug = CONFERENCE_GROUPS.get(conference)
        if slug and slug not in groups:
            groups.append(slug)
    return groups


def needs_start_time(game: dict, start: datetime) -> bool:
    """Kickoff is unknown when flagged TBD or listed as 11:59 PM Eastern."""
    local = start.astimezone(EASTERN)
    return bool(game.get("start_time_tbd")) or (local.hour == 23 and local.minute == 59)


def with_start_time(start: datetime, answer: str) -> datetime:
    """Apply an "HH:MM" Eastern kickoff time to the game's date."""
    hours, _, minutes = answer.partition(":")
    local = start.astimezone(EASTERN)
    return local.replace(hour=int(hours or 0), minute=int(minutes or 0), second=0, microsecond=0)


def build_description(
    game: dict,
    start: datetime,
    venue: Optional[dict],
    spread: Optional[str],
    matchups: dict,
) -> str:
    """Market description markdown: kickoff, venue, line and head-to-head record."""
    first = f"{format_date(start)} at {format_time(start)}"
    if venue:
        first += f" in {venue['city']}, {venue['state']}."
    lines = [first]

    if spread is not None:
        lines.append(f"Line: {format_spread(game['home_team'], spread)}.")

    head_to_head = head_to_head_lines(matchups)
    if head_to_head:
        lines.append("Head-to-head:")
        lines.extend(head_to_head)

    return "\n\n".join(lines)


def description_diff(old: str, new: str) -> Text:
    """Character diff of two descriptions: additions underlined green, removals struck red."""
    text = Text()
    matcher = difflib.SequenceMatcher(None, old, new, autojunk=False)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            text.append(old[i1:i2])
            continue
        if tag in ("delete", "replace"):
            text.append(old[i1:i2], style="red strike")
        if tag in ("insert", "replace"):
            text.append(new[j1:j2], style="green underline")
    return text


class AutocreateCommand:
    """Interactive market creation and upkeep for one week of games."""

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

    async def run(self, week: int, poll: str, game_id: Optional[str] = None) -> None:
        try:
            self.matches.load()
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load or parse matching games: {e}")
            return

        await self.stats.initialize()
        await self.manifold.initialize()
        try:
            try:
                user = await self.manifold.get_user()
                logger.debug(f"Market user id: {user['id']}")
            except Exception as e:
                logger.error(f"Could not get market platform user details: {e}")
                return

            try:
                ranks = await self.stats.get_poll_ranks(week, poll)
                venues = await self.stats.get_venues()
                games = sorted(await self.stats.get_games(week), key=lambda g: g.get("start_date") or "")
            except Exception as e:
                logger.error(f"Could not get schedule data: {e}")
                return

            for game in games:
                if game_id and str(game["id"]) != game_id:
                    continue
                if not await self._process_game(game, user, ranks, venues):
                    self.console.print("Quitting")
                    break
        finally:
            self.matches.save()
            await self.stats.close()
            await self.manifold.close()

    async def _process_game(self, game: dict, user: dict, ranks: dict, venues: dict) -> bool:
        """Match, create and sync one game's market. Returns False to quit."""
        self.console.rule()

        away = team_label(game["away_team"], ranks)
        home = team_label(game["home_team"], ranks)
        matchup = f"{away} ({game.get('away_pregame_elo')}) @ {home} ({game.get('home_pregame_elo')})"

        start = parse_timestamp(game.get("start_date"))
        if start is None:
            logger.warning(f"Game {game['id']} has no start date - skipping")
            return True
        if needs_start_time(game, start):
            self.console.print(matchup)
            start = with_start_time(start, await self.prompter.answer("What time is this game (ET, HH:MM)?"))

        self.console.print(f"{format_date(start)} at {format_time(start)}: {matchup}")

        spread = await self.stats.get_game_spread(game["id"])
        matchups = await self.stats.get_team_matchups(game["away_team"], game["home_team"])
        description = build_description(game, start, venues.get(game.get("venue_id")), spread, matchups)

        market, can_create = await self._find_market(game, user)
        if market == QUIT:
            return False

        if can_create:
            answer = await self.prompter.confirm("Create market?")
            if answer == QUIT:
                return False
            if answer == NO:
                self.console.print("Skipped creating market")
            else:
                new_market = {
                    "question": f"🏈 {game.get('season')} NCAAF: Will {away} beat {home}?",
                    "outcomeType": "BINARY",
                    "descriptionMarkdown": description,
                    "closeTime": to_millis(start + CLOSE_PADDING),
                    "initialProb": 50,
                    "groupId": MF_GROUPS["college-football"],
                }
                answer = await self.prompter.confirm(f"Create market {json.dumps(new_market, indent=2)}?")
                if answer == QUIT:
                    return False
                if answer == YES:
                    market = await self._create_market(game, new_market, description)

        if market:
            return await self._sync_market(game, market, start, description)
        return True

    async def _find_market(self, game: dict, user: dict):
        """
        Return (market, can_create) for a game, or (QUIT, False).

        A previously confirmed match is reused; otherwise the user's own
        markets are searched and the user picks the match.
        """
        market_id = self.matches.market_for(game["id"])
        if market_id:
            logger.debug(f"Game {game['id']} was already matched, getting market {market_id}")
            try:
                market = await self.manifold.get_market(market_id)
            except Exception as e:
                logger.error(f"Could not get matching market {market_id}: {e}")
                return None, True
            if market:
                self.console.print("Found existing market:")
                self.console.print(f"1. {market['question']}")
                self.console.print("Already marked as existing - will not create")
                return market, False
            return None, True

        try:
            results = await self.manifold.search_markets(
                terms=f"{game['away_team']} {game['home_team']}",
                filter="all",
                creator_id=user["id"],
            )
        except Exception as e:
            logger.error(f"Could not search for matching market: {e}")
            return None, True

        candidates = list({m["id"]: m for m in results}.values())
        if not candidates:
            return None, True

        self.console.print("Found existing market(s):")
        for i, candidate in enumerate(candidates, start=1):
            self.console.print(f"{i}. {candidate['question']}")

        selected = await self.prompter.select("Which market matches?", 1)
        if selected == QUIT:
            return QUIT, False

        match = None
        for i, candidate in enumerate(candidates, start=1):
            if selected == i:
                self.console.print("Market matches - will not create")
                self.matches.mark(game["id"], candidate["id"], True)
                match = candidate
            else:
                self.matches.mark(game["id"], candidate["id"], False)

        # search results come back without group slugs
        if match is not None and "groupSlugs" not in match:
            match = await self.manifold.get_market(match["id"]) or match

        return match, match is None

    async def _create_market(self, game: dict, new_market: dict, description: str) -> Optional[dict]:
        try:
            created = await self.manifold.create_market(new_market)
        except ManifoldError as e:
            logger.error(f"Failed to create market: {e}")
            return None

        # the description comes back as a rich-text document
        created["textDescription"] = markdown_to_text(description)
        self.matches.mark(game["id"], created["id"], True)
        self.console.print(f"Market created: {created.get('url', created['id'])}")
        return created

    async def _sync_market(self, game: dict, market: dict, start: datetime, description: str) -> bool:
        """Bring groups, close time and description in line with the game. Returns False to quit."""
        groups = market_groups(game)
        existing = market.get("groupSlugs") or []
        to_add = [g for g in groups if g not in existing]
        to_remove = [g for g in existing if g not in groups]

        if to_add:
            for group in to_add:
                await self._edit_group(market, group, remove=False)
        else:
            self.console.print("All groups already added")

        if to_remove:
            answer = await self.prompter.confirm(f"Remove groups {', '.join(to_remove)} from market {market['question']}?")
            if answer == QUIT:
                return False
            if answer == YES:
                for group in to_remove:
                    await self._edit_group(market, group, remove=True)
        else:
            self.console.print("No groups need removing")

        close_time = to_millis(start + CLOSE_PADDING)
        if market.get("closeTime") != close_time:
            logger.debug(f"market close time {market.get('closeTime')}, correct close time {close_time}")
            answer = await self.prompter.confirm(f"Update close time to {format_time(start + CLOSE_PADDING)}?")
            if answer == QUIT:
                return False
            if answer == YES:
                await self._update(market, close_time=close_time)

        text = markdown_to_text(description)
        current = market.get("textDescription") or ""
        if current != text:
            self.console.print("New:", text, markup=False)
            self.console.print("Changes:", description_diff(current, text))
            answer = await self.prompter.confirm("Update description?")
            if answer == QUIT:
                return False
            if answer == YES:
                await self._update(market, description_markdown=description)

        return True

    async def _edit_group(self, market: dict, group: str, remove: bool) -> None:
        group_id = MF_GROUPS.get(group)
        if group_id is None:
            logger.warning(f"Unknown group {group} on market {market['id']}")
            return
        try:
            await self.manifold.edit_market_group(market["id"], group_id, remove=remove)
            self.console.print(f"Group {group} {'removed from' if remove else 'added to'} market {market['id']}")
        except ManifoldError as e:
            logger.error(f"Failed to {'remove' if remove else 'add'} {group} on market {market['id']}: {e}")

    async def _update(self, market: dict, **changes) -> None:
        try:
            await self.manifold.update_market(market["id"], **changes)
            self.console.print(f"Market {market['id']} updated")
        except ManifoldError as e:
            logger.error(f"Failed to update market {market['id']}: {e}")
