"""College football statistics API client."""

import logging
import os
from collections import Counter
from typing import Any, Optional

import aiohttp

from ..cache import ResponseCache
from ..config import StatsConfig

logger = logging.getLogger(__name__)

POLL_NAMES = {
    "ap": "AP Top 25",
    "cfp": "Playoff Committee Rankings",
}


class StatsClient:
    """Async client for the college football statistics API."""

    def __init__(self, config: StatsConfig):
        self.config = config
        self._session: Optional[aiohttp.ClientSession] = None

    async def initialize(self) -> None:
        """Create the HTTP session."""
        self._session = aiohttp.ClientSession(
            headers={"Authorization": f"Bearer {self.config.api_key}"}
        )

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session:
            await self._session.close()

    async def _get_cached(self, path: str, cache_name: str, params: Optional[dict] = None) -> Any:
        """
        GET `path`, reusing the cached body while the server's ETag is unchanged.

        A HEAD request fetches the current ETag; the cache key is
        "<url>-<etag>", so a changed resource always misses.
        """
        cache = ResponseCache(os.path.join(self.config.cache_path, cache_name))
        url = f"{self.config.api_url}{path}"
        params = {k: str(v) for k, v in (params or {}).items() if v is not None}

        async with self._session.head(url, params=params) as resp:
            etag = resp.headers.get("etag")
            request_url = str(resp.url)
        cached = cache.load(f"{request_url}-{etag}")
        if cached is not None:
            return cached

        async with self._session.get(url, params=params) as resp:
            resp.raise_for_status()
            result = await resp.json()
            etag = resp.headers.get("etag")

        cache.save(f"{request_url}-{etag}", result)
        return result

    async def get_games(self, week: int, year: Optional[int] = None) -> list[dict]:
        """Get regular season FBS games for one week."""
        params = {
            "year": year or self.config.year,
            "week": week,
            "seasonType": "regular",
            "division": "fbs",
        }
        return await self._get_cached("/games", "games", params)

    async def get_scoreboard(
        self,
        classification: Optional[str] = None,
        conference: Optional[str] = None,
    ) -> list[dict]:
        """Get the live scoreboard."""
        params = {"classification": classification, "conference": conference}
        return await self._get_cached("/scoreboard", "scoreboard", params)

    async def get_teams(self, conference: Optional[str] = None) -> list[dict]:
        """Get team metadata (abbreviations are needed for situations)."""
        return await self._get_cached("/teams", "teams", {"conference": conference})

    async def get_poll_ranks(self, week: int, poll: str, year: Optional[int] = None) -> dict[str, int]:
        """Get {school: rank} for the AP or CFP poll of one week."""
        poll_name = POLL_NAMES.get(poll)
        if poll_name is None:
            raise ValueError(f'Unexpected poll {poll!r}: must be "ap" or "cfp"')

        params = {"year": year or self.config.year, "week": week, "seasonType": "regular"}
        result = await self._get_cached("/rankings", "rankings", params)

        polls = result[0].get("polls", []) if result else []
        ranks = next((p.get("ranks", []) for p in polls if p.get("poll") == poll_name), [])
        return {r["school"]: r["rank"] for r in ranks}

    async def get_venues(self) -> dict[int, dict]:
        """Get venues keyed by id."""
        venues = await self._get_cached("/venues", "venues")
        return {v["id"]: v for v in venues}

    async def get_game_spread(self, game_id: int) -> Optional[str]:
        """
        Get the consensus home spread for a game.

        The value quoted by most providers wins; None when no provider has
        a line.
        """
        result = await self._get_cached("/lines", "lines", {"gameId": game_id})
        lines = (result[0].get("lines") or []) if result else []
        spreads = Counter(str(line["spread"]) for line in lines if line.get("spread") is not None)
        if not spreads:
            return None
        spread, _ = spreads.most_common(1)[0]
        return spread

    async def get_team_matchups(
        self,
        team1: str,
        team2: str,
        min_year: Optional[int] = None,
        max_year: Optional[int] = None,
    ) -> dict:
        """Get the head-to-head record of two teams."""
        params = {"team1": team1, "team2": team2, "minYear": min_year, "maxYear": max_year}
        return await self._get_cached("/teams/matchup", "teams/matchup", params)
