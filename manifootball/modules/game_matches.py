"""
Game Matches Module

Persists which markets were confirmed (or rejected) for each game.

File format: {"<gameId>_<marketId>": true | false, ...}
"""

import json
import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class GameMatches:
    """
    Game to market matches shared by the scoreboard, autocreate and comment
    commands.

    A `true` entry is a confirmed match; `false` records a market that was
    offered for the game and rejected, so it is not suggested again.
    """

    def __init__(self, matches_file: str = "matching-games.json"):
        self.matches_file = Path(matches_file)
        self._matches: dict[str, bool] = {}

    def load(self) -> "GameMatches":
        """
        Load matches from disk. A missing file starts empty; an unreadable
        one raises.
        """
        if not self.matches_file.exists():
            logger.info(f"No existing matches file found at {self.matches_file}")
            return self

        with open(self.matches_file, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Expected an object in {self.matches_file}")

        self._matches = {key: bool(value) for key, value in data.items() if value is not None}
        logger.debug(f"Loaded {len(self._matches)} game matches")
        return self

    def save(self) -> None:
        """Write matches back to disk, pretty printed."""
        self.matches_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.matches_file, "w", encoding="utf-8") as f:
            json.dump(self._matches, f, indent=2)
        logger.debug(f"Saved {len(self._matches)} game matches to {self.matches_file}")

    @staticmethod
    def _key(game_id, market_id: str) -> str:
        return f"{game_id}_{market_id}"

    def mark(self, game_id, market_id: str, matched: bool) -> None:
        self._matches[self._key(game_id, market_id)] = matched

    def market_for(self, game_id) -> Optional[str]:
        """Return the confirmed market id for a game, if any."""
        prefix = f"{game_id}_"
        for key, matched in self._matches.items():
            if matched and key.startswith(prefix):
                return key[len(prefix):]
        return None

    def confirmed(self) -> dict[str, str]:
        """All confirmed matches as {game id: market id}."""
        game_markets = {}
        for key, matched in self._matches.items():
            if not matched:
                continue
            game_id, _, market_id = key.partition("_")
            game_markets[game_id] = market_id
        return game_markets

    def __len__(self) -> int:
        return len(self._matches)

    def __contains__(self, key: str) -> bool:
        return key in self._matches

    def __getitem__(self, key: str) -> bool:
        return self._matches[key]
