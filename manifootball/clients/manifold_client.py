"""Market platform API client."""

import logging
import os
from typing import Any, Optional

import aiohttp

from ..cache import ResponseCache
from ..config import ManifoldConfig

logger = logging.getLogger(__name__)

RESOLUTIONS = ("YES", "NO", "MKT", "CANCEL")


class ManifoldError(Exception):
    """A write request was rejected by the market platform."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class ManifoldClient:
    """Async client for the prediction market API."""

    def __init__(self, config: ManifoldConfig):
        self.config = config
        self._session: Optional[aiohttp.ClientSession] = None

    async def initialize(self) -> None:
        """Create the HTTP session."""
        self._session = aiohttp.ClientSession(
            headers={"Authorization": f"Key {self.config.api_key}"}
        )

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session:
            await self._session.close()

    async def _get_cached(self, path: str, cache_name: str, params: Optional[dict] = None) -> Any:
        """
        GET `path` through the ETag-keyed response cache.

        Returns None when the resource does not exist.
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
            if resp.status == 404:
                return None
            resp.raise_for_status()
            result = await resp.json()
            etag = resp.headers.get("etag")

        cache.save(f"{request_url}-{etag}", result)
        return result

    async def _post(self, path: str, payload: dict) -> Any:
        """POST JSON and return the decoded response, raising ManifoldError on rejection."""
        url = f"{self.config.api_url}{path}"
        async with self._session.post(url, json=payload) as resp:
            try:
                body = await resp.json(content_type=None)
            except ValueError:
                body = None

            if resp.status >= 400:
                message = body.get("message") if isinstance(body, dict) else None
                raise ManifoldError(message or f"HTTP {resp.status} from {path}", resp.status)
            return body

    # Read endpoints

    async def get_user(self) -> dict:
        """Get the account the API key belongs to."""
        async with self._session.get(f"{self.config.api_url}/me") as resp:
            resp.raise_for_status()
            return await resp.json()

    async def get_market(self, market_id: str) -> Optional[dict]:
        """Get a market by id, or None if it does not exist."""
        market = await self._get_cached(f"/market/{market_id}", "market")
        if market is None:
            logger.warning(f"Market not found: {market_id}")
        return market

    async def search_markets(
        self,
        terms: Optional[str] = None,
        filter: Optional[str] = None,
        creator_id: Optional[str] = None,
    ) -> list[dict]:
        """Search markets by text, optionally limited to one creator."""
        params = {"term": terms, "filter": filter, "creatorId": creator_id}
        return await self._get_cached("/search-markets", "search-markets", params) or []

    # Write endpoints

    async def create_market(self, market: dict) -> dict:
        """Create a market and return it."""
        logger.debug(f"create_market() {market}")
        return await self._post("/market", market)

    async def update_market(
        self,
        market_id: str,
        close_time: Optional[int] = None,
        description_markdown: Optional[str] = None,
    ) -> Any:
        """Update the close time (epoch ms) and/or description of a market."""
        payload = {}
        if close_time is not None:
            payload["closeTime"] = close_time
        if description_markdown is not None:
            payload["descriptionMarkdown"] = description_markdown
        return await self._post(f"/market/{market_id}/update", payload)

    async def edit_market_group(self, market_id: str, group_id: str, remove: bool = False) -> Any:
        """Add a market to a group, or remove it."""
        payload = {"groupId": group_id, "remove": True} if remove else {"groupId": group_id}
        return await self._post(f"/market/{market_id}/group", payload)

    async def resolve_market(self, market_id: str, outcome: str) -> Any:
        """Resolve a market as YES, NO, MKT or CANCEL."""
        if outcome not in RESOLUTIONS:
            raise ValueError(f"Unexpected outcome {outcome!r}")
        return await self._post(f"/market/{market_id}/resolve", {"outcome": outcome})

    async def create_comment(self, market_id: str, content: str) -> dict:
        """Post a markdown comment on a market."""
        return await self._post("/comment", {"contractId": market_id, "markdown": content})
