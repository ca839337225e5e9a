"""
Client for the iTunes podcast directory search API.
"""

import asyncio
import logging
from dataclasses import dataclass

import aiohttp

from podcast_cli.exceptions import NetworkError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchResult:
    name: str
    feed_url: str | None


class SearchClient:
    """Looks up podcasts by free-text term."""

    BASE_URL = "https://itunes.apple.com/search"

    def __init__(self, session: aiohttp.ClientSession, base_url: str | None = None):
        self.session = session
        self.base_url = base_url or self.BASE_URL

    async def search(self, term: str, limit: int = 25) -> list[SearchResult]:
        """
        Raises:
            NetworkError: If the directory cannot be queried.
        """
        params = {"media": "podcast", "entity": "podcast", "term": term, "limit": limit}
        try:
            async with self.session.get(self.base_url, params=params) as response:
                response.raise_for_status()
                # The API answers with a text/javascript content type
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise NetworkError(f"Podcast search failed: {e}") from e

        results = [
            SearchResult(
                name=item.get("collectionName") or item.get("trackName") or "",
                feed_url=item.get("feedUrl"),
            )
            for item in data.get("results", [])
        ]
        log.debug(f"Search for '{term}' returned {len(results)} results.")
        return results
