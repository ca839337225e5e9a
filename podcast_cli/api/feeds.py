"""
Fetches podcast feeds over HTTP and parses them into ``Feed`` records.
"""

import asyncio
import logging

import aiohttp
import feedparser

from podcast_cli.exceptions import FeedError, NetworkError
from podcast_cli.models.episode import Episode, Feed
from podcast_cli.utils.path import sanitize_title

log = logging.getLogger(__name__)


def _enclosure(entry) -> dict:
    for enclosure in entry.get("enclosures", []) or []:
        if enclosure.get("href"):
            return enclosure
    return {}


def _parse_length(value) -> int | None:
    try:
        length = int(value)
    except (TypeError, ValueError):
        return None
    return length if length > 0 else None


def parse_feed(raw: bytes) -> Feed:
    """
    Parses a raw RSS/Atom document. Entries keep the document's order, which for
    podcast feeds is newest-first.

    Raises:
        FeedError: If the document has no channel title and no entries.
    """
    parsed = feedparser.parse(raw)
    channel_title = (parsed.feed.get("title") or "").strip()

    if not channel_title:
        reason = parsed.get("bozo_exception") or "missing channel title"
        raise FeedError(f"Could not parse feed: {reason}")
    if parsed.get("bozo"):
        log.debug(f"Feed '{channel_title}' parsed with warnings: {parsed.bozo_exception}")

    podcast_title = sanitize_title(channel_title)
    episodes = []
    for entry in parsed.entries:
        enclosure = _enclosure(entry)
        title = entry.get("title")
        episodes.append(
            Episode(
                title=sanitize_title(title) if title else None,
                enclosure_url=enclosure.get("href"),
                mime_type=enclosure.get("type"),
                podcast_title=podcast_title,
                length=_parse_length(enclosure.get("length")),
            )
        )
    return Feed(title=podcast_title, episodes=episodes, raw=raw)


class FeedClient:
    """Downloads feed documents with the shared session."""

    def __init__(self, session: aiohttp.ClientSession):
        self.session = session

    async def fetch_raw(self, url: str) -> bytes:
        """
        Raises:
            NetworkError: If the feed cannot be retrieved.
        """
        try:
            async with self.session.get(url, allow_redirects=True) as response:
                response.raise_for_status()
                return await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkError(f"Could not fetch feed {url}: {e}") from e

    async def fetch(self, url: str) -> Feed:
        raw = await self.fetch_raw(url)
        return parse_feed(raw)
