"""
Shared fixtures and helpers: sample feeds and a local range-aware media server.
"""

from pathlib import Path
from xml.sax.saxutils import escape

import pytest
from aiohttp import web

from podcast_cli.models.episode import Episode


def build_rss(title: str, items: list[tuple[str, str]], mime: str = "audio/mpeg") -> bytes:
    """Builds an RSS 2.0 document; ``items`` are (episode title, enclosure url), newest first."""
    entries = "".join(
        f"<item><title>{escape(item_title)}</title>"
        f'<enclosure url="{escape(url)}" type="{mime}" length="0"/></item>'
        for item_title, url in items
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<rss version="2.0"><channel><title>{escape(title)}</title>'
        f"<link>http://example.com</link><description>test</description>"
        f"{entries}</channel></rss>"
    ).encode()


def make_episodes(count: int, podcast_title: str = "Show") -> list[Episode]:
    """Episodes titled ``Episode <n>``, newest (highest n) first."""
    return [
        Episode(
            title=f"Episode {n}",
            enclosure_url=f"http://example.invalid/ep{n}.mp3",
            mime_type="audio/mpeg",
            podcast_title=podcast_title,
        )
        for n in range(count, 0, -1)
    ]


class MediaServer:
    """An aiohttp application serving byte payloads with optional range support."""

    def __init__(self, honor_range: bool = True):
        self.honor_range = honor_range
        self.files: dict[str, bytes] = {}
        self.feeds: dict[str, bytes] = {}
        self.failures: dict[str, list[int]] = {}
        self.requests: list[tuple[str, str, str | None]] = []

        self.app = web.Application()
        self.app.router.add_get("/media/{name}", self.media)
        self.app.router.add_get("/feeds/{name}", self.feed)

    async def feed(self, request: web.Request) -> web.Response:
        name = request.match_info["name"]
        if name not in self.feeds:
            raise web.HTTPNotFound()
        return web.Response(body=self.feeds[name], content_type="application/rss+xml")

    async def media(self, request: web.Request) -> web.Response:
        name = request.match_info["name"]
        range_header = request.headers.get("Range")
        self.requests.append((request.method, name, range_header))

        if name not in self.files:
            raise web.HTTPNotFound()
        if request.method == "GET" and self.failures.get(name):
            return web.Response(status=self.failures[name].pop(0))

        payload = self.files[name]
        if range_header and self.honor_range:
            start = int(range_header.split("=", 1)[1].rstrip("-"))
            if start >= len(payload):
                return web.Response(
                    status=416, headers={"Content-Range": f"bytes */{len(payload)}"}
                )
            return web.Response(
                status=206,
                body=payload[start:],
                headers={
                    "Content-Range": f"bytes {start}-{len(payload) - 1}/{len(payload)}"
                },
            )
        return web.Response(body=payload)

    def gets(self, name: str) -> list[str | None]:
        """Range headers of the GET requests made for one file."""
        return [rng for method, n, rng in self.requests if method == "GET" and n == name]


@pytest.fixture
def podcast_dir(tmp_path: Path, monkeypatch) -> Path:
    directory = tmp_path / "Podcasts"
    directory.mkdir()
    monkeypatch.setenv("PODCAST", str(directory))
    return directory
