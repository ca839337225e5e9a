"""
Creates the shared aiohttp session used for feeds, probes and media transfers.
"""

import logging

import aiohttp

from podcast_cli import __version__

log = logging.getLogger(__name__)

USER_AGENT = f"podcast-cli/{__version__}"


def create_session(max_workers: int = 8) -> aiohttp.ClientSession:
    """
    Builds a ClientSession tuned for the worker pool. One session is created per
    command run and shared by every task.

    Compression is disabled so that byte counts and resume offsets refer to the
    bytes actually stored on disk.

    Args:
        max_workers: Number of concurrent workers, used to size the connection pool.
    """
    connector = aiohttp.TCPConnector(
        limit=max_workers * 2,  # Feeds and media together
        limit_per_host=max_workers,
        ttl_dns_cache=600,  # 10 minutes
        keepalive_timeout=30,
        enable_cleanup_closed=True,
        force_close=False,
    )
    timeout = aiohttp.ClientTimeout(total=None, sock_connect=15, sock_read=90)
    log.debug(f"Creating HTTP session with limit_per_host={max_workers}")
    return aiohttp.ClientSession(
        connector=connector,
        timeout=timeout,
        headers={
            "Accept-Encoding": "identity",
            "User-Agent": USER_AGENT,
        },
    )
