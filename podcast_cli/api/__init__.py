"""
Remote Services Layer.

This package handles all communication with remote services: the shared HTTP
session, podcast feed retrieval and parsing, and the podcast directory search.
"""

from .feeds import FeedClient, parse_feed
from .session import create_session
from .search import SearchClient, SearchResult

__all__ = ["FeedClient", "SearchClient", "SearchResult", "create_session", "parse_feed"]
