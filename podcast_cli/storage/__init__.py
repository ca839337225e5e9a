"""
Storage Layer.

This package handles all data persistence: the INI configuration file, the
atomically replaced subscription state, and the per-podcast feed cache.
"""

from .config_manager import ConfigManager
from .feed_cache import FeedCache
from .state_store import StateStore

__all__ = ["ConfigManager", "FeedCache", "StateStore"]
