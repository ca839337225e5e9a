"""
Data Models Layer.

This package contains the pydantic models and dataclasses that define the core
data structures used throughout the application, such as configuration,
persisted state, feed episodes and download intents.
"""

from .config import AppConfig
from .episode import DownloadIntent, Episode, Feed, TransferResult, TransferStatus
from .state import PersistedState, Subscription
from .stats import DownloadStats

__all__ = [
    "AppConfig",
    "DownloadIntent",
    "DownloadStats",
    "Episode",
    "Feed",
    "PersistedState",
    "Subscription",
    "TransferResult",
    "TransferStatus",
]
