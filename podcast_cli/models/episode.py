"""
Plain data records that flow through the download pipeline.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from podcast_cli.utils.path import PARTIAL_SUFFIX


@dataclass(frozen=True)
class Episode:
    """A single feed item. Titles are already sanitized for use as file names."""

    title: str | None
    enclosure_url: str | None
    mime_type: str | None
    podcast_title: str
    length: int | None = None


@dataclass(frozen=True)
class Feed:
    """A parsed podcast feed; ``episodes`` are ordered newest-first."""

    title: str
    episodes: list[Episode] = field(default_factory=list)
    raw: bytes = field(default=b"", repr=False)


@dataclass(frozen=True)
class DownloadIntent:
    """A resolved, not-yet-executed decision to fetch one episode to one path."""

    title: str
    destination_path: Path
    source_url: str
    expected_size_bytes: int | None = None

    @property
    def partial_path(self) -> Path:
        """Where bytes accumulate until the transfer completes."""
        return self.destination_path.with_name(self.destination_path.name + PARTIAL_SUFFIX)


class TransferStatus(str, Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class TransferResult:
    """The outcome of executing one intent."""

    intent: DownloadIntent
    status: TransferStatus
    bytes_written: int = 0
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.status is not TransferStatus.FAILED
