"""
Session counters folded from per-intent transfer results.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

from podcast_cli.models.episode import TransferResult, TransferStatus


@dataclass
class DownloadStats:
    """Tracks statistics for a download session."""

    episodes_downloaded: int = 0
    episodes_skipped: int = 0
    episodes_failed: int = 0
    total_size_downloaded: int = 0
    failed_titles: list[str] = field(default_factory=list)

    def record(self, results: Iterable[TransferResult]) -> None:
        for result in results:
            if result.status is TransferStatus.COMPLETED:
                self.episodes_downloaded += 1
            elif result.status is TransferStatus.SKIPPED:
                self.episodes_skipped += 1
            else:
                self.episodes_failed += 1
                self.failed_titles.append(result.intent.title)
            self.total_size_downloaded += result.bytes_written

    @property
    def total(self) -> int:
        return self.episodes_downloaded + self.episodes_skipped + self.episodes_failed
