"""
A file-based cache holding the most recent raw feed document of each podcast.
"""

import logging
import shutil
from pathlib import Path

from podcast_cli.exceptions import FilesystemError
from podcast_cli.utils.path import MAX_FILENAME_BYTES, create_dir, sanitize_title

log = logging.getLogger(__name__)

CACHE_SUFFIX = ".xml"


class FeedCache:
    """Stores one ``<sanitized title>.xml`` file per podcast."""

    def __init__(self, cache_dir: Path):
        self.cache_dir = cache_dir

    def path_for(self, podcast_title: str) -> Path:
        stem = sanitize_title(
            podcast_title, max_bytes=MAX_FILENAME_BYTES - len(CACHE_SUFFIX)
        )
        return self.cache_dir / f"{stem}{CACHE_SUFFIX}"

    def write(self, podcast_title: str, raw: bytes) -> Path:
        """
        Replaces the cached document for a podcast.

        Raises:
            FilesystemError: If the file cannot be written.
        """
        path = self.path_for(podcast_title)
        try:
            create_dir(self.cache_dir)
            path.write_bytes(raw)
        except OSError as e:
            raise FilesystemError(
                f"Could not cache feed for '{podcast_title}': {e}"
            ) from e
        return path

    def read(self, podcast_title: str) -> bytes | None:
        """Returns the cached document, or None if the podcast was never fetched."""
        path = self.path_for(podcast_title)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            log.debug(f"Feed cache read failed for '{podcast_title}': {e}")
            return None

    def delete(self, podcast_title: str) -> bool:
        path = self.path_for(podcast_title)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            log.warning(f"Failed to remove cached feed {path.name}: {e}")
            return False

    def clear(self) -> bool:
        """Removes every cached feed."""
        log.info("Clearing all cached feeds...")
        try:
            if self.cache_dir.exists():
                shutil.rmtree(self.cache_dir)
            return True
        except OSError as e:
            log.error(f"Failed to clear feed cache: {e}")
            return False
