"""
Utilities for handling the podcast directory layout, file names and extensions.
"""

import logging
import os
from pathlib import Path
from urllib.parse import urlparse

from pathvalidate import sanitize_filename

log = logging.getLogger(__name__)

STATE_FILE_NAME = ".subscriptions.json"
LEGACY_STATE_FILE_NAME = ".subscriptions"
CONFIG_FILE_NAME = ".config.ini"
FEED_CACHE_DIR_NAME = ".rss"
PARTIAL_SUFFIX = ".part"
MAX_FILENAME_BYTES = 255
MAX_EXTENSION_LENGTH = 8

MIME_EXTENSIONS = {
    "audio/mpeg": "mp3",
    "audio/mp4": "m4a",
    "audio/aac": "m4a",
    "audio/ogg": "ogg",
    "audio/vorbis": "ogg",
    "audio/opus": "opus",
}


def get_podcast_dir() -> Path:
    """Returns the media root: ``$PODCAST`` if set, otherwise ``~/Podcasts``."""
    if env_dir := os.getenv("PODCAST"):
        return Path(env_dir).expanduser()
    return Path("~/Podcasts").expanduser()


def get_state_file(podcast_dir: Path) -> Path:
    return podcast_dir / STATE_FILE_NAME


def get_config_file(podcast_dir: Path) -> Path:
    return podcast_dir / CONFIG_FILE_NAME


def get_feed_cache_dir(podcast_dir: Path) -> Path:
    return podcast_dir / FEED_CACHE_DIR_NAME


def create_dir(directory_path: Path) -> None:
    """Creates a directory if it does not already exist."""
    directory_path.mkdir(parents=True, exist_ok=True)


def sanitize_title(title: str, max_bytes: int = MAX_FILENAME_BYTES) -> str:
    """
    Makes a podcast or episode title safe to use as a single path component,
    cut to at most ``max_bytes`` bytes of the file system encoding.
    """
    return sanitize_filename(title.strip(), platform="auto", max_len=max_bytes).strip()


def extension_for(mime_type: str | None, url: str | None) -> str | None:
    """
    Picks the file extension for an enclosure: the MIME type wins, otherwise the
    trailing suffix of the URL path is used.
    """
    if mime_type and (ext := MIME_EXTENSIONS.get(mime_type.lower().strip())):
        return ext
    if url:
        suffix = Path(urlparse(url).path).suffix
        if 1 < len(suffix) <= MAX_EXTENSION_LENGTH + 1:
            return suffix[1:].lower()
    return None


def episode_filename(title: str, ext: str | None) -> str:
    """
    Builds ``<title>.<ext>``, leaving the title bare when no extension is known.
    The title is shortened so that the name plus the partial-download suffix
    still fits in a single path component.
    """
    suffix = f".{ext}" if ext else ""
    budget = MAX_FILENAME_BYTES - len((suffix + PARTIAL_SUFFIX).encode())
    stem = sanitize_title(title, max_bytes=budget)
    if not ext:
        return stem
    return f"{stem.rstrip('.')}{suffix}"


def already_downloaded(directory: Path) -> set[str]:
    """
    Returns the names (file name minus extension) of the finished files in a
    podcast directory. Partial downloads are not counted.
    """
    if not directory.is_dir():
        return set()
    names = set()
    try:
        for entry in directory.iterdir():
            if entry.is_file() and entry.suffix != PARTIAL_SUFFIX:
                names.add(entry.stem)
    except OSError as e:
        log.warning(f"Could not list '{directory}': {e}")
    return names
