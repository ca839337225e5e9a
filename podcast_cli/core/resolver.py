"""
Turns a podcast's episode list and a selection expression into download intents.

Display indices are 1-based and count from the end of the feed's item list:
index ``i`` addresses ``episodes[len(episodes) - i]``. The same numbering is
used by ``podcast ls``, so a number shown there can be passed straight back.
"""

import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path

from podcast_cli.exceptions import NotFoundError, ParseError
from podcast_cli.models.episode import DownloadIntent, Episode
from podcast_cli.models.state import Subscription
from podcast_cli.utils.path import (
    already_downloaded,
    episode_filename,
    extension_for,
    sanitize_title,
)

log = logging.getLogger(__name__)

_LATEST_RE = re.compile(r"^latest\s+([0-9]+)$", re.IGNORECASE)


def is_episode_number(text: str) -> bool:
    """Plain ASCII digits only; superscripts such as '²' pass isdigit() but not int()."""
    return text.isascii() and text.isdigit()


@dataclass(frozen=True)
class IndexSelector:
    index: int


@dataclass(frozen=True)
class RangeSelector:
    indices: frozenset[int]


@dataclass(frozen=True)
class NameSelector:
    text: str
    match_all: bool = False


@dataclass(frozen=True)
class LatestSelector:
    count: int


@dataclass(frozen=True)
class AllSelector:
    pass


Selector = IndexSelector | RangeSelector | NameSelector | LatestSelector | AllSelector


def parse_episode_range(expression: str) -> set[int]:
    """
    Parses ``"1,3-5"`` style lists into the set of display indices they cover.
    Ranges are inclusive and duplicates collapse.

    Raises:
        ParseError: If any segment is not an integer or an ``a-b`` range.
    """
    indices: set[int] = set()
    for segment in expression.split(","):
        segment = segment.strip()
        if "-" in segment:
            bounds = segment.split("-")
            if len(bounds) != 2 or not all(
                is_episode_number(b.strip()) for b in bounds
            ):
                raise ParseError(f"Invalid episode range '{segment}' in '{expression}'.")
            start, end = int(bounds[0]), int(bounds[1])
            indices.update(range(start, end + 1))
        elif is_episode_number(segment):
            indices.add(int(segment))
        else:
            raise ParseError(f"Invalid episode number '{segment}' in '{expression}'.")
    return indices


def parse_selector(
    expression: str | None,
    by_name: bool = False,
    match_all: bool = False,
    latest: int | None = None,
) -> Selector:
    """
    Builds a selector from command-line input.

    Args:
        expression: The episode argument: an index, a ``1,3-5`` list, a name,
            ``"latest N"`` or ``"all"``. None selects by ``latest`` or everything.
        by_name: Treat the expression as a name substring.
        match_all: With a name, select every match instead of the first.
        latest: Number of newest episodes to select when no expression is given.
    """
    if expression is None:
        if latest is not None:
            if latest < 0:
                raise ParseError("--latest must not be negative.")
            return LatestSelector(latest)
        return AllSelector()

    text = expression.strip()
    if not text:
        raise ParseError("Empty episode selector.")
    if by_name:
        return NameSelector(text, match_all)
    if text.lower() == "all":
        return AllSelector()
    if match := _LATEST_RE.match(text):
        return LatestSelector(int(match.group(1)))
    if "-" in text or "," in text:
        return RangeSelector(frozenset(parse_episode_range(text)))
    if is_episode_number(text):
        return IndexSelector(int(text))

    log.info(f"'{text}' is not an episode number, matching by name instead.")
    return NameSelector(text, match_all)


def episode_at(episodes: Sequence[Episode], index: int) -> Episode:
    """
    Returns the episode shown under number ``index``.

    Raises:
        NotFoundError: If the index is outside ``1..len(episodes)``.
    """
    if not 1 <= index <= len(episodes):
        raise NotFoundError(
            f"Episode {index} does not exist (valid: 1-{len(episodes)})."
        )
    return episodes[len(episodes) - index]


def display_index(position: int, total: int) -> int:
    """Inverse of :func:`episode_at`: the number shown for an array position."""
    return total - position


def select_episodes(episodes: Sequence[Episode], selector: Selector) -> list[Episode]:
    """
    Applies a selector to a newest-first episode list, without touching the disk.

    Raises:
        NotFoundError: If an index is out of range or no name matches.
    """
    if isinstance(selector, AllSelector):
        return list(episodes)
    if isinstance(selector, LatestSelector):
        return list(episodes[: selector.count])
    if isinstance(selector, IndexSelector):
        return [episode_at(episodes, selector.index)]
    if isinstance(selector, RangeSelector):
        return [episode_at(episodes, i) for i in sorted(selector.indices)]

    needle = selector.text.lower()
    matches = [ep for ep in episodes if ep.title and needle in ep.title.lower()]
    if not matches:
        raise NotFoundError(f"No episode title contains '{selector.text}'.")
    return matches if selector.match_all else matches[:1]


def build_intent(episode: Episode, podcast_dir: Path) -> DownloadIntent | None:
    """Maps an episode to its destination, or None if it cannot be downloaded."""
    if not episode.title or not episode.enclosure_url:
        return None
    ext = extension_for(episode.mime_type, episode.enclosure_url)
    destination = (
        podcast_dir
        / sanitize_title(episode.podcast_title)
        / episode_filename(episode.title, ext)
    )
    return DownloadIntent(
        title=episode.title,
        destination_path=destination,
        source_url=episode.enclosure_url,
        expected_size_bytes=episode.length,
    )


def resolve(
    podcast_title: str,
    episodes: Sequence[Episode],
    selector: Selector,
    podcast_dir: Path,
) -> list[DownloadIntent]:
    """
    Selects episodes and returns one intent per episode not yet on disk, in
    selection order.
    """
    selected = select_episodes(episodes, selector)
    downloaded = already_downloaded(podcast_dir / sanitize_title(podcast_title))

    intents = []
    for episode in selected:
        intent = build_intent(episode, podcast_dir)
        if intent is None:
            log.warning(
                f"[yellow]Episode '{episode.title or '<untitled>'}' of "
                f"'{podcast_title}' has no downloadable enclosure.[/yellow]"
            )
            continue
        # Compared the same way already_downloaded() names files
        if intent.destination_path.stem in downloaded:
            log.debug(f"Skipping '{episode.title}' (already downloaded).")
            continue
        intents.append(intent)
    return intents


def find_subscriptions(
    subscriptions: Iterable[Subscription], pattern: str
) -> list[Subscription]:
    """
    Returns every subscription whose title matches a case-insensitive regex.

    Raises:
        ParseError: If the pattern is not a valid regular expression.
        NotFoundError: If nothing matches.
    """
    try:
        regex = re.compile(pattern, re.IGNORECASE)
    except re.error as e:
        raise ParseError(f"Invalid podcast pattern '{pattern}': {e}") from e
    matches = [sub for sub in subscriptions if regex.search(sub.title)]
    if not matches:
        raise NotFoundError(f"No subscription matches '{pattern}'.")
    return matches
