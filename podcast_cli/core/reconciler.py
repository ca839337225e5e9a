"""
Refreshes subscriptions concurrently and folds the outcomes into a new snapshot.

Each refresh task re-fetches one feed, caches the raw document, downloads the
newly published episodes and reports the feed's total episode count. The
coordinator waits for every task, then applies the counts in one step, so the
subscription list is never touched while tasks are still running.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

from rich.markup import escape

from podcast_cli.api.feeds import FeedClient, parse_feed
from podcast_cli.exceptions import AlreadyExistsError
from podcast_cli.models.config import AppConfig
from podcast_cli.models.episode import Feed, TransferResult
from podcast_cli.models.state import Subscription
from podcast_cli.storage.feed_cache import FeedCache

from .resolver import LatestSelector, find_subscriptions, resolve
from .transfer import TransferEngine

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefreshError:
    """A subscription whose refresh failed outright; its state is left as it was."""

    title: str
    error: Exception

    def __str__(self) -> str:
        return f"{self.title}: {self.error}"


@dataclass(frozen=True)
class RefreshOutcome:
    """What one refresh task produced."""

    total_episodes: int
    results: tuple[TransferResult, ...] = ()


def new_episode_count(feed_count: int, known_count: int, limit: int | None) -> int:
    """Number of newest episodes to fetch: the unseen ones, capped by ``limit``."""
    unseen = max(feed_count - known_count, 0)
    if limit is None:
        return unseen
    return min(unseen, limit)


class StateReconciler:
    """Coordinates subscription refreshes, subscribing and unsubscribing."""

    def __init__(
        self,
        feed_client: FeedClient,
        engine: TransferEngine,
        feed_cache: FeedCache,
        podcast_dir: Path,
    ):
        self.feed_client = feed_client
        self.engine = engine
        self.feed_cache = feed_cache
        self.podcast_dir = podcast_dir
        self.transfer_results: list[TransferResult] = []

    async def refresh_subscription(
        self, subscription: Subscription, limit: int | None, feed: Feed | None = None
    ) -> RefreshOutcome:
        """
        Refreshes one subscription and downloads its new episodes.

        Returns the feed's total episode count whatever happened to the downloads.

        Raises:
            NetworkError, FeedError: If the feed cannot be fetched or parsed.
            FilesystemError: If the feed document cannot be cached.
        """
        log.info(f"Updating [bold]{escape(subscription.title)}[/bold]")
        if feed is None:
            feed = await self.feed_client.fetch(subscription.url)
        await asyncio.to_thread(self.feed_cache.write, feed.title, feed.raw)

        total = len(feed.episodes)
        count = new_episode_count(total, subscription.num_episodes, limit)
        results: list[TransferResult] = []
        if count > 0:
            intents = resolve(
                feed.title, feed.episodes, LatestSelector(count), self.podcast_dir
            )
            if intents:
                log.info(
                    f"Downloading {len(intents)} new episode(s) of "
                    f"[bold]{escape(feed.title)}[/bold]"
                )
                results = await self.engine.run(intents)
        return RefreshOutcome(total, tuple(results))

    async def refresh_all(
        self, subscriptions: list[Subscription], config: AppConfig
    ) -> tuple[list[Subscription], list[RefreshError]]:
        """
        Refreshes every subscription concurrently.

        Returns a new list in which each successfully refreshed subscription carries
        its feed's current episode count, plus one error per failed refresh. The
        input list is not modified.
        """
        log.info("Checking for new episodes...")
        limit = config.download_subscription_limit
        outcomes = await asyncio.gather(
            *(self.refresh_subscription(sub, limit) for sub in subscriptions),
            return_exceptions=True,
        )

        updated = list(subscriptions)
        errors = []
        for index, outcome in enumerate(outcomes):
            subscription = subscriptions[index]
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                log.error(
                    f"[red]✗ Could not refresh '{escape(subscription.title)}': "
                    f"{escape(str(outcome))}[/red]"
                )
                errors.append(RefreshError(subscription.title, outcome))
                continue
            self.transfer_results.extend(outcome.results)
            updated[index] = subscription.model_copy(
                update={"num_episodes": outcome.total_episodes}
            )
        log.info("Done.")
        return updated, errors

    async def subscribe(
        self, subscriptions: list[Subscription], url: str, config: AppConfig
    ) -> list[Subscription]:
        """
        Adds a feed to the subscription list and downloads up to
        ``auto_download_limit`` of its newest episodes.

        Raises:
            AlreadyExistsError: If the feed's URL or title is already subscribed.
            NetworkError, FeedError: If the feed cannot be fetched or parsed.
        """
        known_urls = {sub.url for sub in subscriptions}
        if url in known_urls:
            raise AlreadyExistsError(f"Already subscribed to {url}.")

        raw = await self.feed_client.fetch_raw(url)
        feed = parse_feed(raw)
        known_titles = {sub.title for sub in subscriptions}
        if feed.title in known_titles:
            raise AlreadyExistsError(f"Already subscribed to '{feed.title}'.")

        subscription = Subscription(title=feed.title, url=url, num_episodes=0)
        limit = config.auto_download_limit
        if limit:
            log.info(f"Subscribe auto-download limit set to: {limit}")
        outcome = await self.refresh_subscription(subscription, limit, feed=feed)
        self.transfer_results.extend(outcome.results)
        return [
            *subscriptions,
            subscription.model_copy(update={"num_episodes": outcome.total_episodes}),
        ]

    def remove(
        self, subscriptions: list[Subscription], pattern: str
    ) -> tuple[list[Subscription], list[Subscription]]:
        """
        Unsubscribes from the first podcast matching ``pattern`` (or every podcast
        for ``"*"``) and drops its cached feed. Downloaded episodes are kept.

        Returns the remaining and the removed subscriptions.
        """
        if pattern == "*":
            removed = list(subscriptions)
        else:
            removed = find_subscriptions(subscriptions, pattern)[:1]
        for sub in removed:
            self.feed_cache.delete(sub.title)
        removed_titles = {sub.title for sub in removed}
        remaining = [sub for sub in subscriptions if sub.title not in removed_titles]
        return remaining, removed

