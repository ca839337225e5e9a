"""
Defines the command-line interface for the application using Typer.

Every command follows the same lifecycle: load the configuration and the
persisted state, refresh first when the state is stale, run the command on one
event loop with one shared HTTP session, and write the state exactly once at
the end, even when the command failed.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from podcast_cli import __version__
from podcast_cli.api.feeds import FeedClient, parse_feed
from podcast_cli.api.search import SearchClient
from podcast_cli.api.session import create_session
from podcast_cli.core.partitioner import detect_parallelism
from podcast_cli.core.reconciler import StateReconciler
from podcast_cli.core.resolver import (
    AllSelector,
    IndexSelector,
    NameSelector,
    build_intent,
    episode_at,
    find_subscriptions,
    is_episode_number,
    parse_selector,
    resolve,
    select_episodes,
)
from podcast_cli.core.transfer import TransferEngine
from podcast_cli.exceptions import AlreadyExistsError, NotFoundError, PodcastCliError
from podcast_cli.models.config import AppConfig
from podcast_cli.models.episode import Feed
from podcast_cli.models.state import PersistedState, Subscription
from podcast_cli.models.stats import DownloadStats
from podcast_cli.storage.config_manager import ConfigManager
from podcast_cli.storage.feed_cache import FeedCache
from podcast_cli.storage.state_store import StateStore
from podcast_cli.utils.path import (
    create_dir,
    get_config_file,
    get_feed_cache_dir,
    get_podcast_dir,
    get_state_file,
)
from podcast_cli.utils.playback import launch_player

from .formatters import (
    format_error_with_suggestions,
    print_config,
    print_episodes,
    print_subscriptions,
    print_summary_panel,
)
from .progress_manager import ProgressManager

# Listings go to stdout; logs, progress bars and errors go to stderr.
console = Console()
err_console = Console(stderr=True)

logging.basicConfig(
    level="WARNING",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=err_console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("podcast_cli")

app = typer.Typer(
    name="podcast",
    help=(
        "Subscribe to podcasts and download their episodes concurrently. Use"
        " 'podcast <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=True,
)


@dataclass
class Runtime:
    """Everything a command needs for one invocation."""

    podcast_dir: Path
    state: PersistedState
    config: AppConfig
    feed_cache: FeedCache
    stats: DownloadStats = field(default_factory=DownloadStats)


@dataclass
class Services:
    """Network-backed collaborators sharing one session."""

    feed_client: FeedClient
    engine: TransferEngine
    reconciler: StateReconciler
    search_client: SearchClient
    progress_manager: ProgressManager


CommandAction = Callable[[Runtime, Services], Awaitable[None]]


def _load_runtime(cli_options: dict | None = None) -> tuple[Runtime, StateStore]:
    podcast_dir = get_podcast_dir()
    create_dir(podcast_dir)
    config = ConfigManager(get_config_file(podcast_dir)).load_config(cli_options)
    store = StateStore(get_state_file(podcast_dir))
    state = store.load()
    state.config = config
    runtime = Runtime(
        podcast_dir=podcast_dir,
        state=state,
        config=config,
        feed_cache=FeedCache(get_feed_cache_dir(podcast_dir)),
    )
    return runtime, store


async def _with_services(
    runtime: Runtime, action: CommandAction, refresh_if_stale: bool
) -> dict:
    """Opens the shared session and progress display, then runs ``action``."""
    parallelism = detect_parallelism(runtime.config.max_workers)
    progress_manager = ProgressManager(
        err_console, enabled=err_console.is_terminal
    )
    async with create_session(parallelism) as session, progress_manager:
        feed_client = FeedClient(session)
        engine = TransferEngine(
            session,
            progress_manager,
            parallelism=parallelism,
            max_attempts=runtime.config.max_attempts,
        )
        reconciler = StateReconciler(
            feed_client, engine, runtime.feed_cache, runtime.podcast_dir
        )
        services = Services(
            feed_client=feed_client,
            engine=engine,
            reconciler=reconciler,
            search_client=SearchClient(session),
            progress_manager=progress_manager,
        )
        try:
            if refresh_if_stale and runtime.state.is_stale():
                log.info("[cyan]Last run was over a day ago, refreshing first.[/cyan]")
                await _refresh(runtime, services)
            await action(runtime, services)
        finally:
            runtime.stats.record(reconciler.transfer_results)
    return progress_manager.get_statistics()


def run_command(
    action: CommandAction,
    refresh_if_stale: bool = True,
    cli_options: dict | None = None,
) -> None:
    """
    Runs one command: loads state, executes ``action`` and saves the state once.

    Command-level errors are rendered as an error panel and exit with status 1;
    the state is written before that so successful work is never lost.
    """
    try:
        runtime, store = _load_runtime(cli_options)
    except PodcastCliError as e:
        err_console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e

    start_time = time.monotonic()
    progress_stats = None
    failure = None
    try:
        progress_stats = asyncio.run(
            _with_services(runtime, action, refresh_if_stale)
        )
    except PodcastCliError as e:
        failure = e
    finally:
        try:
            store.save(runtime.state)
        except PodcastCliError as e:
            failure = failure or e

    if runtime.stats.total > 0:
        print_summary_panel(
            runtime.stats, time.monotonic() - start_time, progress_stats
        )
    if failure is not None:
        err_console.print(format_error_with_suggestions(failure))
        raise typer.Exit(code=1) from failure


async def _load_feed(
    runtime: Runtime, services: Services, subscription: Subscription
) -> Feed:
    """Returns the cached feed of a subscription, fetching it when not cached."""
    raw = runtime.feed_cache.read(subscription.title)
    if raw is not None:
        return parse_feed(raw)
    log.debug(f"No cached feed for '{subscription.title}', fetching it.")
    feed = await services.feed_client.fetch(subscription.url)
    await asyncio.to_thread(runtime.feed_cache.write, feed.title, feed.raw)
    return feed


async def _refresh(runtime: Runtime, services: Services) -> None:
    updated, errors = await services.reconciler.refresh_all(
        runtime.state.subscriptions, runtime.config
    )
    runtime.state.subscriptions = updated
    for error in errors:
        err_console.print(
            f"[red]✗ {escape(error.title)}:[/red] {escape(str(error.error))}"
        )


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
    clear_cache: bool = typer.Option(
        False, "--clear-cache", help="Remove every cached feed document and exit."
    ),
):
    """Podcast downloader CLI"""
    if version:
        console.print(f"[bold]podcast-cli[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "WARNING"
    if verbose == 1:
        log_level = "INFO"
    elif verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("podcast_cli").setLevel(log_level)

    podcast_dir = get_podcast_dir()

    if clear_cache:
        cache = FeedCache(get_feed_cache_dir(podcast_dir))
        if cache.clear():
            console.print("[green]✓ Feed cache cleared.[/green]")
        else:
            console.print("[red]✗ Failed to clear the feed cache.[/red]")
            raise typer.Exit(code=1)
        raise typer.Exit()

    if show_config:
        config_file = get_config_file(podcast_dir)
        config_manager = ConfigManager(config_file)
        try:
            config = config_manager.load_config()
        except PodcastCliError as e:
            err_console.print(format_error_with_suggestions(e))
            raise typer.Exit(code=1) from e
        print_config(console, config_file, config.model_dump())
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command(name="download")
def download_command(
    podcast: str = typer.Argument(
        ..., help="Regular expression matched against subscription titles."
    ),
    episode: str | None = typer.Argument(
        None,
        help=(
            "Episode number (3), list (1,3-5), 'latest N' or 'all'. Text that is"
            " not a number is matched against episode titles."
        ),
    ),
    by_name: bool = typer.Option(
        False, "-e", "--episode", help="Match EPISODE against episode titles."
    ),
    match_all: bool = typer.Option(
        False, "-a", "--all", help="With a name, download every matching episode."
    ),
    latest: int | None = typer.Option(
        None, "-l", "--latest", help="Download the N newest episodes."
    ),
    workers: int | None = typer.Option(
        None,
        "-w",
        "--workers",
        help="Number of simultaneous downloads (overrides max_workers in config).",
    ),
    yes: bool = typer.Option(
        False, "-y", "--yes", help="Do not ask before downloading every episode."
    ),
):
    """Download episodes of the subscribed podcasts matching PODCAST."""
    try:
        selector = parse_selector(episode, by_name, match_all, latest)
    except PodcastCliError as e:
        err_console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e

    if (
        isinstance(selector, AllSelector)
        and not yes
        and not typer.confirm(
            f"Download every episode of the podcasts matching '{podcast}'?"
        )
    ):
        raise typer.Abort()

    async def _download(runtime: Runtime, services: Services):
        subscriptions = find_subscriptions(runtime.state.subscriptions, podcast)
        intents = []
        for subscription in subscriptions:
            feed = await _load_feed(runtime, services, subscription)
            intents.extend(
                resolve(feed.title, feed.episodes, selector, runtime.podcast_dir)
            )
        if not intents:
            err_console.print("[yellow]Nothing to download.[/yellow]")
            return
        err_console.print(
            f"[bold cyan]Downloading {len(intents)} episode(s)...[/bold cyan]"
        )
        results = await services.engine.run(intents)
        runtime.stats.record(results)

    cli_options = {"max_workers": workers} if workers is not None else None
    run_command(_download, cli_options=cli_options)


def list_command(
    podcast: str | None = typer.Argument(
        None, help="Show the episodes of the first subscription matching PODCAST."
    ),
):
    """List subscriptions, or the numbered episodes of one podcast."""

    async def _list(runtime: Runtime, services: Services):
        if podcast is None:
            print_subscriptions(console, runtime.state.subscriptions)
            return
        subscription = find_subscriptions(runtime.state.subscriptions, podcast)[0]
        feed = await _load_feed(runtime, services, subscription)
        print_episodes(console, feed.episodes)

    run_command(_list)


app.command(name="ls")(list_command)
app.command(name="list", hidden=True)(list_command)


def subscribe_command(
    url: str = typer.Argument(..., help="URL of the podcast's RSS feed."),
):
    """Subscribe to a feed and download its newest episodes."""

    async def _subscribe(runtime: Runtime, services: Services):
        await _subscribe_url(runtime, services, url)

    run_command(_subscribe)


app.command(name="sub")(subscribe_command)
app.command(name="subscribe", hidden=True)(subscribe_command)


async def _subscribe_url(runtime: Runtime, services: Services, url: str) -> None:
    try:
        runtime.state.subscriptions = await services.reconciler.subscribe(
            runtime.state.subscriptions, url, runtime.config
        )
    except AlreadyExistsError as e:
        err_console.print(f"[yellow]{escape(str(e))}[/yellow]")
        return
    title = runtime.state.subscriptions[-1].title
    err_console.print(f"[green]✓ Subscribed to[/green] [bold]{escape(title)}[/bold]")


@app.command(name="refresh")
def refresh_command():
    """Check every subscription for new episodes and download them."""

    async def _refresh_all(runtime: Runtime, services: Services):
        if not runtime.state.subscriptions:
            err_console.print("[yellow]No subscriptions to refresh.[/yellow]")
            return
        await _refresh(runtime, services)

    run_command(_refresh_all, refresh_if_stale=False)


@app.command(name="rm")
def remove_command(
    podcast: str = typer.Argument(
        ..., help="Regular expression for the podcast to remove, or '*' for all."
    ),
):
    """Unsubscribe from a podcast. Downloaded episodes are kept."""

    async def _remove(runtime: Runtime, services: Services):
        remaining, removed = services.reconciler.remove(
            runtime.state.subscriptions, podcast
        )
        runtime.state.subscriptions = remaining
        for sub in removed:
            err_console.print(f"[green]✓ Removed[/green] {escape(sub.title)}")

    run_command(_remove, refresh_if_stale=False)


@app.command(name="search")
def search_command(
    terms: list[str] = typer.Argument(..., help="Words to search for."),  # noqa: B008
    limit: int = typer.Option(25, "-n", "--limit", help="Maximum number of results."),
):
    """Search the podcast directory and optionally subscribe to a result."""
    term = " ".join(terms)

    async def _search(runtime: Runtime, services: Services):
        results = [
            r for r in await services.search_client.search(term, limit) if r.feed_url
        ]
        if not results:
            err_console.print(f"[yellow]No podcasts found for '{escape(term)}'.[/yellow]")
            return
        for number, result in enumerate(results, start=1):
            console.print(
                f"({number}) {escape(result.name)} [dim]{escape(result.feed_url)}[/dim]",
                highlight=False,
            )
        if not typer.confirm("Subscribe to one of these?", default=False):
            return
        choice = typer.prompt("Number", type=int)
        if not 1 <= choice <= len(results):
            raise NotFoundError(f"There is no result number {choice}.")
        await _subscribe_url(runtime, services, results[choice - 1].feed_url)

    run_command(_search, refresh_if_stale=False)


@app.command(name="play")
def play_command(
    podcast: str = typer.Argument(
        ..., help="Regular expression matched against subscription titles."
    ),
    episode: str | None = typer.Argument(
        None, help="Episode number, or text with -e. Defaults to the newest episode."
    ),
    by_name: bool = typer.Option(
        False, "-e", "--episode", help="Match EPISODE against episode titles."
    ),
):
    """Play an episode, from disk when downloaded, otherwise streamed."""
    targets: list[str] = []

    async def _pick(runtime: Runtime, services: Services):
        subscription = find_subscriptions(runtime.state.subscriptions, podcast)[0]
        feed = await _load_feed(runtime, services, subscription)
        if episode is None:
            chosen = episode_at(feed.episodes, len(feed.episodes))
        elif by_name or not is_episode_number(episode.strip()):
            chosen = select_episodes(feed.episodes, NameSelector(episode, False))[0]
        else:
            chosen = select_episodes(feed.episodes, IndexSelector(int(episode)))[0]

        intent = build_intent(chosen, runtime.podcast_dir)
        if intent is not None and intent.destination_path.is_file():
            targets.append(str(intent.destination_path))
        elif chosen.enclosure_url:
            targets.append(chosen.enclosure_url)
        else:
            raise NotFoundError(f"Episode '{chosen.title}' has nothing to play.")

    run_command(_pick)

    err_console.print(f"[cyan]Playing[/cyan] {escape(targets[0])}")
    try:
        launch_player(targets[0])
    except PodcastCliError as e:
        err_console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e

