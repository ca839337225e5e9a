"""
Rich renderables for command output: listings, settings, the end-of-run
summary and error panels.
"""

from pathlib import Path
from typing import Any

from rich.console import Console, Group
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from podcast_cli.core.resolver import display_index
from podcast_cli.models.episode import Episode
from podcast_cli.models.state import Subscription
from podcast_cli.models.stats import DownloadStats
from podcast_cli.utils.formatting import format_duration, format_size

# Hints shown under an error, keyed by exception class name
ERROR_HINTS: dict[str, list[str]] = {
    "ParseError": [
        "Select episodes by number (3), list (1,3-5), name (-e) or --latest N.",
        "Podcast names are case-insensitive regular expressions.",
    ],
    "NotFoundError": [
        "`podcast ls` lists your subscriptions.",
        "`podcast ls <podcast>` shows the episode numbers.",
    ],
    "NetworkError": [
        "Is the network up? The host may also be temporarily unavailable.",
        "Finished downloads are kept; run the command again later.",
    ],
    "FeedError": ["The URL must point at an RSS or Atom feed, not a web page."],
    "ConfigurationError": [
        "Fix the value in .config.ini, or delete the file to get the defaults.",
    ],
    "StateError": [
        "The subscriptions file is unreadable. Restore a backup or remove it.",
    ],
    "PlaybackError": ["Install mpv or vlc and make sure it is on your PATH."],
}


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Wraps an error and the matching hints in a red panel."""
    name = type(error).__name__
    hints = ERROR_HINTS.get(name, ["Rerun with -vv to see the debug log."])

    parts = [
        Text.assemble((f"{name}: ", "bold red"), str(error)),
        Text(""),
        Text("What to try", style="bold yellow"),
        *(Text(f"  → {hint}") for hint in hints),
    ]
    if context:
        parts.append(Text(""))
        parts.append(Text(", ".join(f"{k}={v}" for k, v in context.items()), style="dim"))

    return Panel(
        Group(*parts),
        title="[bold red]Error[/bold red]",
        title_align="left",
        border_style="red",
        expand=False,
    )


def print_config(console: Console, config_path: Path, config_data: dict[str, Any]):
    """Shows the effective settings; unset limits read as 'unlimited'."""
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column(style="cyan")
    table.add_column()
    for key, value in config_data.items():
        table.add_row(key, "unlimited" if value is None else str(value))

    console.print(
        Panel(
            table,
            title=f"Settings [dim]{escape(str(config_path))}[/dim]",
            border_style="cyan",
            expand=False,
        )
    )


def print_subscriptions(console: Console, subscriptions: list[Subscription]):
    if not subscriptions:
        console.print("[dim]No subscriptions yet. Try `podcast sub <URL>`.[/dim]")
        return
    for sub in subscriptions:
        console.print(escape(sub.title), highlight=False)


def print_episodes(console: Console, episodes: list[Episode]):
    """Lists episodes with the numbers accepted by `download` and `play`."""
    for position, episode in enumerate(episodes):
        if not episode.title:
            continue
        number = display_index(position, len(episodes))
        console.print(f"({number}) {escape(episode.title)}", highlight=False)


def print_summary_panel(
    stats: DownloadStats, duration_s: float, progress_stats: dict | None = None
):
    """Prints the end-of-run totals to standard error."""
    console = Console(stderr=True)

    rows: list[tuple[str, str]] = [
        ("Downloaded", f"[bold green]{stats.episodes_downloaded}[/bold green]"),
    ]
    if stats.episodes_skipped:
        rows.append(("Skipped", f"[yellow]{stats.episodes_skipped} already on disk[/yellow]"))
    if stats.episodes_failed:
        rows.append(("Failed", f"[bold red]{stats.episodes_failed}[/bold red]"))
        rows.extend(("", f"[red]{escape(title)}[/red]") for title in stats.failed_titles)

    rate = stats.total_size_downloaded / duration_s if duration_s > 0 else 0
    rows.append(("Transferred", f"[cyan]{format_size(stats.total_size_downloaded)}[/cyan]"))
    rows.append(("Rate", f"[magenta]{format_size(int(rate))}/s[/magenta]"))
    rows.append(("Elapsed", f"[blue]{format_duration(duration_s)}[/blue]"))
    if progress_stats:
        rows.append(
            (
                "Workers",
                f"{progress_stats.get('workers', 0)} "
                f"[dim](at most {progress_stats.get('peak_concurrent', 0)} at once)[/dim]",
            )
        )

    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold", justify="right")
    table.add_column()
    for label, value in rows:
        table.add_row(label, value)

    if stats.episodes_failed:
        title, border = "[bold]Finished with failures[/bold]", "yellow"
    else:
        title, border = "[bold]All downloads finished[/bold]", "green"

    console.print()
    console.print(Panel(table, title=title, border_style=border, expand=False))
