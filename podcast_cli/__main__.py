"""
Main entry point for the podcast-cli application.
This module handles top-level exception handling and CLI invocation.
"""

import asyncio
import logging
import sys

import typer
from rich.console import Console

from podcast_cli.cli.app import app
from podcast_cli.cli.formatters import format_error_with_suggestions
from podcast_cli.exceptions import PodcastCliError


def main() -> None:
    """Main entry point function."""
    log = logging.getLogger("podcast_cli")
    console = Console(stderr=True)

    try:
        app()
    except (typer.Exit, typer.Abort):
        pass
    except (KeyboardInterrupt, asyncio.CancelledError):
        console.print("\n[yellow]⚠️  Operation cancelled by user.[/yellow]")
        sys.exit(130)
    except PodcastCliError as e:
        console.print(f"\n{format_error_with_suggestions(e)}")
        sys.exit(1)
    except Exception as e:
        console.print(f"\n{format_error_with_suggestions(e, {'type': 'Unexpected'})}")
        log.debug("Full traceback:", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
