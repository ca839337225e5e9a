"""
Launches an external audio player for a local file or a remote URL.
"""

import logging
import subprocess
from collections.abc import Sequence

from podcast_cli.exceptions import PlaybackError

log = logging.getLogger(__name__)

# Tried in order; the first command that can be started wins.
PLAYER_COMMANDS: tuple[tuple[str, ...], ...] = (
    ("mpv", "--audio-display=no", "--ytdl=no"),
    ("vlc", "-I", "ncurses"),
)


def launch_player(
    target: str, commands: Sequence[Sequence[str]] = PLAYER_COMMANDS
) -> str:
    """
    Plays ``target`` with the first available player and returns its name.

    Raises:
        PlaybackError: If none of the players could be started.
    """
    tried = []
    for command in commands:
        name = command[0]
        try:
            subprocess.run([*command, target], check=False)
            return name
        except FileNotFoundError:
            log.info(f"[yellow]Couldn't open {name}, trying the next player...[/yellow]")
            tried.append(name)
        except OSError as e:
            log.error(f"[red]Error launching {name}: {e}[/red]")
            tried.append(name)
    raise PlaybackError(f"No audio player could be launched (tried: {', '.join(tried)}).")
