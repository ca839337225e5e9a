"""
Tests for the external player fallback chain.
"""

import subprocess
from unittest.mock import patch

import pytest

from podcast_cli.exceptions import PlaybackError
from podcast_cli.utils.playback import launch_player

COMMANDS = (("first-player", "--quiet"), ("second-player",), ("third-player",))


def test_falls_back_to_next_player():
    with patch(
        "podcast_cli.utils.playback.subprocess.run",
        side_effect=[FileNotFoundError(), subprocess.CompletedProcess([], 0)],
    ) as run:
        assert launch_player("/tmp/ep.mp3", COMMANDS) == "second-player"

    assert [c.args[0] for c in run.call_args_list] == [
        ["first-player", "--quiet", "/tmp/ep.mp3"],
        ["second-player", "/tmp/ep.mp3"],
    ]


def test_stops_at_first_player_that_starts():
    with patch(
        "podcast_cli.utils.playback.subprocess.run",
        return_value=subprocess.CompletedProcess([], 1),
    ) as run:
        assert launch_player("http://example.invalid/ep.mp3", COMMANDS) == "first-player"
    assert run.call_count == 1


def test_no_player_available():
    with patch(
        "podcast_cli.utils.playback.subprocess.run", side_effect=FileNotFoundError()
    ):
        with pytest.raises(PlaybackError):
            launch_player("/tmp/ep.mp3", COMMANDS)
