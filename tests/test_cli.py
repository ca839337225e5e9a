"""
Tests for the Typer commands that work from local state only.
"""

from datetime import timedelta
from pathlib import Path

import pytest
from typer.testing import CliRunner

from conftest import build_rss
from podcast_cli.cli.app import app
from podcast_cli.models.state import PersistedState, Subscription, utc_now
from podcast_cli.storage.state_store import StateStore

runner = CliRunner()


@pytest.fixture
def store(podcast_dir: Path) -> StateStore:
    store = StateStore(podcast_dir / ".subscriptions.json")
    store.save(
        PersistedState(
            subscriptions=[
                Subscription(title="Alpha Show", url="http://alpha", num_episodes=3),
                Subscription(title="Beta Show", url="http://beta", num_episodes=1),
            ]
        )
    )
    cache_dir = podcast_dir / ".rss"
    cache_dir.mkdir()
    (cache_dir / "Alpha Show.xml").write_bytes(
        build_rss(
            "Alpha Show",
            [(f"Alpha {n}", f"http://alpha/{n}.mp3") for n in range(3, 0, -1)],
        )
    )
    return store


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "podcast-cli" in result.output


def test_list_subscriptions(store: StateStore):
    result = runner.invoke(app, ["ls"])
    assert result.exit_code == 0, result.output
    assert "Alpha Show" in result.output
    assert "Beta Show" in result.output


def test_list_episodes_uses_download_numbering(store: StateStore):
    result = runner.invoke(app, ["list", "alpha"])
    assert result.exit_code == 0, result.output
    assert "(3) Alpha 3" in result.output
    assert "(1) Alpha 1" in result.output


def test_remove_updates_state(store: StateStore, podcast_dir: Path):
    result = runner.invoke(app, ["rm", "beta"])
    assert result.exit_code == 0, result.output
    assert [s.title for s in store.load().subscriptions] == ["Alpha Show"]


def test_unknown_podcast_exits_with_error(store: StateStore):
    result = runner.invoke(app, ["download", "gamma", "1"])
    assert result.exit_code == 1
    assert [s.title for s in store.load().subscriptions] == ["Alpha Show", "Beta Show"]


def test_bad_selector_exits_with_error(store: StateStore):
    result = runner.invoke(app, ["download", "alpha", "1-x"])
    assert result.exit_code == 1


def test_download_of_existing_episode_needs_no_network(
    store: StateStore, podcast_dir: Path
):
    show_dir = podcast_dir / "Alpha Show"
    show_dir.mkdir()
    (show_dir / "Alpha 2.mp3").write_bytes(b"done")

    result = runner.invoke(app, ["download", "alpha", "2"])

    assert result.exit_code == 0, result.output
    assert "Nothing to download" in result.output


def test_show_config(podcast_dir: Path):
    result = runner.invoke(app, ["--show-config"])
    assert result.exit_code == 0, result.output
    assert "auto_download_limit" in result.output
    assert (podcast_dir / ".config.ini").is_file()


def test_play_refreshes_stale_state_first(
    store: StateStore, monkeypatch: pytest.MonkeyPatch
):
    state = store.load()
    state.last_run_time = utc_now() - timedelta(days=2)
    store.state_file_path.write_text(state.to_json(), encoding="utf-8")

    calls = []

    async def fake_refresh(runtime, services):
        calls.append("refresh")

    monkeypatch.setattr("podcast_cli.cli.app._refresh", fake_refresh)
    monkeypatch.setattr(
        "podcast_cli.cli.app.launch_player", lambda target: calls.append(target)
    )

    result = runner.invoke(app, ["play", "alpha"])

    assert result.exit_code == 0, result.output
    assert calls == ["refresh", "http://alpha/3.mp3"]


def test_play_with_superscript_digit_is_a_name_lookup(
    store: StateStore, monkeypatch: pytest.MonkeyPatch
):
    monkeypatch.setattr("podcast_cli.cli.app.launch_player", lambda target: None)
    result = runner.invoke(app, ["play", "alpha", "²"])
    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
