"""
Tests for the persisted state model and its atomic file store.
"""

import json
from datetime import timedelta
from pathlib import Path
from unittest.mock import patch

import pytest

from podcast_cli.exceptions import StateError
from podcast_cli.models.config import AppConfig
from podcast_cli.models.state import PersistedState, Subscription, utc_now
from podcast_cli.storage.state_store import StateStore


def _state(*titles: str) -> PersistedState:
    return PersistedState(
        config=AppConfig(auto_download_limit=2),
        subscriptions=[
            Subscription(title=t, url=f"http://{t}", num_episodes=i)
            for i, t in enumerate(titles)
        ],
    )


def test_missing_file_gives_fresh_state(tmp_path: Path):
    state = StateStore(tmp_path / ".subscriptions.json").load()
    assert state.subscriptions == []


def test_round_trip_uses_camel_case_keys(tmp_path: Path):
    path = tmp_path / ".subscriptions.json"
    store = StateStore(path)
    store.save(_state("a", "b"))

    document = json.loads(path.read_text(encoding="utf-8"))
    assert set(document) == {"version", "lastRunTime", "config", "subscriptions"}
    assert document["subscriptions"][1] == {
        "title": "b",
        "url": "http://b",
        "numEpisodes": 1,
    }

    loaded = store.load()
    assert loaded.subscriptions == _state("a", "b").subscriptions
    assert loaded.config.auto_download_limit == 2


def test_failed_rename_leaves_previous_file_untouched(tmp_path: Path):
    path = tmp_path / ".subscriptions.json"
    store = StateStore(path)
    store.save(_state("old"))
    before = path.read_bytes()

    with patch(
        "podcast_cli.storage.state_store.os.replace", side_effect=OSError("disk gone")
    ):
        with pytest.raises(StateError):
            store.save(_state("new", "newer"))

    assert path.read_bytes() == before
    assert [p.name for p in tmp_path.iterdir()] == [".subscriptions.json"]


def test_successful_save_leaves_only_the_state_file(tmp_path: Path):
    path = tmp_path / ".subscriptions.json"
    store = StateStore(path)
    store.save(_state("old"))
    store.save(_state("new"))

    assert [p.name for p in tmp_path.iterdir()] == [".subscriptions.json"]
    assert [s.title for s in store.load().subscriptions] == ["new"]


def test_unwritable_directory_raises_state_error(tmp_path: Path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    store = StateStore(blocker / ".subscriptions.json")

    with pytest.raises(StateError):
        store.save(_state("a"))


def test_temp_file_creation_failure_raises_state_error(tmp_path: Path):
    store = StateStore(tmp_path / ".subscriptions.json")
    with patch(
        "podcast_cli.storage.state_store.tempfile.mkstemp",
        side_effect=PermissionError("read-only"),
    ):
        with pytest.raises(StateError):
            store.save(_state("a"))
    assert list(tmp_path.iterdir()) == []


def test_save_stamps_run_time(tmp_path: Path):
    state = _state("a")
    state.last_run_time = utc_now() - timedelta(days=3)
    assert state.is_stale()

    StateStore(tmp_path / ".subscriptions.json").save(state)
    assert not state.is_stale()


def test_legacy_file_is_migrated(tmp_path: Path):
    legacy = tmp_path / ".subscriptions"
    legacy.write_text(_state("legacy").to_json(), encoding="utf-8")

    state = StateStore(tmp_path / ".subscriptions.json").load()

    assert [s.title for s in state.subscriptions] == ["legacy"]
    assert not legacy.exists()
    assert (tmp_path / ".subscriptions.json").is_file()


def test_legacy_snake_case_keys_are_accepted(tmp_path: Path):
    path = tmp_path / ".subscriptions.json"
    path.write_text(
        json.dumps(
            {
                "subscriptions": [
                    {"title": "x", "url": "http://x", "num_episodes": 4}
                ]
            }
        ),
        encoding="utf-8",
    )
    assert StateStore(path).load().subscriptions[0].num_episodes == 4


@pytest.mark.parametrize(
    "content",
    ["not json", '{"subscriptions": [{"title": "x"}]}', '{"subscriptions": 3}'],
)
def test_corrupt_file_raises(tmp_path: Path, content: str):
    path = tmp_path / ".subscriptions.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(StateError):
        StateStore(path).load()


def test_staleness_threshold():
    now = utc_now()
    state = PersistedState(last_run_time=now - timedelta(hours=23))
    assert not state.is_stale(now)
    state.last_run_time = now - timedelta(days=1, minutes=1)
    assert state.is_stale(now)
