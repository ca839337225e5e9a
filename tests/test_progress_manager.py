"""
Tests for the progress display bookkeeping. The display is disabled so nothing
is rendered; task state is still tracked.
"""

import io

from rich.console import Console

from podcast_cli.cli.progress_manager import ProgressManager
from podcast_cli.utils.formatting import format_duration, format_size, truncate_label


def _manager(width: int = 120) -> ProgressManager:
    console = Console(file=io.StringIO(), width=width)
    return ProgressManager(console, enabled=False)


def test_truncate_label():
    assert truncate_label("short", 10) == "short"
    assert truncate_label("a much longer title", 8) == "a much …"
    assert truncate_label("anything", 0) == ""


def test_format_size_and_duration():
    assert format_size(0) == "0 B"
    assert format_size(1536) == "1.5 KB"
    assert format_size(3 * 1024**5) == "3072.0 TB"
    assert format_duration(59) == "59s"
    assert format_duration(3725) == "1h 02m 05s"


def test_label_fits_beside_fixed_columns():
    manager = _manager(width=120)
    label = manager.label_for("x" * 200)
    assert len(label) == 120 - ProgressManager.RESERVED_SUFFIX_WIDTH
    assert label.endswith("…")


def test_label_has_minimum_width_on_narrow_terminals():
    manager = _manager(width=40)
    assert len(manager.label_for("y" * 200)) == ProgressManager.MIN_LABEL_WIDTH


def test_resumed_item_starts_at_offset():
    manager = _manager()
    task_id = manager.add_worker_bar("first")

    manager.begin_item(task_id, "first", total=1000, resume_offset=400)
    manager.advance(task_id, 100)

    task = manager._get_task(task_id)
    assert task.completed == 500
    assert task.total == 1000


def test_bar_is_reused_for_next_item():
    manager = _manager()
    task_id = manager.add_worker_bar("first")
    manager.begin_item(task_id, "first", total=1000)
    manager.advance(task_id, 1000)
    manager.finish_item(task_id, success=True)

    manager.begin_item(task_id, "second", total=None)

    task = manager._get_task(task_id)
    assert task.completed == 0
    assert task.total is None
    assert task.description == "second"
    assert task.fields["status"] == ""
    assert len(manager.progress.tasks) == 1


def test_restart_rewinds_bar():
    manager = _manager()
    task_id = manager.add_worker_bar("a")
    manager.begin_item(task_id, "a", total=100, resume_offset=60)
    manager.restart_item(task_id)
    assert manager._get_task(task_id).completed == 0


def test_statistics():
    manager = _manager()
    first = manager.add_worker_bar("a")
    second = manager.add_worker_bar("b")
    manager.finish_item(first, success=True)
    manager.finish_item(second, success=False)
    manager.finish_worker(first)
    manager.finish_worker(second)

    assert manager.get_statistics() == {
        "workers": 2,
        "peak_concurrent": 2,
        "completed": 1,
        "failed": 1,
        "skipped": 0,
    }
    assert manager._get_task(second).fields["status"] == "[red]Failed[/red]"


def test_skipped_item_replaces_previous_label():
    manager = _manager()
    task_id = manager.add_worker_bar("first")
    manager.begin_item(task_id, "first", total=1000)
    manager.advance(task_id, 1000)
    manager.finish_item(task_id, success=True)

    manager.skip_item(task_id, "second")

    task = manager._get_task(task_id)
    assert task.description == "second"
    assert task.completed == 0
    assert task.fields["status"] == "[yellow]Skipped[/yellow]"
    assert manager.get_statistics()["skipped"] == 1
