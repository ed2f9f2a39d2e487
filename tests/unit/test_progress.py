"""Unit tests for progress events and the terminal progress display."""

import io

import pytest
from rich.console import Console

from pkgprovides.cli.progress import ProgressContext
from pkgprovides.progress import ProgressEvent, emit_progress


@pytest.mark.unit
class TestProgressEvent:
    """Test the event dataclass and dispatch helper."""

    def test_str(self):
        assert str(ProgressEvent("item_done", "Scanning", current=5, total=10)) == "[ITEM_DONE] Scanning (5/10)"
        assert str(ProgressEvent("started", "Downloading")) == "[STARTED] Downloading"

    def test_emit_without_callback(self):
        emit_progress(None, "started", "nothing listens")

    def test_emit_builds_event(self):
        events = []

        emit_progress(events.append, "finished", "Done", current=3, total=3, stage="scan")

        assert events == [ProgressEvent("finished", "Done", current=3, total=3, metadata={"stage": "scan"})]

    def test_failing_callback_is_logged(self, caplog):
        def broken(event):
            raise RuntimeError("display gone")

        emit_progress(broken, "started", "Downloading")

        assert "display gone" in caplog.text


@pytest.mark.unit
class TestProgressContext:
    """Test the Rich progress renderer."""

    def test_disabled_has_no_callback(self):
        with ProgressContext(enabled=False) as progress:
            assert progress.callback is None
            progress.handle(ProgressEvent("started", "ignored"))

    def test_one_task_per_stage(self):
        console = Console(file=io.StringIO(), force_terminal=False)

        with ProgressContext(enabled=True, console=console) as progress:
            callback = progress.callback
            callback(ProgressEvent("started", "Downloading", total=100, metadata={"stage": "download"}))
            callback(ProgressEvent("item_done", "Downloading", current=50, total=100, metadata={"stage": "download"}))
            callback(ProgressEvent("finished", "Downloaded", current=100, total=100, metadata={"stage": "download"}))
            callback(ProgressEvent("started", "Scanning", total=10, metadata={"stage": "scan"}))
            tasks = progress._progress.tasks

            assert [task.description for task in tasks] == ["[cyan]Downloading", "[cyan]Scanning"]
            assert tasks[0].completed == 100

    def test_error_event_is_printed(self):
        console = Console(file=io.StringIO(), force_terminal=False)

        with ProgressContext(enabled=True, console=console) as progress:
            progress.handle(ProgressEvent("error", "Download failed", metadata={"stage": "download", "error": "503"}))

        assert "Download failed: 503" in console.file.getvalue()
