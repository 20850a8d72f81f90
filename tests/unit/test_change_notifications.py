"""Tests for change events, the change queue and the watchdog adapter."""

from pathlib import Path

import pytest
from watchdog.events import (
    DirCreatedEvent,
    DirDeletedEvent,
    DirModifiedEvent,
    FileClosedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from codecount.core.file_events import ChangeBatch, ChangeQueue, FileEvent, FileEventType
from codecount.infrastructure.fakes import FakeFileWatcher
from codecount.infrastructure.file_watcher import FileWatcher, _WatchdogEventHandler


def _event(kind, path, old=None):
    return FileEvent(event_type=kind, file_path=Path(path), old_path=Path(old) if old else None)


class TestChangeBatch:
    def test_create_then_delete_cancels_out(self):
        batch = ChangeBatch()
        batch.merge(_event(FileEventType.CREATED, "/ws/a.py"))
        batch.merge(_event(FileEventType.DELETED, "/ws/a.py"))

        assert batch.is_empty()

    def test_repeated_modifications_collapse(self):
        batch = ChangeBatch()
        for _ in range(3):
            batch.merge(_event(FileEventType.MODIFIED, "/ws/a.py"))

        assert batch.modified == {Path("/ws/a.py")}
        assert batch.total_count() == 1

    def test_delete_then_create_is_a_modification(self):
        batch = ChangeBatch()
        batch.merge(_event(FileEventType.DELETED, "/ws/a.py"))
        batch.merge(_event(FileEventType.CREATED, "/ws/a.py"))

        assert batch.modified == {Path("/ws/a.py")}
        assert not batch.deleted

    def test_move_deletes_source_and_creates_destination(self):
        batch = ChangeBatch()
        batch.merge(_event(FileEventType.MOVED, "/ws/b.py", old="/ws/a.py"))

        assert batch.deleted == {Path("/ws/a.py")}
        assert batch.created == {Path("/ws/b.py")}
        assert batch.changed_paths() == {Path("/ws/a.py"), Path("/ws/b.py")}

    def test_string_paths_are_coerced(self):
        event = FileEvent(FileEventType.MOVED, "/ws/b.py", old_path="/ws/a.py")

        assert isinstance(event.file_path, Path)
        assert isinstance(event.old_path, Path)


class TestChangeQueue:
    def test_every_subscription_sees_every_event(self):
        queue = ChangeQueue()
        cache = queue.subscribe("cache")
        settings = queue.subscribe("settings")

        queue.publish(_event(FileEventType.MODIFIED, "/ws/a.py"))

        assert cache.pending() == 1
        assert settings.pending() == 1
        assert cache.drain().modified == {Path("/ws/a.py")}
        assert cache.pending() == 0
        assert settings.pending() == 1

    def test_drain_empty_subscription(self):
        assert ChangeQueue().subscribe("x").drain().is_empty()

    def test_fake_watcher_feeds_queue(self):
        queue = ChangeQueue()
        subscription = queue.subscribe("cache")
        watcher = FakeFileWatcher()
        watcher.start(Path("/ws"), queue.publish)

        watcher.trigger_event(_event(FileEventType.CREATED, "/ws/new.py"))

        assert subscription.drain().created == {Path("/ws/new.py")}
        assert len(watcher.get_triggered_events()) == 1


class TestWatchdogHandler:
    @pytest.fixture
    def received(self):
        return []

    @pytest.fixture
    def handler(self, received):
        return _WatchdogEventHandler(
            callback=received.append,
            should_ignore=lambda path: ".git" in path.parts,
        )

    def test_file_events_are_converted(self, handler, received):
        handler.dispatch(FileCreatedEvent("/ws/a.py"))
        handler.dispatch(FileModifiedEvent("/ws/a.py"))
        handler.dispatch(FileDeletedEvent("/ws/a.py"))

        assert [e.event_type for e in received] == [
            FileEventType.CREATED,
            FileEventType.MODIFIED,
            FileEventType.DELETED,
        ]
        assert all(e.file_path == Path("/ws/a.py") for e in received)

    def test_directory_creation_and_modification_are_dropped(self, handler, received):
        handler.dispatch(DirCreatedEvent("/ws/newdir"))
        handler.dispatch(DirModifiedEvent("/ws/newdir"))

        assert received == []

    def test_close_events_are_not_changes(self, handler, received):
        handler.dispatch(FileClosedEvent("/ws/a.py"))

        assert received == []

    def test_directory_deletion_is_forwarded(self, handler, received):
        handler.dispatch(DirDeletedEvent("/ws/olddir"))

        assert received[0].event_type is FileEventType.DELETED
        assert received[0].file_path == Path("/ws/olddir")

    def test_ignored_paths_are_dropped(self, handler, received):
        handler.dispatch(FileModifiedEvent("/ws/.git/index"))

        assert received == []

    def test_move_into_ignored_area_is_a_delete(self, handler, received):
        handler.dispatch(FileMovedEvent("/ws/a.py", "/ws/.git/a.py"))

        assert received[0].event_type is FileEventType.DELETED
        assert received[0].file_path == Path("/ws/a.py")

    def test_move_out_of_ignored_area_has_no_source(self, handler, received):
        handler.dispatch(FileMovedEvent("/ws/.git/a.py", "/ws/a.py"))

        assert received[0].event_type is FileEventType.MOVED
        assert received[0].old_path is None

    def test_plain_move(self, handler, received):
        handler.dispatch(FileMovedEvent("/ws/a.py", "/ws/b.py"))

        assert received[0].event_type is FileEventType.MOVED
        assert received[0].file_path == Path("/ws/b.py")
        assert received[0].old_path == Path("/ws/a.py")


class TestFileWatcher:
    def test_start_requires_existing_directory(self, tmp_path):
        watcher = FileWatcher()

        with pytest.raises(ValueError):
            watcher.start(tmp_path / "missing", lambda event: None)

    def test_start_and_stop(self, tmp_path):
        watcher = FileWatcher()
        watcher.start(tmp_path, lambda event: None)
        try:
            assert watcher.is_running()
            with pytest.raises(RuntimeError):
                watcher.start(tmp_path, lambda event: None)
        finally:
            watcher.stop()

        assert not watcher.is_running()

    def test_default_ignores_git_and_temp_sidecars(self, tmp_path):
        watcher = FileWatcher()
        watcher.start(tmp_path, lambda event: None)
        try:
            root = tmp_path.resolve()
            assert watcher._should_ignore(root / ".git" / "HEAD")
            assert watcher._should_ignore(root / "pkg" / ".codecount.json.abc123.tmp")
            assert not watcher._should_ignore(root / "pkg" / ".codecount.json")
            assert watcher._should_ignore(Path("/somewhere/else.py"))
        finally:
            watcher.stop()

    def test_callback_errors_are_contained(self):
        def explode(event):
            raise RuntimeError("boom")

        watcher = FileWatcher()
        watcher._callback = explode

        watcher._handle_event(_event(FileEventType.MODIFIED, "/ws/a.py"))
