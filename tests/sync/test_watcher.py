"""Tests for event-driven auto sync."""

import asyncio
from unittest.mock import MagicMock, patch

import pytest
from watchdog.events import DirModifiedEvent, FileModifiedEvent, FileMovedEvent

from vaultsync.sync.vault import VaultFile
from vaultsync.sync.watcher import AutoSync, VaultEventHandler


@pytest.fixture
def auto_sync(engine, settings):
    settings.auto_sync = False
    settings.bidirectional_sync = False
    return AutoSync(engine)


class TestVaultEventHandler:
    def test_modified_file_is_forwarded(self):
        target, loop = MagicMock(), MagicMock()
        handler = VaultEventHandler(target, loop)

        handler.on_modified(FileModifiedEvent("/vault/a.md"))

        loop.call_soon_threadsafe.assert_called_once_with(
            target.file_changed, "/vault/a.md"
        )

    def test_directory_events_are_ignored(self):
        target, loop = MagicMock(), MagicMock()
        handler = VaultEventHandler(target, loop)

        handler.on_modified(DirModifiedEvent("/vault/sub"))

        loop.call_soon_threadsafe.assert_not_called()

    def test_move_is_delete_plus_change(self):
        target, loop = MagicMock(), MagicMock()
        handler = VaultEventHandler(target, loop)

        handler.on_moved(FileMovedEvent("/vault/old.md", "/vault/new.md"))

        calls = loop.call_soon_threadsafe.call_args_list
        assert calls[0].args == (target.file_deleted, "/vault/old.md")
        assert calls[1].args == (target.file_changed, "/vault/new.md")


class TestFileChanged:
    def test_schedules_eligible_file(self, engine, settings, vault_dir):
        scheduler = MagicMock()
        auto = AutoSync(engine, scheduler=scheduler)

        auto.file_changed(str(vault_dir / "notes" / "a.md"))

        scheduler.schedule.assert_called_once_with(
            VaultFile.from_path("notes/a.md"), settings.sync_delay
        )

    def test_ignores_ineligible_and_outside_paths(self, engine, vault_dir, tmp_path):
        scheduler = MagicMock()
        auto = AutoSync(engine, scheduler=scheduler)

        auto.file_changed(str(vault_dir / "doc.docx"))
        auto.file_changed(str(vault_dir / ".vaultsync" / "settings.json"))
        auto.file_changed(str(tmp_path / "elsewhere.md"))

        scheduler.schedule.assert_not_called()

    def test_accepts_bytes_paths(self, engine, vault_dir):
        scheduler = MagicMock()
        auto = AutoSync(engine, scheduler=scheduler)

        auto.file_changed(str(vault_dir / "a.md").encode())

        scheduler.schedule.assert_called_once()

    @pytest.mark.asyncio
    async def test_burst_uploads_latest_file_once(
        self, auto_sync, settings, store, write_file, vault_dir
    ):
        settings.sync_delay = 0.05
        write_file("a.md", "a")
        write_file("b.md", "b")

        auto_sync.file_changed(str(vault_dir / "a.md"))
        auto_sync.file_changed(str(vault_dir / "a.md"))
        auto_sync.file_changed(str(vault_dir / "b.md"))

        await asyncio.sleep(0.2)
        await auto_sync.stop()

        assert store.writes == ["b.md"]


class TestFileDeleted:
    @pytest.mark.asyncio
    async def test_deletes_remote_object(self, auto_sync, store, vault_dir):
        store.objects["gone.md"] = b"x"

        auto_sync.file_deleted(str(vault_dir / "gone.md"))
        await auto_sync.stop()

        assert store.deletes == ["gone.md"]
        assert "gone.md" not in store.objects

    @pytest.mark.asyncio
    async def test_ignores_unsupported_extension(self, auto_sync, store, vault_dir):
        store.objects["gone.docx"] = b"x"

        auto_sync.file_deleted(str(vault_dir / "gone.docx"))
        await auto_sync.stop()

        assert store.deletes == []


class TestStartStop:
    @pytest.mark.asyncio
    async def test_observer_lifecycle(self, engine, settings, vault_dir):
        settings.auto_sync = True
        settings.bidirectional_sync = False
        auto = AutoSync(engine)

        with patch("vaultsync.sync.watcher.Observer") as observer_cls:
            auto.start()
            observer = observer_cls.return_value

            args, kwargs = observer.schedule.call_args
            assert isinstance(args[0], VaultEventHandler)
            assert args[1] == str(vault_dir)
            assert kwargs == {"recursive": True}
            observer.start.assert_called_once()

            await auto.stop()

        observer.stop.assert_called_once()
        observer.join.assert_called_once()
        assert auto.observer is None

    @pytest.mark.asyncio
    async def test_poll_task_started_and_cancelled(self, engine, settings):
        settings.auto_sync = False
        settings.bidirectional_sync = True
        auto = AutoSync(engine)

        auto.start()
        assert auto.observer is None
        task = auto.poll_task
        assert task is not None and not task.done()

        await auto.stop()
        assert task.cancelled()
        assert auto.poll_task is None

    @pytest.mark.asyncio
    async def test_nothing_started_when_both_disabled(self, auto_sync):
        auto_sync.start()
        assert auto_sync.observer is None
        assert auto_sync.poll_task is None
        await auto_sync.stop()
