"""Automatic sync driven by file-system events and a periodic remote poll.

watchdog delivers events on its observer thread; every event is handed to
the asyncio loop with ``call_soon_threadsafe`` so that scheduling and engine
calls all happen on the loop thread.
"""

import asyncio
import logging
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from vaultsync.sync.engine import SyncEngine
from vaultsync.sync.scheduler import ChangeScheduler
from vaultsync.sync.vault import VaultFile

logger = logging.getLogger(__name__)


class VaultEventHandler(FileSystemEventHandler):
    """Forward vault file events to an AutoSync instance on its loop."""

    def __init__(self, auto_sync: "AutoSync", loop: asyncio.AbstractEventLoop):
        self.auto_sync = auto_sync
        self.loop = loop

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.loop.call_soon_threadsafe(self.auto_sync.file_changed, event.src_path)

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.loop.call_soon_threadsafe(self.auto_sync.file_changed, event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.loop.call_soon_threadsafe(self.auto_sync.file_deleted, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.loop.call_soon_threadsafe(self.auto_sync.file_deleted, event.src_path)
            self.loop.call_soon_threadsafe(
                self.auto_sync.file_changed, event.dest_path
            )


class AutoSync:
    """Keep a vault in sync while running.

    - modified/created eligible files are debounced into ``sync_file``
    - deleted eligible files are removed remotely
    - with bidirectional sync on, ``download_and_sync`` runs every
      ``bidirectional_sync_interval`` minutes
    """

    def __init__(self, engine: SyncEngine, scheduler: ChangeScheduler | None = None):
        self.engine = engine
        self.scheduler = scheduler or ChangeScheduler(engine.sync_file)
        self.observer: Observer | None = None
        self.poll_task: asyncio.Task | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def settings(self):
        return self.engine.settings

    def _vault_file(self, src_path: str | bytes) -> VaultFile | None:
        if isinstance(src_path, bytes):
            src_path = src_path.decode()
        rel = self.engine.vault.relative_path(Path(src_path))
        if not rel:
            return None
        return VaultFile.from_path(rel)

    def file_changed(self, src_path: str | bytes) -> None:
        file = self._vault_file(src_path)
        if file is None or not self.engine.is_eligible(file):
            return
        self.scheduler.schedule(file, self.settings.sync_delay)

    def file_deleted(self, src_path: str | bytes) -> None:
        file = self._vault_file(src_path)
        if file is None or not self.engine.is_eligible(file):
            return
        task = asyncio.get_running_loop().create_task(
            self.engine.delete_remote_for_file(file)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _poll_loop(self) -> None:
        interval = max(self.settings.bidirectional_sync_interval, 0.1) * 60
        while True:
            await asyncio.sleep(interval)
            try:
                await self.engine.download_and_sync()
            except Exception as e:
                logger.error(f"Periodic download failed: {e}")

    def start(self) -> None:
        """Start watching; must be called from the running event loop."""
        loop = asyncio.get_running_loop()

        if self.settings.auto_sync:
            self.observer = Observer()
            self.observer.schedule(
                VaultEventHandler(self, loop),
                str(self.engine.vault.root),
                recursive=True,
            )
            self.observer.start()
            logger.info(f"Watching {self.engine.vault.root} for changes")

        if self.settings.bidirectional_sync:
            self.poll_task = loop.create_task(self._poll_loop())
            logger.info(
                f"Polling remote every {self.settings.bidirectional_sync_interval} minutes"
            )

    async def stop(self) -> None:
        self.scheduler.cancel()

        if self.observer:
            self.observer.stop()
            self.observer.join()
            self.observer = None

        if self.poll_task:
            self.poll_task.cancel()
            try:
                await self.poll_task
            except asyncio.CancelledError:
                pass
            self.poll_task = None

        await self.scheduler.drain()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        logger.info("Auto sync stopped")
