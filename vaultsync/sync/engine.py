"""Sync engine for a local vault and a remote object store.

Components:
- SyncState: last successful sync time and the in-flight guard
- SyncResult: per-pass tallies used for user-facing reporting
- SyncEngine: orchestrate full passes, single-file uploads, missing-only
  uploads, download-only passes and deletion propagation

A full pass downloads first (remote content wins wherever it differs from the
local copy), then re-lists the remote keys and uploads every eligible local
file whose key is still absent. Only one pass runs at a time; a request that
arrives while one is in flight is rejected, not queued.
"""

import logging
import posixpath
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from vaultsync.config import CONFIG_DIR_NAME, SyncSettings
from vaultsync.storage.base import ObjectStore, StorageError
from vaultsync.sync.paths import (
    BACKUP_PREFIX,
    is_backup_key,
    is_under,
    normalize_base_folder,
    to_key,
    to_path,
)
from vaultsync.sync.policy import (
    SyncAction,
    content_type_for,
    decide,
    decide_removal,
    decide_upload,
    is_sync_extension,
)
from vaultsync.sync.vault import LocalVault, VaultFile

logger = logging.getLogger(__name__)

Notifier = Callable[[str], None]


def _log_notifier(message: str) -> None:
    logger.info(message)


@dataclass
class SyncState:
    """Process-wide sync state owned by one engine instance."""

    last_sync_time: str | None = None
    in_progress: bool = False


@dataclass
class SyncResult:
    """Result of one engine operation."""

    uploaded: list[str] = field(default_factory=list)
    upload_failed: list[str] = field(default_factory=list)
    downloaded: list[str] = field(default_factory=list)
    created: list[str] = field(default_factory=list)
    download_failed: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def upload_total(self) -> int:
        """Number of uploads attempted."""
        return len(self.uploaded) + len(self.upload_failed)

    @property
    def changed(self) -> int:
        """Number of files transferred in either direction."""
        return len(self.uploaded) + len(self.downloaded) + len(self.created)

    @property
    def failed(self) -> int:
        return len(self.upload_failed) + len(self.download_failed)


class SyncEngine:
    """Reconcile a LocalVault with an ObjectStore."""

    def __init__(
        self,
        vault: LocalVault,
        store: ObjectStore | None,
        settings: SyncSettings,
        notify: Notifier | None = None,
        state: SyncState | None = None,
    ):
        """Initialize sync engine.

        Args:
            vault: Local file store
            store: Remote object store, None when credentials are incomplete
            settings: Sync configuration (read only)
            notify: Receives one user-facing message per operation
            state: Initial state (default: seeded from settings.last_sync_time)
        """
        self.vault = vault
        self.store = store
        self.settings = settings
        self.notify = notify or _log_notifier
        self.state = state or SyncState(last_sync_time=settings.last_sync_time or None)
        self.last_result: SyncResult | None = None

    def update_settings(
        self, settings: SyncSettings, store: ObjectStore | None = None
    ) -> None:
        self.settings = settings
        if store is not None:
            self.store = store

    @property
    def base_folder(self) -> str:
        return normalize_base_folder(self.settings.base_folder)

    def is_sync_in_progress(self) -> bool:
        return self.state.in_progress

    def get_last_sync_time(self) -> str | None:
        return self.state.last_sync_time

    def key_for(self, file: VaultFile) -> str:
        return to_key(file.path, self.base_folder)

    # Guard handling

    def _report_incomplete(self) -> None:
        self.notify("Object store configuration incomplete. Check your settings.")

    def _begin(self) -> bool:
        if self.store is None:
            self._report_incomplete()
            return False
        if self.state.in_progress:
            self.notify("Sync already in progress, request not performed.")
            return False
        self.state.in_progress = True
        return True

    def _end(self) -> None:
        self.state.in_progress = False

    def _mark_synced(self) -> None:
        self.state.last_sync_time = datetime.now(timezone.utc).isoformat()

    # Eligibility

    def _is_eligible_path(self, path: str) -> bool:
        if not path:
            return False
        if path.startswith(f"{CONFIG_DIR_NAME}/") or path.startswith(
            f"{self.vault.config_dir}/"
        ):
            return False
        if path.startswith(BACKUP_PREFIX):
            return False
        if not is_under(path, self.base_folder):
            return False
        if is_backup_key(to_key(path, self.base_folder)):
            return False
        _, dot, ext = posixpath.basename(path).rpartition(".")
        return bool(dot) and is_sync_extension(ext)

    def is_eligible(self, file: VaultFile) -> bool:
        return self._is_eligible_path(file.path)

    async def files_to_sync(self) -> list[VaultFile]:
        """Local files that participate in sync."""
        return [f for f in await self.vault.list_files() if self.is_eligible(f)]

    # Transfers

    async def _upload(self, file: VaultFile, key: str | None = None) -> bool:
        key = key or self.key_for(file)
        content = await self.vault.read_bytes(file)
        content_type = content_type_for(file.extension)
        logger.debug(f"Uploading {file.path} -> {key} ({content_type})")
        return await self.store.put(key, content, content_type)

    async def _try_upload(self, file: VaultFile, key: str, result: SyncResult) -> None:
        try:
            ok = await self._upload(file, key)
        except Exception as e:
            logger.error(f"Failed to upload {file.path}: {e}")
            ok = False
        if ok:
            result.uploaded.append(file.path)
        else:
            logger.warning(f"Upload failed: {file.path}")
            result.upload_failed.append(file.path)

    async def _reconcile_key(self, key: str, path: str, result: SyncResult) -> None:
        local_file = await self.vault.exists(path)
        remote = await self.store.get(key)
        local = await self.vault.read_bytes(local_file) if local_file else None

        action = decide(local, remote)
        logger.debug(f"Reconcile {key} -> {path}: {action.value}")

        if action is SyncAction.NOOP:
            result.unchanged.append(path)
        elif action is SyncAction.DOWNLOAD:
            await self.vault.modify(path, remote)
            result.downloaded.append(path)
        elif action is SyncAction.CREATE_LOCAL:
            parent = posixpath.dirname(path)
            if parent and not await self.vault.folder_exists(parent):
                await self.vault.create_folder(parent)
            await self.vault.create(path, remote)
            result.created.append(path)
        else:
            logger.warning(f"Could not fetch remote object: {key}")
            result.download_failed.append(path)

    async def _download_phase(self, result: SyncResult) -> None:
        """Apply the merge policy to every remote key.

        Raises:
            StorageError: If the remote listing fails
        """
        keys = await self.store.list_keys("")
        for key in keys:
            if is_backup_key(key):
                continue

            path = to_path(key, self.base_folder)
            if not self._is_eligible_path(path):
                logger.debug(f"Skipping remote key without local counterpart: {key}")
                result.skipped.append(key)
                continue

            try:
                await self._reconcile_key(key, path, result)
            except Exception as e:
                logger.error(f"Failed to reconcile {key}: {e}")
                result.download_failed.append(path)

    # Public operations

    async def sync_file(self, file: VaultFile) -> bool:
        """Upload one file now."""
        if not self._begin():
            return False

        try:
            success = await self._upload(file)
            if success:
                self._mark_synced()
                self.last_result = SyncResult(uploaded=[file.path])
                self.notify(f"Synced {file.name}")
            else:
                self.last_result = SyncResult(upload_failed=[file.path])
                self.notify(f"Failed to sync {file.name}")
            return success
        except Exception as e:
            logger.error(f"Sync error for {file.path}: {e}")
            self.last_result = SyncResult(upload_failed=[file.path])
            self.notify(f"Error syncing {file.name}: {e}")
            return False
        finally:
            self._end()

    async def sync_all_files(self) -> bool:
        """Run a full reconciliation pass.

        Returns:
            True if at least one file was transferred
        """
        if not self._begin():
            return False

        result = SyncResult()
        self.last_result = result
        try:
            remote_keys: set[str] | None = None
            if self.settings.bidirectional_sync:
                try:
                    await self._download_phase(result)
                    remote_keys = set(await self.store.list_keys(""))
                except StorageError as e:
                    logger.error(f"Remote listing failed, uploading all files: {e}")

            for file in await self.files_to_sync():
                key = self.key_for(file)
                if decide_upload(key, remote_keys) is SyncAction.NOOP:
                    continue
                await self._try_upload(file, key, result)

            success = result.changed > 0
            if success:
                self._mark_synced()
            self.notify(self._summary(result))
            return success
        except Exception as e:
            logger.error(f"Bulk sync error: {e}")
            self.notify(f"Error during sync: {e}")
            return False
        finally:
            self._end()

    def _summary(self, result: SyncResult) -> str:
        parts = []
        if result.created or result.downloaded:
            parts.append(
                f"Downloaded {len(result.created)} new files, "
                f"updated {len(result.downloaded)} existing files"
            )
        if result.upload_total:
            if not result.upload_failed:
                parts.append(f"Uploaded all {result.upload_total} files")
            else:
                parts.append(
                    f"Uploaded {len(result.uploaded)}/{result.upload_total} files"
                )
        if result.download_failed:
            parts.append(f"{len(result.download_failed)} downloads failed")
        if not parts:
            return "Everything up to date"
        return "; ".join(parts)

    async def sync_missing_files(self) -> bool:
        """Upload only local files whose key is absent remotely."""
        if not self._begin():
            return False

        result = SyncResult()
        self.last_result = result
        try:
            files = await self.files_to_sync()
            remote_keys = set(await self.store.list_keys(""))

            for file in files:
                key = self.key_for(file)
                if decide_upload(key, remote_keys) is SyncAction.UPLOAD:
                    await self._try_upload(file, key, result)

            if result.uploaded:
                self.notify(f"Uploaded {len(result.uploaded)} newly detected files")
            elif result.upload_failed:
                self.notify(f"Failed to upload {len(result.upload_failed)} files")
            else:
                self.notify("No new files to upload")
            return len(result.uploaded) > 0
        except Exception as e:
            logger.error(f"Missing files sync error: {e}")
            self.notify(f"Error syncing missing files: {e}")
            return False
        finally:
            self._end()

    async def download_remote_changes(self) -> bool:
        """Run only the download phase.

        Does not take the in-flight guard; ``download_and_sync`` is the
        guarded entry point.
        """
        if self.store is None:
            self._report_incomplete()
            return False
        if not self.settings.bidirectional_sync:
            return False

        result = SyncResult()
        self.last_result = result
        try:
            await self._download_phase(result)
        except Exception as e:
            logger.error(f"Download remote changes error: {e}")
            self.notify(f"Error downloading remote changes: {e}")
            return False

        if result.created or result.downloaded:
            self.notify(
                f"Downloaded {len(result.created)} new files, "
                f"updated {len(result.downloaded)} existing files"
            )
        return True

    async def download_and_sync(self) -> bool:
        """Guarded download-only pass (used by the periodic poll)."""
        if not self.settings.bidirectional_sync:
            return False
        if not self._begin():
            return False
        try:
            return await self.download_remote_changes()
        finally:
            self._end()

    async def delete_remote_for_file(self, file: VaultFile) -> bool:
        """Propagate a local deletion to the store.

        Not covered by the in-flight guard: a deletion may interleave with a
        running pass.
        """
        if self.store is None:
            self._report_incomplete()
            return False
        if decide_removal(file.extension) is SyncAction.SKIP:
            return False

        try:
            ok = await self.store.delete(self.key_for(file))
        except Exception as e:
            logger.error(f"Remote delete error for {file.path}: {e}")
            self.notify(f"Error deleting {file.name} from remote: {e}")
            return False

        if ok:
            self.notify(f"Deleted {file.name} from remote")
        else:
            self.notify(f"Failed to delete {file.name} from remote")
        return ok

    async def test_connection(self) -> bool:
        if self.store is None:
            self._report_incomplete()
            return False
        success, details = await self.store.test_connection()
        self.notify(details)
        return success
