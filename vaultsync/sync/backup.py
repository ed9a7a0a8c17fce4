"""Timestamped backup markers stored under the reserved ``backups/`` prefix.

A marker is a small JSON record at ``backups/{timestamp}/{folder_path}``. The
timestamp is an ISO-8601 UTC instant with ':' and '.' replaced by '-', so
lexical order matches chronological order and the value is safe inside a key.
Markers never take part in reconciliation: the sync engine skips this prefix.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from vaultsync.storage.base import ObjectStore, StorageError
from vaultsync.sync.paths import BACKUP_PREFIX

logger = logging.getLogger(__name__)

MARKER_TYPE = "backup_marker"
MARKER_CONTENT_TYPE = "application/json"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H-%M-%S-%fZ"


def make_timestamp(now: datetime) -> str:
    """Format ``now`` as a key-safe, sortable timestamp (millisecond precision).

    Example:
        >>> make_timestamp(datetime(2024, 5, 1, 12, 30, 5, 123000, tzinfo=timezone.utc))
        '2024-05-01T12-30-05-123Z'
    """
    now = now.astimezone(timezone.utc)
    return now.strftime("%Y-%m-%dT%H-%M-%S-") + f"{now.microsecond // 1000:03d}Z"


def parse_timestamp(timestamp: str) -> datetime | None:
    """Parse a marker timestamp back into an aware datetime, None if malformed."""
    try:
        return datetime.strptime(timestamp, TIMESTAMP_FORMAT).replace(
            tzinfo=timezone.utc
        )
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class BackupMarker:
    timestamp: str
    folder_path: str

    @property
    def key(self) -> str:
        return f"{BACKUP_PREFIX}{self.timestamp}/{self.folder_path}"

    def to_json(self) -> bytes:
        return json.dumps(
            {
                "timestamp": self.timestamp,
                "folderPath": self.folder_path,
                "type": MARKER_TYPE,
            }
        ).encode("utf-8")

    @classmethod
    def from_json(cls, content: bytes) -> "BackupMarker | None":
        """Parse marker content, None if it is not a backup marker."""
        try:
            data = json.loads(content)
        except (ValueError, TypeError):
            return None
        if not isinstance(data, dict) or data.get("type") != MARKER_TYPE:
            return None
        timestamp = data.get("timestamp")
        folder_path = data.get("folderPath")
        if not isinstance(timestamp, str) or not isinstance(folder_path, str):
            return None
        return cls(timestamp=timestamp, folder_path=folder_path)


class BackupManager:
    """Create, list, delete and expire backup markers."""

    def __init__(
        self,
        store: ObjectStore | None,
        enabled: bool = True,
        notify: Callable[[str], None] | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.enabled = enabled
        self.notify = notify or logger.info
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    async def create_backup(self, folder_path: str) -> bool:
        if self.store is None or not self.enabled:
            return False

        marker = BackupMarker(
            timestamp=make_timestamp(self.clock()), folder_path=folder_path
        )
        try:
            success = await self.store.put(
                marker.key, marker.to_json(), MARKER_CONTENT_TYPE
            )
        except Exception as e:
            logger.error(f"Backup creation error: {e}")
            self.notify(f"Error creating backup: {e}")
            return False

        if success:
            self.notify(f"Backup created for {folder_path} ({marker.timestamp})")
        else:
            self.notify(f"Failed to create backup for {folder_path}")
        return success

    async def list_backups(self) -> list[BackupMarker]:
        """All markers, newest first. Unreadable markers are skipped."""
        if self.store is None:
            return []

        try:
            keys = await self.store.list_keys(BACKUP_PREFIX)
        except StorageError as e:
            logger.error(f"List backups failed: {e}")
            return []

        markers = []
        for key in keys:
            try:
                content = await self.store.get(key)
            except Exception as e:
                logger.debug(f"Skipping unreadable backup object {key}: {e}")
                continue
            if content is None:
                continue
            marker = BackupMarker.from_json(content)
            if marker is None:
                logger.debug(f"Skipping invalid backup marker: {key}")
                continue
            markers.append(marker)

        return sorted(markers, key=lambda m: m.timestamp, reverse=True)

    async def delete_backup(self, timestamp: str) -> bool:
        """Delete every object under ``backups/{timestamp}/``."""
        if self.store is None:
            return False

        try:
            keys = await self.store.list_keys(f"{BACKUP_PREFIX}{timestamp}/")
            results = [await self.store.delete(key) for key in keys]
        except Exception as e:
            logger.error(f"Backup deletion error: {e}")
            self.notify(f"Error deleting backup: {e}")
            return False

        success = all(results)
        if success:
            self.notify(f"Backup {timestamp} deleted")
        else:
            self.notify(f"Failed to delete backup {timestamp}")
        return success

    async def cleanup_old_backups(self, retention_days: int) -> int:
        """Delete markers older than ``retention_days``.

        A retention of 0 (or less) means backups never expire.

        Returns:
            Number of backups deleted
        """
        if self.store is None or not self.enabled:
            return 0
        if retention_days <= 0:
            logger.debug("Backup retention disabled, nothing to clean up")
            return 0

        cutoff = self.clock() - timedelta(days=retention_days)
        deleted = 0
        seen: set[str] = set()
        for marker in await self.list_backups():
            if marker.timestamp in seen:
                continue
            seen.add(marker.timestamp)
            created = parse_timestamp(marker.timestamp)
            if created is None:
                logger.warning(f"Unparseable backup timestamp: {marker.timestamp}")
                continue
            if created < cutoff and await self.delete_backup(marker.timestamp):
                deleted += 1

        if deleted:
            self.notify(f"Cleaned up {deleted} old backups")
        return deleted
