"""Vault reconciliation.

- paths: vault path <-> object key mapping
- policy: merge decisions
- vault: local file store
- scheduler: debounced single-file sync
- engine: full and partial sync passes
- backup: backup marker lifecycle
- watcher: automatic sync from file-system events
"""

from vaultsync.sync.backup import BackupManager, BackupMarker
from vaultsync.sync.engine import SyncEngine, SyncResult, SyncState
from vaultsync.sync.paths import to_key, to_path
from vaultsync.sync.policy import SyncAction, decide, decide_upload
from vaultsync.sync.scheduler import ChangeScheduler
from vaultsync.sync.vault import ContentKind, LocalVault, VaultFile

__all__ = [
    "BackupManager",
    "BackupMarker",
    "ChangeScheduler",
    "ContentKind",
    "LocalVault",
    "SyncAction",
    "SyncEngine",
    "SyncResult",
    "SyncState",
    "VaultFile",
    "decide",
    "decide_upload",
    "to_key",
    "to_path",
]
