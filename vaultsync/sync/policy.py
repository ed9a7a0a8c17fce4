"""Merge policy for reconciling a vault file against its remote object.

Conflicts are resolved by whole-file replacement: whichever side is observed
to differ when the remote listing is walked wins, and the remote copy is
authoritative once it differs. Modification times are never consulted.
"""

from enum import Enum

# Extensions eligible for sync, deletion propagation and auto upload
SYNC_EXTENSIONS = frozenset(
    {"md", "png", "jpg", "jpeg", "gif", "svg", "webp", "pdf", "txt"}
)

TEXT_EXTENSIONS = frozenset({"md", "txt"})

CONTENT_TYPES = {
    "md": "text/markdown",
    "txt": "text/plain",
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "svg": "image/svg+xml",
    "webp": "image/webp",
    "pdf": "application/pdf",
}

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class SyncAction(Enum):
    NOOP = "noop"
    UPLOAD = "upload"
    DOWNLOAD = "download"
    CREATE_LOCAL = "create_local"
    DELETE_REMOTE = "delete_remote"
    SKIP = "skip"


def content_type_for(extension: str) -> str:
    return CONTENT_TYPES.get(extension.lower(), DEFAULT_CONTENT_TYPE)


def is_sync_extension(extension: str) -> bool:
    return extension.lower() in SYNC_EXTENSIONS


def decide(local: bytes | None, remote: bytes | None) -> SyncAction:
    """Decide the download-phase action for one remote key.

    Args:
        local: Content of the mapped local file, None if there is no file
        remote: Fetched remote content, None if the fetch found nothing

    Returns:
        NOOP when both sides are byte-identical, DOWNLOAD when they differ,
        CREATE_LOCAL when only the remote side exists, SKIP when the remote
        content could not be obtained.
    """
    if remote is None:
        return SyncAction.SKIP
    if local is None:
        return SyncAction.CREATE_LOCAL
    if local == remote:
        return SyncAction.NOOP
    return SyncAction.DOWNLOAD


def decide_upload(
    key: str, remote_keys: set[str] | None, force: bool = False
) -> SyncAction:
    """Decide whether a local file is uploaded.

    Args:
        key: Object key of the local file
        remote_keys: Freshly listed remote keys, or None when the remote state
            is unknown (every candidate is uploaded)
        force: Upload unconditionally (single-file sync)
    """
    if force or remote_keys is None:
        return SyncAction.UPLOAD
    if key in remote_keys:
        return SyncAction.NOOP
    return SyncAction.UPLOAD


def decide_removal(extension: str) -> SyncAction:
    """Local deletions propagate only for sync-eligible extensions."""
    if is_sync_extension(extension):
        return SyncAction.DELETE_REMOTE
    return SyncAction.SKIP
