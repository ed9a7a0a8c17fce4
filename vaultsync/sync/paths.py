"""Translation between vault-relative paths and remote object keys.

Both directions are pure and total: they never touch the vault or the store
and return a value for any input string.
"""

import posixpath

BACKUP_PREFIX = "backups/"


def normalize_base_folder(base_folder: str | None) -> str:
    """Strip surrounding slashes so "Vault/" and "/Vault" mean "Vault"."""
    return (base_folder or "").strip("/")


def to_key(path: str, base_folder: str) -> str:
    """Map a vault-relative path to its object key.

    - empty base folder: the key is the path
    - path under ``base_folder/``: the prefix is stripped
    - path equal to the base folder: the key is the base name
    - anything else is relocated under ``base_folder/``
    """
    base_folder = normalize_base_folder(base_folder)
    if not base_folder:
        return path
    if path.startswith(base_folder + "/"):
        return path[len(base_folder) + 1 :]
    if path == base_folder:
        return posixpath.basename(path)
    return f"{base_folder}/{path}"


def to_path(key: str, base_folder: str) -> str:
    """Map an object key back to a vault-relative path.

    Inverse of the prefix-stripping rule of ``to_key``. A key equal to the
    base folder has no local counterpart and maps to "".
    """
    base_folder = normalize_base_folder(base_folder)
    if not base_folder:
        return key
    if key == base_folder:
        return ""
    return f"{base_folder}/{key}"


def is_backup_key(key: str) -> bool:
    return key.startswith(BACKUP_PREFIX)


def is_under(path: str, base_folder: str) -> bool:
    """True if ``path`` lies inside ``base_folder`` (or no base folder is set)."""
    base_folder = normalize_base_folder(base_folder)
    if not base_folder:
        return True
    return path.startswith(base_folder + "/") or path == base_folder
