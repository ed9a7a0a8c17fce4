"""Local file store backed by a directory on disk."""

import logging
import posixpath
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from vaultsync.sync.policy import TEXT_EXTENSIONS

logger = logging.getLogger(__name__)


class ContentKind(Enum):
    TEXT = "text"
    BINARY = "binary"


@dataclass(frozen=True)
class VaultFile:
    """A file in the vault, identified by its '/'-separated relative path."""

    path: str
    extension: str
    content_kind: ContentKind

    @property
    def name(self) -> str:
        return posixpath.basename(self.path)

    @classmethod
    def from_path(cls, path: str) -> "VaultFile":
        name = posixpath.basename(path)
        _, dot, ext = name.rpartition(".")
        extension = ext.lower() if dot else ""
        kind = ContentKind.TEXT if extension in TEXT_EXTENSIONS else ContentKind.BINARY
        return cls(path=path, extension=extension, content_kind=kind)


class VaultPathError(ValueError):
    """Raised when a path would resolve outside the vault root."""


class LocalVault:
    """Read and write vault files under ``root``.

    Methods are coroutines so callers can treat local I/O the same way as
    remote calls; the work itself is plain file I/O.
    """

    def __init__(self, root: Path, config_dir: str = ".vaultsync"):
        self.root = Path(root)
        self.config_dir = config_dir

    @property
    def name(self) -> str:
        return self.root.resolve().name

    def _resolve(self, path: str) -> Path:
        if not path or path.startswith("/"):
            raise VaultPathError(f"Invalid vault path: {path!r}")
        root = self.root.resolve()
        target = (root / path).resolve()
        if target != root and root not in target.parents:
            raise VaultPathError(f"Path escapes vault: {path!r}")
        return target

    def relative_path(self, absolute: Path) -> str | None:
        """Vault-relative path for an absolute path, None if outside the vault."""
        try:
            return Path(absolute).resolve().relative_to(self.root.resolve()).as_posix()
        except ValueError:
            return None

    async def list_files(self) -> list[VaultFile]:
        files = []
        for p in sorted(self.root.rglob("*")):
            if p.is_file():
                files.append(VaultFile.from_path(p.relative_to(self.root).as_posix()))
        return files

    async def read(self, path: str) -> str:
        return self._resolve(path).read_text(encoding="utf-8")

    async def read_binary(self, path: str) -> bytes:
        return self._resolve(path).read_bytes()

    async def read_bytes(self, file: VaultFile) -> bytes:
        """Read a file's raw content regardless of its kind.

        Text files are not decoded, so line endings and encoding survive
        transfer and comparison unchanged.
        """
        return await self.read_binary(file.path)

    async def create(self, path: str, content: str | bytes) -> VaultFile:
        target = self._resolve(path)
        if target.exists():
            raise FileExistsError(f"File already exists: {path}")
        self._write(target, content)
        logger.debug(f"Created local file: {path}")
        return VaultFile.from_path(path)

    async def modify(self, path: str, content: str | bytes) -> None:
        target = self._resolve(path)
        if not target.is_file():
            raise FileNotFoundError(f"No such vault file: {path}")
        self._write(target, content)
        logger.debug(f"Modified local file: {path}")

    async def create_folder(self, path: str) -> None:
        self._resolve(path).mkdir(parents=True, exist_ok=True)

    async def folder_exists(self, path: str) -> bool:
        return self._resolve(path).is_dir()

    async def exists(self, path: str) -> VaultFile | None:
        try:
            target = self._resolve(path)
        except VaultPathError:
            return None
        if target.is_file():
            return VaultFile.from_path(path)
        return None

    @staticmethod
    def _write(target: Path, content: str | bytes) -> None:
        if isinstance(content, str):
            target.write_text(content, encoding="utf-8")
        else:
            target.write_bytes(content)
