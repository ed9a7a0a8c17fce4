"""Shared fixtures for vault sync tests."""

import asyncio
from pathlib import Path
from tempfile import TemporaryDirectory

import pytest

from vaultsync.config import SyncSettings
from vaultsync.storage.memory import InMemoryObjectStore
from vaultsync.sync.engine import SyncEngine
from vaultsync.sync.vault import LocalVault


class GatedObjectStore(InMemoryObjectStore):
    """In-memory store whose puts block until ``release`` is set."""

    def __init__(self, objects=None):
        super().__init__(objects)
        self.release = asyncio.Event()
        self.entered = asyncio.Event()

    async def put(self, key, content, content_type):
        self.entered.set()
        await self.release.wait()
        return await super().put(key, content, content_type)


@pytest.fixture
def vault_dir():
    """Create a temporary vault directory."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def vault(vault_dir):
    return LocalVault(vault_dir)


@pytest.fixture
def store():
    return InMemoryObjectStore()


@pytest.fixture
def settings():
    return SyncSettings(
        account_id="acct",
        access_key_id="key",
        secret_access_key="secret",
        bucket_name="bucket",
    )


@pytest.fixture
def messages():
    return []


@pytest.fixture
def engine(vault, store, settings, messages):
    return SyncEngine(vault, store, settings, notify=messages.append)


def write(vault_dir: Path, path: str, content) -> Path:
    """Write a vault file, creating parent directories."""
    target = vault_dir / path
    target.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        target.write_bytes(content)
    else:
        target.write_text(content)
    return target


@pytest.fixture
def write_file(vault_dir):
    def _write(path: str, content) -> Path:
        return write(vault_dir, path, content)

    return _write


@pytest.fixture
def gated_store():
    return GatedObjectStore()
