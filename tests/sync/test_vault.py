"""Tests for the local vault file store."""

import pytest

from vaultsync.sync.vault import ContentKind, LocalVault, VaultFile, VaultPathError


class TestVaultFile:
    def test_text_file(self):
        f = VaultFile.from_path("notes/Daily.MD")
        assert f.extension == "md"
        assert f.content_kind is ContentKind.TEXT
        assert f.name == "Daily.MD"

    def test_binary_file(self):
        f = VaultFile.from_path("img/photo.jpeg")
        assert f.content_kind is ContentKind.BINARY

    def test_no_extension(self):
        f = VaultFile.from_path("Makefile")
        assert f.extension == ""
        assert f.content_kind is ContentKind.BINARY


@pytest.mark.asyncio
async def test_list_files_returns_relative_posix_paths(vault, write_file):
    write_file("a.md", "a")
    write_file("sub/b.png", b"\x89PNG")
    (vault.root / "emptydir").mkdir()

    paths = [f.path for f in await vault.list_files()]

    assert paths == ["a.md", "sub/b.png"]


@pytest.mark.asyncio
async def test_read_bytes(vault, write_file):
    write_file("a.md", "héllo".encode("utf-8"))
    write_file("b.png", b"\x00\x01")

    assert await vault.read_bytes(VaultFile.from_path("a.md")) == "héllo".encode("utf-8")
    assert await vault.read_bytes(VaultFile.from_path("b.png")) == b"\x00\x01"


@pytest.mark.asyncio
async def test_read_bytes_keeps_text_files_raw(vault, write_file):
    write_file("crlf.md", b"line1\r\nline2\r\n")
    write_file("latin1.txt", b"caf\xe9\n")

    assert await vault.read_bytes(VaultFile.from_path("crlf.md")) == b"line1\r\nline2\r\n"
    assert await vault.read_bytes(VaultFile.from_path("latin1.txt")) == b"caf\xe9\n"


@pytest.mark.asyncio
async def test_create_modify_and_exists(vault):
    assert await vault.exists("new.md") is None

    await vault.create_folder("dir")
    created = await vault.create("dir/new.md", b"one")
    assert created.path == "dir/new.md"
    assert await vault.exists("dir/new.md") == created

    await vault.modify("dir/new.md", "two")
    assert await vault.read("dir/new.md") == "two"


@pytest.mark.asyncio
async def test_create_existing_file_fails(vault, write_file):
    write_file("a.md", "a")
    with pytest.raises(FileExistsError):
        await vault.create("a.md", "b")


@pytest.mark.asyncio
async def test_modify_missing_file_fails(vault):
    with pytest.raises(FileNotFoundError):
        await vault.modify("missing.md", "x")


@pytest.mark.asyncio
async def test_paths_cannot_escape_vault(vault):
    with pytest.raises(VaultPathError):
        await vault.create("../outside.md", "x")
    with pytest.raises(VaultPathError):
        await vault.read("/etc/passwd")
    assert await vault.exists("../outside.md") is None


def test_relative_path(vault_dir):
    vault = LocalVault(vault_dir)
    assert vault.relative_path(vault_dir / "a" / "b.md") == "a/b.md"
    assert vault.relative_path(vault_dir.parent / "elsewhere.md") is None
