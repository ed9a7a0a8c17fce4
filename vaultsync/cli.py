"""Command line interface for vault synchronization."""

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated, Optional

import cyclopts
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from vaultsync.config import SyncSettings, load_settings, save_settings
from vaultsync.storage import create_object_store
from vaultsync.sync.backup import BackupManager
from vaultsync.sync.engine import SyncEngine
from vaultsync.sync.vault import LocalVault, VaultFile
from vaultsync.sync.watcher import AutoSync

logger = logging.getLogger(__name__)

app = cyclopts.App(name="vaultsync", help="Sync a local vault with an S3/R2 bucket")
backup_app = cyclopts.App(name="backup", help="Manage backup markers")
app.command(backup_app)

VaultOption = Annotated[Path, cyclopts.Parameter(help="Vault root directory")]
VerboseOption = Annotated[bool, cyclopts.Parameter(help="Enable debug logging")]


def _get_console() -> Console:
    """Get a Rich console for output."""
    return Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _build(
    vault: Path, verbose: bool, console: Console
) -> tuple[SyncSettings, SyncEngine, BackupManager]:
    settings = load_settings(vault)
    _setup_logging(verbose or settings.debug_mode)

    store = create_object_store(settings)
    notify = console.print
    engine = SyncEngine(LocalVault(vault), store, settings, notify=notify)
    backups = BackupManager(store, enabled=settings.enable_backups, notify=notify)
    return settings, engine, backups


def _record_sync(vault: Path, engine: SyncEngine) -> None:
    """Persist the engine's last sync time without writing env overrides."""
    if not engine.state.last_sync_time:
        return
    stored = load_settings(vault, apply_env=False)
    if stored.last_sync_time != engine.state.last_sync_time:
        stored.last_sync_time = engine.state.last_sync_time
        save_settings(vault, stored)


def _vault_file(vault: Path, file: Path) -> VaultFile | None:
    rel = LocalVault(vault).relative_path(file if file.is_absolute() else vault / file)
    return VaultFile.from_path(rel) if rel else None


@app.command
def init(
    *,
    vault: VaultOption = Path("."),
    account_id: Annotated[Optional[str], cyclopts.Parameter(help="Cloudflare account id")] = None,
    access_key_id: Annotated[Optional[str], cyclopts.Parameter(help="Access key id")] = None,
    secret_access_key: Annotated[Optional[str], cyclopts.Parameter(help="Secret access key")] = None,
    bucket: Annotated[Optional[str], cyclopts.Parameter(help="Bucket name")] = None,
    endpoint: Annotated[Optional[str], cyclopts.Parameter(help="Custom S3 endpoint")] = None,
    region: Annotated[Optional[str], cyclopts.Parameter(help="Region")] = None,
    base_folder: Annotated[Optional[str], cyclopts.Parameter(help="Vault folder to sync")] = None,
    bidirectional: Annotated[Optional[bool], cyclopts.Parameter(help="Download remote changes")] = None,
    auto_sync: Annotated[Optional[bool], cyclopts.Parameter(help="Upload on file changes")] = None,
    sync_delay: Annotated[Optional[float], cyclopts.Parameter(help="Quiet period in seconds")] = None,
    poll_interval: Annotated[Optional[float], cyclopts.Parameter(help="Remote poll interval in minutes")] = None,
    backups: Annotated[Optional[bool], cyclopts.Parameter(help="Enable backup markers")] = None,
    retention_days: Annotated[Optional[int], cyclopts.Parameter(help="Backup retention, 0 keeps forever")] = None,
):
    """Write sync settings for a vault.

    Options left out keep their stored value (or the default on first run).

    Example:
        vaultsync init --account-id abc --access-key-id KEY --secret-access-key SECRET --bucket notes
    """
    console = _get_console()
    settings = load_settings(vault, apply_env=False)

    for attr, value in (
        ("account_id", account_id),
        ("access_key_id", access_key_id),
        ("secret_access_key", secret_access_key),
        ("bucket_name", bucket),
        ("custom_endpoint", endpoint),
        ("region", region),
        ("base_folder", base_folder),
        ("bidirectional_sync", bidirectional),
        ("auto_sync", auto_sync),
        ("sync_delay", sync_delay),
        ("bidirectional_sync_interval", poll_interval),
        ("enable_backups", backups),
        ("backup_retention_days", retention_days),
    ):
        if value is not None:
            setattr(settings, attr, value)

    save_settings(vault, settings)
    console.print(f"[green]✓ Settings saved for {vault.resolve()}[/green]")
    if not settings.has_credentials:
        console.print("[yellow]Credentials incomplete; sync commands will fail.[/yellow]")


@app.command
def status(*, vault: VaultOption = Path(".")):
    """Show sync configuration and last sync time."""
    console = _get_console()
    settings = load_settings(vault)

    table = Table(title="Vault Sync Status", show_header=False, box=None)
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")

    table.add_row("Vault", str(vault.resolve()))
    table.add_row("Configured", "✓ Yes" if settings.has_credentials else "✗ No")
    table.add_row("Bucket", settings.bucket_name or "-")
    table.add_row("Base folder", settings.base_folder or "(entire vault)")
    table.add_row("Auto sync", "✓ On" if settings.auto_sync else "✗ Off")
    table.add_row(
        "Bidirectional",
        f"✓ Every {settings.bidirectional_sync_interval} min"
        if settings.bidirectional_sync
        else "✗ Off",
    )
    table.add_row("Backups", "✓ On" if settings.enable_backups else "✗ Off")

    if settings.last_sync_time:
        try:
            last_sync = datetime.fromisoformat(settings.last_sync_time)
            delta = datetime.now(timezone.utc) - last_sync
            minutes = int(delta.total_seconds() / 60)
            table.add_row(
                "Last Sync",
                f"{last_sync.strftime('%Y-%m-%d %H:%M:%S UTC')} ({minutes} minutes ago)",
            )
        except (ValueError, TypeError):
            table.add_row("Last Sync", settings.last_sync_time)
    else:
        table.add_row("Last Sync", "Never")

    console.print(table)


@app.command
def test_connection(*, vault: VaultOption = Path("."), verbose: VerboseOption = False):
    """Check that the bucket is reachable with the configured credentials."""
    console = _get_console()
    _, engine, _ = _build(vault, verbose, console)
    asyncio.run(engine.test_connection())


async def _full_sync(
    settings: SyncSettings, engine: SyncEngine, backups: BackupManager
) -> bool:
    if settings.enable_backups and settings.auto_backup_on_sync:
        await backups.create_backup(settings.base_folder or engine.vault.name)
    return await engine.sync_all_files()


@app.command
def sync(*, vault: VaultOption = Path("."), verbose: VerboseOption = False):
    """Run a full sync: download remote changes, then upload local files."""
    console = _get_console()
    settings, engine, backups = _build(vault, verbose, console)
    asyncio.run(_full_sync(settings, engine, backups))
    _record_sync(vault, engine)


@app.command
def push(
    file: Annotated[Path, cyclopts.Parameter(help="File to upload")],
    *,
    vault: VaultOption = Path("."),
    verbose: VerboseOption = False,
):
    """Upload one file now."""
    console = _get_console()
    _, engine, _ = _build(vault, verbose, console)

    vault_file = _vault_file(vault, file)
    if vault_file is None or not (vault / vault_file.path).is_file():
        console.print(f"[red]Not a file in the vault: {file}[/red]")
        return
    asyncio.run(engine.sync_file(vault_file))
    _record_sync(vault, engine)


@app.command
def sync_missing(*, vault: VaultOption = Path("."), verbose: VerboseOption = False):
    """Upload local files that do not exist remotely yet."""
    console = _get_console()
    _, engine, _ = _build(vault, verbose, console)
    asyncio.run(engine.sync_missing_files())


@app.command
def pull(*, vault: VaultOption = Path("."), verbose: VerboseOption = False):
    """Download remote changes without uploading."""
    console = _get_console()
    settings, engine, _ = _build(vault, verbose, console)
    if not settings.bidirectional_sync:
        console.print("[yellow]Bidirectional sync is disabled.[/yellow]")
        return
    asyncio.run(engine.download_and_sync())


@app.command
def delete(
    file: Annotated[Path, cyclopts.Parameter(help="Deleted vault file")],
    *,
    vault: VaultOption = Path("."),
    verbose: VerboseOption = False,
):
    """Delete the remote copy of a vault file."""
    console = _get_console()
    _, engine, _ = _build(vault, verbose, console)

    vault_file = _vault_file(vault, file)
    if vault_file is None:
        console.print(f"[red]Not a vault path: {file}[/red]")
        return
    asyncio.run(engine.delete_remote_for_file(vault_file))


@app.command
def watch(*, vault: VaultOption = Path("."), verbose: VerboseOption = False):
    """Keep syncing while running (Ctrl+C to stop)."""
    console = _get_console()
    settings, engine, _ = _build(vault, verbose, console)

    if engine.store is None:
        console.print("[red]Object store configuration incomplete.[/red]")
        return

    async def run():
        auto = AutoSync(engine)
        auto.start()
        console.print(f"[green]Watching {vault.resolve()}[/green] (Ctrl+C to stop)")
        try:
            while True:
                await asyncio.sleep(1)
                _record_sync(vault, engine)
        finally:
            await auto.stop()
            _record_sync(vault, engine)

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("[yellow]Stopped[/yellow]")


@app.command
def export_credentials(*, vault: VaultOption = Path(".")):
    """Print connection settings as a base64 string for another device."""
    console = _get_console()
    settings = load_settings(vault, apply_env=False)
    console.print(settings.export_credentials(vault.resolve().name), soft_wrap=True)


@app.command
def import_credentials(
    data: Annotated[str, cyclopts.Parameter(help="Output of export-credentials")],
    *,
    vault: VaultOption = Path("."),
):
    """Import connection settings exported on another device."""
    console = _get_console()
    settings = load_settings(vault, apply_env=False)
    if settings.import_credentials(data):
        save_settings(vault, settings)
        console.print("[green]✓ Credentials imported successfully[/green]")
    else:
        console.print("[red]Failed to import credentials: invalid format[/red]")


@backup_app.command(name="create")
def backup_create(
    folder: Annotated[str, cyclopts.Parameter(help="Folder the backup refers to")],
    *,
    vault: VaultOption = Path("."),
    verbose: VerboseOption = False,
):
    """Write a backup marker for a folder."""
    console = _get_console()
    settings, _, backups = _build(vault, verbose, console)
    if not settings.enable_backups:
        console.print("[yellow]Backups are disabled. Enable them with init --backups.[/yellow]")
        return
    asyncio.run(backups.create_backup(folder))


@backup_app.command(name="list")
def backup_list(*, vault: VaultOption = Path("."), verbose: VerboseOption = False):
    """List backup markers, newest first."""
    console = _get_console()
    _, _, backups = _build(vault, verbose, console)
    markers = asyncio.run(backups.list_backups())

    if not markers:
        console.print("No backups found")
        return

    table = Table(title="Backups")
    table.add_column("Timestamp", style="cyan")
    table.add_column("Folder", style="white")
    for marker in markers:
        table.add_row(marker.timestamp, marker.folder_path)
    console.print(table)


@backup_app.command(name="delete")
def backup_delete(
    timestamp: Annotated[str, cyclopts.Parameter(help="Backup timestamp")],
    *,
    vault: VaultOption = Path("."),
    verbose: VerboseOption = False,
):
    """Delete one backup and everything stored under it."""
    console = _get_console()
    _, _, backups = _build(vault, verbose, console)
    asyncio.run(backups.delete_backup(timestamp))


@backup_app.command(name="cleanup")
def backup_cleanup(
    *,
    vault: VaultOption = Path("."),
    retention_days: Annotated[
        Optional[int], cyclopts.Parameter(help="Override configured retention")
    ] = None,
    verbose: VerboseOption = False,
):
    """Delete backups older than the retention window."""
    console = _get_console()
    settings, _, backups = _build(vault, verbose, console)
    days = settings.backup_retention_days if retention_days is None else retention_days
    deleted = asyncio.run(backups.cleanup_old_backups(days))
    if not deleted:
        console.print("No backups to clean up")


def main():
    load_dotenv()
    app()
