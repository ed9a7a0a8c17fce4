"""Persisted settings for vault synchronization.

Settings live inside the vault at ``.vaultsync/settings.json``. That directory
is the tool's own configuration directory and is never synced.
"""

import base64
import binascii
import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".vaultsync"
SETTINGS_FILE_NAME = "settings.json"

# Environment variables that override stored credentials
ENV_OVERRIDES = {
    "VAULTSYNC_ACCOUNT_ID": "account_id",
    "VAULTSYNC_ACCESS_KEY_ID": "access_key_id",
    "VAULTSYNC_SECRET_ACCESS_KEY": "secret_access_key",
    "VAULTSYNC_BUCKET": "bucket_name",
    "VAULTSYNC_ENDPOINT": "custom_endpoint",
}

CREDENTIAL_FIELDS = (
    "account_id",
    "access_key_id",
    "secret_access_key",
    "bucket_name",
    "region",
    "custom_endpoint",
    "base_folder",
)


@dataclass
class SyncSettings:
    """User configuration for one vault.

    The reconciliation core treats these as read-only inputs; only the CLI
    writes them back (``last_sync_time`` after each operation).
    """

    # Object store connection
    account_id: str = ""
    access_key_id: str = ""
    secret_access_key: str = ""
    bucket_name: str = ""
    region: str = "auto"
    custom_endpoint: str = ""
    key_prefix: str = ""

    # Sync behaviour
    base_folder: str = ""
    auto_sync: bool = True
    bidirectional_sync: bool = True
    sync_delay: float = 5  # seconds of quiet before an auto upload
    bidirectional_sync_interval: float = 2  # minutes between remote polls

    # Backups
    enable_backups: bool = False
    backup_retention_days: int = 30
    auto_backup_on_sync: bool = False

    debug_mode: bool = False
    last_sync_time: str = ""

    @property
    def has_credentials(self) -> bool:
        """Whether enough is configured to build an object store client."""
        return bool(
            (self.account_id or self.custom_endpoint)
            and self.access_key_id
            and self.secret_access_key
            and self.bucket_name
        )

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "SyncSettings":
        """Create from dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def apply_env_overrides(self, environ=None) -> None:
        environ = os.environ if environ is None else environ
        for var, attr in ENV_OVERRIDES.items():
            value = environ.get(var)
            if value:
                setattr(self, attr, value)

    def export_credentials(self, vault_name: str = "") -> str:
        """Export connection settings as base64 encoded JSON."""
        data = {name: getattr(self, name) for name in CREDENTIAL_FIELDS}
        data["vault_name"] = vault_name
        return base64.b64encode(json.dumps(data, indent=2).encode("utf-8")).decode(
            "ascii"
        )

    def import_credentials(self, encoded: str) -> bool:
        """Import connection settings produced by ``export_credentials``.

        Returns:
            False if the payload is malformed or misses required fields
        """
        try:
            data = json.loads(base64.b64decode(encoded, validate=True))
        except (binascii.Error, ValueError) as e:
            logger.error(f"Failed to import credentials: {e}")
            return False

        if not isinstance(data, dict):
            logger.error("Failed to import credentials: not a JSON object")
            return False

        required = ("access_key_id", "secret_access_key", "bucket_name")
        if not all(data.get(name) for name in required) or not (
            data.get("account_id") or data.get("custom_endpoint")
        ):
            logger.error("Invalid credentials: missing required fields")
            return False

        self.account_id = data.get("account_id", "")
        self.access_key_id = data["access_key_id"]
        self.secret_access_key = data["secret_access_key"]
        self.bucket_name = data["bucket_name"]
        self.region = data.get("region") or "auto"
        self.custom_endpoint = data.get("custom_endpoint") or ""
        self.base_folder = data.get("base_folder") or ""
        return True


def settings_path(vault_root: Path) -> Path:
    return Path(vault_root) / CONFIG_DIR_NAME / SETTINGS_FILE_NAME


def load_settings(vault_root: Path, apply_env: bool = True) -> SyncSettings:
    """Load settings for a vault, falling back to defaults.

    A missing or corrupt settings file yields default settings.
    """
    path = settings_path(vault_root)
    settings = SyncSettings()

    if path.exists():
        try:
            with open(path, "r") as f:
                data = json.load(f)
            if isinstance(data, dict):
                settings = SyncSettings.from_dict(data)
            else:
                logger.error(f"Ignoring malformed settings file {path}")
        except (json.JSONDecodeError, OSError, TypeError) as e:
            logger.error(f"Failed to load settings from {path}: {e}")
    else:
        logger.debug(f"No settings found at {path}")

    if apply_env:
        settings.apply_env_overrides()
    return settings


def save_settings(vault_root: Path, settings: SyncSettings) -> None:
    """Save settings to disk."""
    path = settings_path(vault_root)
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with open(path, "w") as f:
            json.dump(settings.to_dict(), f, indent=2)
        logger.debug(f"Saved settings to {path}")
    except OSError as e:
        logger.error(f"Failed to save settings: {e}")
        raise
