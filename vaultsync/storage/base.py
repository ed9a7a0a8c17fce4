"""Object store interface consumed by the reconciliation engine.

The engine only ever talks to remote storage through the four verbs defined
here, so any transport (R2 via boto3, an in-memory bucket for tests, ...)
can be swapped in without touching sync logic.
"""

from abc import ABC, abstractmethod


class StorageError(Exception):
    """Base exception for object store operations."""


class ObjectStore(ABC):
    """Flat key/value object store."""

    @abstractmethod
    async def list_keys(self, prefix: str = "") -> list[str]:
        """List every key starting with ``prefix``.

        Raises:
            StorageError: If the listing could not be completed
        """

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """Fetch object content, or None if absent or unreadable."""

    @abstractmethod
    async def put(self, key: str, content: bytes, content_type: str) -> bool:
        """Store ``content`` under ``key``. Returns True on success."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete ``key``. Returns True on success."""

    async def test_connection(self) -> tuple[bool, str]:
        """Check connectivity.

        Returns:
            Tuple of (success, human readable details)
        """
        try:
            keys = await self.list_keys("")
        except StorageError as e:
            return False, f"Connection failed: {e}"
        return True, f"Connected. Found {len(keys)} objects."
