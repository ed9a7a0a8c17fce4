"""In-memory object store."""

import logging

from .base import ObjectStore

logger = logging.getLogger(__name__)


class InMemoryObjectStore(ObjectStore):
    """Dict-backed store with the same contract as the S3 implementation.

    Useful for dry runs and tests. ``fail_keys`` makes individual keys fail
    their put/get/delete calls.
    """

    def __init__(self, objects: dict[str, bytes] | None = None):
        self.objects: dict[str, bytes] = dict(objects or {})
        self.content_types: dict[str, str] = {}
        self.fail_keys: set[str] = set()
        self.writes: list[str] = []
        self.deletes: list[str] = []

    async def list_keys(self, prefix: str = "") -> list[str]:
        return sorted(k for k in self.objects if k.startswith(prefix))

    async def get(self, key: str) -> bytes | None:
        if key in self.fail_keys:
            logger.debug(f"Simulated read failure: {key}")
            return None
        return self.objects.get(key)

    async def put(self, key: str, content: bytes, content_type: str) -> bool:
        if key in self.fail_keys:
            logger.debug(f"Simulated write failure: {key}")
            return False
        self.objects[key] = bytes(content)
        self.content_types[key] = content_type
        self.writes.append(key)
        return True

    async def delete(self, key: str) -> bool:
        if key in self.fail_keys:
            return False
        self.objects.pop(key, None)
        self.deletes.append(key)
        return True
