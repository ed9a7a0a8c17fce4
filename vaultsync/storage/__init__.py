"""Object store implementations.

- ObjectStore: the four-verb interface the sync engine depends on
- S3ObjectStore: boto3 transport for R2/S3-compatible buckets
- InMemoryObjectStore: dict-backed store for dry runs and tests
"""

import logging

from vaultsync.config import SyncSettings
from vaultsync.storage.base import ObjectStore, StorageError
from vaultsync.storage.memory import InMemoryObjectStore
from vaultsync.storage.s3 import S3ObjectStore

logger = logging.getLogger(__name__)


def create_object_store(settings: SyncSettings) -> ObjectStore | None:
    """Build the object store described by ``settings``.

    Returns:
        None when credentials are incomplete; callers treat that as
        "configuration incomplete" and fail fast.
    """
    if not settings.has_credentials:
        logger.debug("Object store credentials incomplete")
        return None

    return S3ObjectStore(
        bucket=settings.bucket_name,
        access_key_id=settings.access_key_id,
        secret_access_key=settings.secret_access_key,
        account_id=settings.account_id,
        endpoint_url=settings.custom_endpoint or None,
        region=settings.region or "auto",
        prefix=settings.key_prefix,
    )


__all__ = [
    "ObjectStore",
    "StorageError",
    "InMemoryObjectStore",
    "S3ObjectStore",
    "create_object_store",
]
