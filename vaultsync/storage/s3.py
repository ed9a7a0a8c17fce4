"""S3 storage operations for R2 and other S3-compatible buckets."""

import asyncio
import functools
import logging

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .base import ObjectStore, StorageError

logger = logging.getLogger(__name__)

R2_ENDPOINT_TEMPLATE = "https://{account_id}.r2.cloudflarestorage.com"


class S3ObjectStore(ObjectStore):
    """Handles all S3 operations for the sync engine.

    boto3 is blocking, so every call is pushed to the default executor to keep
    the event loop responsive while transfers are in flight.
    """

    def __init__(
        self,
        bucket: str,
        access_key_id: str,
        secret_access_key: str,
        *,
        account_id: str = "",
        endpoint_url: str | None = None,
        region: str = "auto",
        prefix: str = "",
        client=None,
    ):
        """Initialize S3 client.

        Args:
            bucket: Bucket name
            access_key_id: Access key
            secret_access_key: Secret key
            account_id: Cloudflare account id, used to derive the R2 endpoint
            endpoint_url: Explicit endpoint (overrides the R2 endpoint)
            region: Region name ("auto" for R2)
            prefix: Optional key prefix that namespaces every object
            client: Pre-built boto3 client (tests)
        """
        if endpoint_url is None and account_id:
            endpoint_url = R2_ENDPOINT_TEMPLATE.format(account_id=account_id)

        self.s3 = client or boto3.client(
            "s3",
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            region_name=region,
            endpoint_url=endpoint_url,
        )
        self.bucket = bucket
        self.prefix = prefix.strip("/")

    def _make_key(self, key: str) -> str:
        """Convert a store key to an S3 key with prefix."""
        key = key.lstrip("/")
        return f"{self.prefix}/{key}" if self.prefix else key

    def _strip_key(self, s3_key: str) -> str:
        if self.prefix and s3_key.startswith(self.prefix + "/"):
            return s3_key[len(self.prefix) + 1 :]
        return s3_key

    async def _run(self, func, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, **kwargs))

    async def list_keys(self, prefix: str = "") -> list[str]:
        full_prefix = self._make_key(prefix) if prefix else (
            f"{self.prefix}/" if self.prefix else ""
        )
        try:
            return await self._run(self._list_all, full_prefix=full_prefix)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error listing objects under '{prefix}': {e}")
            raise StorageError(f"Failed to list objects: {e}")

    def _list_all(self, full_prefix: str) -> list[str]:
        paginator = self.s3.get_paginator("list_objects_v2")
        keys = []
        for page in paginator.paginate(Bucket=self.bucket, Prefix=full_prefix):
            for obj in page.get("Contents", []):
                keys.append(self._strip_key(obj["Key"]))
        return keys

    async def get(self, key: str) -> bytes | None:
        try:
            response = await self._run(
                self.s3.get_object, Bucket=self.bucket, Key=self._make_key(key)
            )
            return await self._run(response["Body"].read)
        except ClientError as e:
            if e.response["Error"]["Code"] in ("NoSuchKey", "404"):
                logger.debug(f"Object not found: {key}")
            else:
                logger.error(f"Error reading object {key}: {e}")
            return None
        except BotoCoreError as e:
            logger.error(f"Error reading object {key}: {e}")
            return None

    async def put(self, key: str, content: bytes, content_type: str) -> bool:
        try:
            await self._run(
                self.s3.put_object,
                Bucket=self.bucket,
                Key=self._make_key(key),
                Body=content,
                ContentType=content_type,
            )
            logger.debug(f"Wrote object: {key} ({len(content)} bytes, {content_type})")
            return True
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error writing object {key}: {e}")
            return False

    async def delete(self, key: str) -> bool:
        try:
            await self._run(
                self.s3.delete_object, Bucket=self.bucket, Key=self._make_key(key)
            )
            logger.debug(f"Deleted object: {key}")
            return True
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error deleting object {key}: {e}")
            return False

    async def test_connection(self) -> tuple[bool, str]:
        try:
            response = await self._run(
                self.s3.list_objects_v2, Bucket=self.bucket, MaxKeys=1
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Connection test failed: {e}")
            return False, f"Connection failed: {e}"
        count = len(response.get("Contents", []))
        return True, f"Connected to bucket '{self.bucket}'. Found {count} files."
