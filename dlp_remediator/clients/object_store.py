"""
Object storage adapter.

The remediation executor only needs two primitives, copy and delete, and
treats them as independent calls: the store gives no atomicity across them.
"""

import asyncio
from typing import Any, Protocol

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from dlp_remediator.clients.aws import create_client
from dlp_remediator.config import AWSSettings
from dlp_remediator.exceptions import TransientDependencyError

logger = structlog.get_logger(__name__)


class ObjectStore(Protocol):
    """Object storage operations used for quarantine."""

    async def copy_object(
        self,
        source_bucket: str,
        source_key: str,
        dest_bucket: str,
        dest_key: str,
    ) -> None: ...

    async def delete_object(self, bucket: str, key: str) -> None: ...


class S3ObjectStore:
    """
    S3 implementation of ObjectStore.

    boto3 is blocking, so each call runs in a worker thread. Failures are
    raised as TransientDependencyError.
    """

    def __init__(self, client: Any | None = None, aws: AWSSettings | None = None) -> None:
        """
        Args:
            client: boto3 S3 client (created on first use if omitted)
            aws: Region/endpoint overrides for the created client
        """
        self._client = client
        self._aws = aws
        self._logger = logger.bind(component="s3_object_store")

    @property
    def _s3(self) -> Any:
        if self._client is None:
            self._client = create_client("s3", self._aws)
        return self._client

    async def copy_object(
        self,
        source_bucket: str,
        source_key: str,
        dest_bucket: str,
        dest_key: str,
    ) -> None:
        try:
            await asyncio.to_thread(
                self._s3.copy_object,
                Bucket=dest_bucket,
                Key=dest_key,
                CopySource={"Bucket": source_bucket, "Key": source_key},
            )
        except (BotoCoreError, ClientError) as e:
            self._logger.error(
                "s3_copy_failed",
                source=f"{source_bucket}/{source_key}",
                destination=f"{dest_bucket}/{dest_key}",
                error=str(e),
            )
            raise TransientDependencyError(
                f"Unable to copy object to quarantine bucket ({source_bucket}/{source_key}): {e}",
                dependency="s3",
            ) from e

    async def delete_object(self, bucket: str, key: str) -> None:
        # S3 reports success for keys that do not exist
        try:
            await asyncio.to_thread(self._s3.delete_object, Bucket=bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            self._logger.error(
                "s3_delete_failed",
                location=f"{bucket}/{key}",
                error=str(e),
            )
            raise TransientDependencyError(
                f"Unable to delete object from source bucket ({bucket}/{key}): {e}",
                dependency="s3",
            ) from e
