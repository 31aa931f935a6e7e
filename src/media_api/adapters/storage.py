"""
Storage backend capability set and its S3 implementation.

The upload orchestrator and the listing normalizer only talk to the
`StorageBackend` protocol; `S3StorageBackend` fulfils it with boto3 for the
object operations and requests for the raw PUT to presigned URLs.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, List, Optional, Protocol, Sequence, Tuple
from urllib.parse import quote

import boto3
import requests
from botocore.exceptions import ClientError

from media_api.config.settings import Settings
from media_api.utils.decorators import log_execution_time
from media_api.models import (
    DecodedFile,
    FileUrl,
    StorageMetadata,
    StoredFile,
    TransferResponse,
    UploadedFile,
)

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client

logger = logging.getLogger(__name__)

# S3 DeleteObjects accepts at most this many keys per call
DELETE_BATCH_SIZE = 1000


def synthesize_public_url(public_base_url: str, key: str) -> str:
    """Deterministic public URL for a storage key.

    The key is percent-encoded as a single path segment so that it can be
    recovered from the last segment of the URL.
    """
    return f"{public_base_url.rstrip('/')}/f/{quote(key, safe='')}"


class StorageBackend(Protocol):
    """Capabilities the upload and listing services need from an object store."""

    async def upload_files(
        self, files: Sequence[Tuple[str, DecodedFile]], metadata: StorageMetadata
    ) -> List[UploadedFile]:
        ...

    async def generate_presigned_url(self, key: str) -> Optional[str]:
        ...

    async def transfer(self, url: str, data: bytes, content_type: str) -> TransferResponse:
        ...

    async def get_file_urls(self, keys: Sequence[str]) -> Optional[List[FileUrl]]:
        ...

    async def delete_files(self, keys: Sequence[str]) -> None:
        ...

    async def list_files(self) -> List[StoredFile]:
        ...


class S3StorageBackend:
    """S3-backed implementation of `StorageBackend`.

    boto3 and requests are blocking, so every call is pushed onto a worker
    thread with `asyncio.to_thread`.
    """

    def __init__(
        self,
        bucket_name: str,
        public_base_url: str,
        s3_client: Optional["S3Client"] = None,
        presigned_url_expiry_seconds: int = 3600,
        transfer_timeout_seconds: float = 30.0,
    ):
        self.bucket_name = bucket_name
        self.public_base_url = public_base_url.rstrip("/")
        self.s3_client = s3_client or boto3.client("s3")
        self.presigned_url_expiry_seconds = presigned_url_expiry_seconds
        self.transfer_timeout_seconds = transfer_timeout_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3StorageBackend":
        """Build a backend with a client configured from settings."""
        client_kwargs = {"region_name": settings.aws_region}
        if settings.aws_access_key_id:
            client_kwargs["aws_access_key_id"] = settings.aws_access_key_id
        if settings.aws_secret_access_key:
            client_kwargs["aws_secret_access_key"] = settings.aws_secret_access_key
        if settings.aws_endpoint_url and settings.is_local_mode:
            client_kwargs["endpoint_url"] = settings.aws_endpoint_url

        s3_client = boto3.client("s3", **client_kwargs)
        logger.info(f"S3 storage backend initialized for bucket: {settings.s3_bucket_name}")
        logger.info(f"  Mode: {settings.deployment_mode}")
        logger.info(f"  Endpoint: {client_kwargs.get('endpoint_url')}")
        return cls(
            bucket_name=settings.s3_bucket_name,
            public_base_url=settings.public_base_url,
            s3_client=s3_client,
            presigned_url_expiry_seconds=settings.presigned_url_expiry_seconds,
            transfer_timeout_seconds=settings.transfer_timeout_seconds,
        )

    def public_url(self, key: str) -> str:
        return synthesize_public_url(self.public_base_url, key)

    # -- direct upload -------------------------------------------------

    def _put_object(self, key: str, file: DecodedFile, metadata: StorageMetadata) -> UploadedFile:
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=file.buffer,
                ContentType=file.mime_type or "application/octet-stream",
                Metadata=metadata.as_object_metadata(),
            )
        except ClientError as e:
            logger.error(f"Error uploading {key} to S3: {str(e)}")
            return UploadedFile(key=key, error=str(e))
        logger.info(f"Uploaded {key} to bucket {self.bucket_name}")
        return UploadedFile(key=key, url=self.public_url(key))

    async def upload_files(
        self, files: Sequence[Tuple[str, DecodedFile]], metadata: StorageMetadata
    ) -> List[UploadedFile]:
        """Upload each file under its key; failures are reported per file, not raised."""
        results = []
        for key, file in files:
            results.append(await asyncio.to_thread(self._put_object, key, file, metadata))
        return results

    # -- presigned upload ----------------------------------------------

    async def generate_presigned_url(self, key: str) -> Optional[str]:
        try:
            return await asyncio.to_thread(
                self.s3_client.generate_presigned_url,
                "put_object",
                Params={"Bucket": self.bucket_name, "Key": key},
                ExpiresIn=self.presigned_url_expiry_seconds,
            )
        except ClientError as e:
            logger.error(f"Error generating presigned URL for {key}: {str(e)}")
            return None

    def _put_bytes(self, url: str, data: bytes, content_type: str) -> TransferResponse:
        response = requests.put(
            url,
            data=data,
            headers={"Content-Type": content_type},
            timeout=self.transfer_timeout_seconds,
        )
        return TransferResponse(status_code=response.status_code, reason=response.reason or "")

    async def transfer(self, url: str, data: bytes, content_type: str) -> TransferResponse:
        return await asyncio.to_thread(self._put_bytes, url, data, content_type)

    # -- lookups -------------------------------------------------------

    def _object_exists(self, key: str) -> bool:
        try:
            self.s3_client.head_object(Bucket=self.bucket_name, Key=key)
            return True
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("404", "NoSuchKey", "NotFound"):
                return False
            raise

    def _resolve_urls(self, keys: Sequence[str]) -> List[FileUrl]:
        return [FileUrl(key=key, url=self.public_url(key)) for key in keys if self._object_exists(key)]

    async def get_file_urls(self, keys: Sequence[str]) -> Optional[List[FileUrl]]:
        """Resolve public URLs for the keys that exist; unknown keys are left out."""
        return await asyncio.to_thread(self._resolve_urls, list(keys))

    def _delete_objects(self, keys: Sequence[str]) -> None:
        keys = list(keys)
        for start in range(0, len(keys), DELETE_BATCH_SIZE):
            batch = keys[start:start + DELETE_BATCH_SIZE]
            response = self.s3_client.delete_objects(
                Bucket=self.bucket_name,
                Delete={"Objects": [{"Key": key} for key in batch], "Quiet": True},
            )
            errors = response.get("Errors") or []
            if errors:
                raise RuntimeError(f"Failed to delete {len(errors)} object(s): {errors[0].get('Message')}")
        logger.info(f"Deleted {len(keys)} object(s) from bucket {self.bucket_name}")

    async def delete_files(self, keys: Sequence[str]) -> None:
        if not keys:
            return
        await asyncio.to_thread(self._delete_objects, keys)

    @log_execution_time("s3_list_objects")
    def _list_objects(self) -> List[StoredFile]:
        paginator = self.s3_client.get_paginator("list_objects_v2")
        files = []
        for page in paginator.paginate(Bucket=self.bucket_name):
            for item in page.get("Contents", []):
                key = item["Key"]
                files.append(
                    StoredFile(
                        name=key.rsplit("/", 1)[-1],
                        key=key,
                        size=item["Size"],
                        uploaded_at=int(item["LastModified"].timestamp() * 1000),
                    )
                )
        return files

    async def list_files(self) -> List[StoredFile]:
        return await asyncio.to_thread(self._list_objects)
