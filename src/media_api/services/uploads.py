"""
Upload orchestration.

An upload is tried once directly against the storage backend and, only if
that fails, once more through a presigned URL. Both attempts share the same
storage path. Progress is tracked as an `UploadState`.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional
from urllib.parse import unquote, urlparse

from media_api.adapters.storage import StorageBackend
from media_api.errors import (
    DirectUploadFailed,
    PresignedTransferFailed,
    PresignedUrlUnavailable,
    StorageError,
    UrlResolutionFailed,
)
from media_api.models import (
    DecodedFile,
    StorageMetadata,
    UploadIntent,
    UploadMethod,
    UploadResult,
)
from media_api.utils.decorators import log_execution_time

logger = logging.getLogger(__name__)


def epoch_millis() -> int:
    return int(time.time() * 1000)


class UploadState(str, Enum):
    PENDING = "pending"
    DIRECT_SUCCEEDED = "direct_succeeded"
    DIRECT_FAILED = "direct_failed"
    PRESIGNED_SUCCEEDED = "presigned_succeeded"
    PRESIGNED_FAILED = "presigned_failed"


@dataclass(frozen=True)
class StrategyOutcome:
    """Result of a single upload strategy: either a URL or the error that stopped it."""
    url: Optional[str] = None
    error: Optional[StorageError] = None

    @property
    def ok(self) -> bool:
        return self.url is not None


@dataclass(frozen=True)
class UploadPlan:
    """Everything that must stay fixed across both strategies of one upload."""
    path: str
    metadata: StorageMetadata


def plan_upload(file: DecodedFile, intent: UploadIntent, now_millis: int) -> UploadPlan:
    owner_id = intent.caller_id or f"user-{now_millis}"
    category = intent.category
    return UploadPlan(
        path=f"{category.directory}/{owner_id}/{now_millis}-{file.file_name}",
        metadata=StorageMetadata(
            owner_id=owner_id,
            owner_role=intent.caller_role,
            asset_kind=category.asset_kind,
        ),
    )


def extract_storage_key(url: str) -> str:
    """Storage key encoded in the last path segment of a public asset URL."""
    path = urlparse(url).path
    return unquote(path.rsplit("/", 1)[-1])


class AssetRetirer:
    """Best-effort deletion of assets superseded by a new upload."""

    def __init__(self, storage: StorageBackend, protected_urls: Iterable[str] = ()):
        self.storage = storage
        self.protected_urls = frozenset(protected_urls)

    async def retire(self, url: str) -> None:
        """Delete the object behind `url`. Never raises."""
        try:
            if url in self.protected_urls:
                logger.info("Protected default image detected - skipping deletion")
                return

            key = extract_storage_key(url)
            if not key:
                logger.warning("Could not extract storage key from URL: %s", url)
                return

            await self.storage.delete_files([key])
            logger.info("Old asset deleted: %s", key)
        except Exception:
            logger.exception("Error deleting old asset %s", url)


class UploadService:
    """Orchestrates the direct-then-presigned upload of a single file."""

    def __init__(
        self,
        storage: StorageBackend,
        retirer: AssetRetirer,
        clock: Callable[[], int] = epoch_millis,
    ):
        self.storage = storage
        self.retirer = retirer
        self.clock = clock

    async def upload_directly(self, file: DecodedFile, plan: UploadPlan) -> StrategyOutcome:
        try:
            results = await self.storage.upload_files([(plan.path, file)], plan.metadata)
        except Exception as e:
            return StrategyOutcome(error=DirectUploadFailed(details=[str(e)]))

        if not results or not results[0].url:
            detail = results[0].error if results and results[0].error else "missing URL in upload response"
            return StrategyOutcome(error=DirectUploadFailed(details=[detail]))
        return StrategyOutcome(url=results[0].url)

    async def upload_with_presigned_url(self, file: DecodedFile, plan: UploadPlan) -> StrategyOutcome:
        try:
            presigned_url = await self.storage.generate_presigned_url(plan.path)
            if not presigned_url:
                return StrategyOutcome(error=PresignedUrlUnavailable())

            response = await self.storage.transfer(presigned_url, file.buffer, file.mime_type)
            if not response.ok:
                return StrategyOutcome(error=PresignedTransferFailed(response.status_code, response.reason))

            resolved = await self.storage.get_file_urls([plan.path])
        except StorageError as e:
            return StrategyOutcome(error=e)
        except Exception as e:
            return StrategyOutcome(error=StorageError(f"Presigned upload failed: {e}"))

        url = next((item.url for item in resolved or [] if item.key == plan.path and item.url), None)
        if url is None:
            return StrategyOutcome(error=UrlResolutionFailed(details=[plan.path]))
        return StrategyOutcome(url=url)

    @log_execution_time("upload")
    async def upload(self, file: DecodedFile, intent: UploadIntent) -> UploadResult:
        """Store `file` and return its URL together with the strategy that produced it.

        Raises the presigned strategy's `StorageError` when both strategies fail.
        """
        plan = plan_upload(file, intent, self.clock())
        state = UploadState.PENDING

        outcome = await self.upload_directly(file, plan)
        if outcome.ok:
            state, method = UploadState.DIRECT_SUCCEEDED, UploadMethod.DIRECT
        else:
            state = UploadState.DIRECT_FAILED
            logger.info("Direct upload failed. Trying with presigned URL...")
            logger.debug("Direct upload error for %s: %s", plan.path, outcome.error.details)

            outcome = await self.upload_with_presigned_url(file, plan)
            if outcome.ok:
                state, method = UploadState.PRESIGNED_SUCCEEDED, UploadMethod.PRESIGNED
            else:
                state = UploadState.PRESIGNED_FAILED

        if state is UploadState.PRESIGNED_FAILED:
            logger.error("Error uploading %s: %s", plan.path, outcome.error.message)
            raise outcome.error

        if intent.previous_asset_url:
            await self.retirer.retire(intent.previous_asset_url)

        logger.info("File uploaded by %s using %s method: %s", intent.caller_role, method.value, outcome.url)
        return UploadResult(url=outcome.url, method=method)
