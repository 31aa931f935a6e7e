"""Directory listing normalization."""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from media_api.adapters.storage import StorageBackend, synthesize_public_url
from media_api.errors import ListingFailed, StorageError
from media_api.utils.decorators import log_execution_time

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssetRecord:
    name: str
    key: str
    size_bytes: int
    uploaded_at: str
    url: str
    custom_id: Optional[str] = None


def millis_to_iso(epoch_millis: int) -> str:
    """Epoch milliseconds to ISO-8601 UTC, e.g. `2020-01-01T00:00:00.000Z`."""
    moment = datetime.fromtimestamp(epoch_millis / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ListingService:
    """Merge the backend's raw file list with resolved URLs into `AssetRecord`s."""

    def __init__(self, storage: StorageBackend, public_base_url: str):
        self.storage = storage
        self.public_base_url = public_base_url

    @log_execution_time("list_assets")
    async def list(self) -> List[AssetRecord]:
        try:
            files = await self.storage.list_files()
            keys = [file.key for file in files]
            resolved = await self.storage.get_file_urls(keys) if keys else None
        except StorageError:
            logger.exception("Error listing files")
            raise
        except Exception as e:
            logger.exception("Error listing files")
            raise ListingFailed(details=[str(e)]) from e

        url_by_key = {item.key: item.url for item in resolved or []}

        return [
            AssetRecord(
                name=file.name,
                key=file.key,
                size_bytes=file.size,
                uploaded_at=millis_to_iso(file.uploaded_at),
                custom_id=file.custom_id,
                url=url_by_key.get(file.key) or synthesize_public_url(self.public_base_url, file.key),
            )
            for file in files
        ]
