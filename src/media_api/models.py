"""Domain types shared by the classifier, the orchestrator and the storage adapters."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class MediaCategory(int, Enum):
    """Media type discriminator sent by clients as `mediaType`."""
    PROFILE = 0
    POST_IMAGE = 1
    POST_GIF = 2

    @property
    def directory(self) -> str:
        return _CATEGORY_LAYOUT[self][0]

    @property
    def asset_kind(self) -> str:
        return _CATEGORY_LAYOUT[self][1]


_CATEGORY_LAYOUT = {
    MediaCategory.PROFILE: ("profiles", "profile-image"),
    MediaCategory.POST_IMAGE: ("posts", "post-image"),
    MediaCategory.POST_GIF: ("gifs", "post-gif"),
}


class UploadMethod(str, Enum):
    DIRECT = "direct"
    PRESIGNED = "presignedUrl"


@dataclass(frozen=True)
class DecodedFile:
    buffer: bytes
    mime_type: str
    file_name: str


@dataclass(frozen=True)
class UploadIntent:
    category: MediaCategory
    caller_role: str
    caller_id: Optional[str] = None
    previous_asset_url: Optional[str] = None


@dataclass(frozen=True)
class StorageMetadata:
    owner_id: str
    owner_role: str
    asset_kind: str

    def as_object_metadata(self) -> dict:
        """Metadata in the header-safe form object stores expect."""
        return {
            "owner-id": self.owner_id,
            "owner-role": self.owner_role,
            "asset-kind": self.asset_kind,
        }


@dataclass(frozen=True)
class UploadResult:
    url: str
    method: UploadMethod


@dataclass(frozen=True)
class Principal:
    role: str
    email: str
    id: Optional[str] = None


@dataclass(frozen=True)
class StoredFile:
    """Raw listing entry as returned by a storage backend."""
    name: str
    key: str
    size: int
    uploaded_at: int  # epoch millis
    custom_id: Optional[str] = None


@dataclass(frozen=True)
class UploadedFile:
    key: str
    url: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class FileUrl:
    key: str
    url: str


@dataclass(frozen=True)
class TransferResponse:
    status_code: int
    reason: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300
