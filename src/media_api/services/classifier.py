"""Inbound upload request classification and validation."""
import logging
from typing import Mapping, Optional, Tuple

from starlette.requests import Request

from media_api.adapters.multipart import DecodeError, DecodeResult, MultipartDecoder
from media_api.errors import (
    FileDecodeFailed,
    FileTooLarge,
    MissingOrInvalidMediaType,
    NoFileProvided,
    UnexpectedField,
    UnsupportedFileType,
    UnsupportedRequestType,
    ValidationError,
)
from media_api.models import DecodedFile, MediaCategory, Principal, UploadIntent

logger = logging.getLogger(__name__)

MULTIPART_CONTENT_TYPE = "multipart/form-data"

MEDIA_TYPE_FIELD = "mediaType"
CALLER_ID_FIELD = "userId"
PREVIOUS_ASSET_FIELD = "oldImageUrl"


def is_multipart(content_type: Optional[str]) -> bool:
    return MULTIPART_CONTENT_TYPE in (content_type or "").lower()


def translate_decode_error(result: DecodeResult) -> ValidationError:
    """Map a decoder failure onto the validation error a caller sees."""
    if result.error is DecodeError.FILE_TOO_LARGE:
        return FileTooLarge(details=["LIMIT_FILE_SIZE"])
    if result.error is DecodeError.UNEXPECTED_FIELD:
        return UnexpectedField(details=["LIMIT_UNEXPECTED_FILE"])
    if result.error is DecodeError.UNSUPPORTED_FILE_TYPE:
        return UnsupportedFileType(details=["INVALID_FILE_TYPE"])
    return FileDecodeFailed(details=[result.error_detail] if result.error_detail else [])


def parse_media_type(raw: Optional[str]) -> MediaCategory:
    """Coerce the `mediaType` form field into a category.

    Any non-negative integer is accepted; values other than the post
    categories fall back to a profile image.
    """
    value = (raw or "").strip()
    if not value.isdecimal():
        raise MissingOrInvalidMediaType(details=[MEDIA_TYPE_FIELD])

    number = int(value)
    if number in (MediaCategory.POST_IMAGE, MediaCategory.POST_GIF):
        return MediaCategory(number)
    return MediaCategory.PROFILE


def _optional(fields: Mapping[str, str], name: str) -> Optional[str]:
    value = fields.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def build_intent(fields: Mapping[str, str], principal: Principal) -> UploadIntent:
    return UploadIntent(
        category=parse_media_type(fields.get(MEDIA_TYPE_FIELD)),
        caller_role=principal.role,
        caller_id=_optional(fields, CALLER_ID_FIELD),
        previous_asset_url=_optional(fields, PREVIOUS_ASSET_FIELD),
    )


async def classify_upload_request(
    request: Request,
    principal: Principal,
    decoder: MultipartDecoder,
) -> Tuple[DecodedFile, UploadIntent]:
    """Validate an upload request and split it into the file and the caller's intent."""
    if not is_multipart(request.headers.get("content-type")):
        raise UnsupportedRequestType(details=["INVALID_REQUEST_TYPE"])

    result = await decoder.decode(request)
    if result.error is not None:
        logger.info("Rejected upload from %s: %s", principal.id or principal.role, result.error.value)
        raise translate_decode_error(result)

    intent = build_intent(result.fields, principal)

    if result.file is None:
        raise NoFileProvided(details=["NO_FILE_UPLOADED"])

    return result.file, intent
