"""
Single-file multipart decoder.

Wraps Starlette's form parser and reports problems as a closed `DecodeError`
variant instead of raising, so callers map failures without inspecting
exception types.
"""

import logging
import mimetypes
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from starlette.datastructures import UploadFile
from starlette.requests import Request

from media_api.models import DecodedFile

logger = logging.getLogger(__name__)

# stem for file parts sent without a filename
PLACEHOLDER_FILE_STEM = "upload"


class DecodeError(str, Enum):
    FILE_TOO_LARGE = "file_too_large"
    UNEXPECTED_FIELD = "unexpected_field"
    UNSUPPORTED_FILE_TYPE = "unsupported_file_type"
    DECODE_FAILED = "decode_failed"


@dataclass
class DecodeResult:
    file: Optional[DecodedFile] = None
    fields: Dict[str, str] = field(default_factory=dict)
    error: Optional[DecodeError] = None
    error_detail: str = ""

    @classmethod
    def failure(cls, error: DecodeError, detail: str = "") -> "DecodeResult":
        return cls(error=error, error_detail=detail)


class MultipartDecoder:
    """Decode one image file plus plain text fields from a multipart body."""

    def __init__(self, field_name: str = "file", max_file_size: int = 4 * 1024 * 1024, mime_prefix: str = "image/"):
        self.field_name = field_name
        self.max_file_size = max_file_size
        self.mime_prefix = mime_prefix

    async def decode(self, request: Request) -> DecodeResult:
        try:
            form = await request.form()
        except Exception as e:
            logger.warning("Could not parse multipart body: %s", e)
            return DecodeResult.failure(DecodeError.DECODE_FAILED, str(e))

        try:
            return await self._extract(form)
        finally:
            await form.close()

    async def _extract(self, form) -> DecodeResult:
        fields: Dict[str, str] = {}
        uploads = []
        for name, value in form.multi_items():
            if isinstance(value, UploadFile):
                if name != self.field_name:
                    return DecodeResult.failure(DecodeError.UNEXPECTED_FIELD, name)
                uploads.append(value)
            else:
                fields[name] = value

        if len(uploads) > 1:
            return DecodeResult.failure(DecodeError.UNEXPECTED_FIELD, self.field_name)
        if not uploads:
            return DecodeResult(fields=fields)

        upload = uploads[0]
        content_type = upload.content_type or ""
        if not content_type.startswith(self.mime_prefix):
            return DecodeResult.failure(DecodeError.UNSUPPORTED_FILE_TYPE, content_type)

        # read one byte past the limit so oversize files are detected without buffering them whole
        data = await upload.read(self.max_file_size + 1)
        if len(data) > self.max_file_size:
            return DecodeResult.failure(DecodeError.FILE_TOO_LARGE, upload.filename or "")

        decoded = DecodedFile(buffer=data, mime_type=content_type, file_name=self._file_name(upload, content_type))
        return DecodeResult(file=decoded, fields=fields)

    @staticmethod
    def _file_name(upload: UploadFile, content_type: str) -> str:
        name = (upload.filename or "").strip()
        if name:
            return name
        extension = mimetypes.guess_extension(content_type.split(";")[0].strip()) or ""
        return f"{PLACEHOLDER_FILE_STEM}{extension}"
