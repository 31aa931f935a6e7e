"""Error taxonomy and the FastAPI handlers that serialize it."""
import logging
from typing import List, Optional

import pydantic
from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Base class for errors that carry a machine-readable code."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"
    message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Optional[List[str]] = None, code: Optional[str] = None):
        self.message = message or self.message
        self.code = code or self.code
        self.details = list(details) if details else []
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"message": self.message, "code": self.code, "details": self.details}


####################################
# --- Authentication errors --- #
####################################

class AuthenticationError(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"
    message = "Unauthorized"


class MissingCredential(AuthenticationError):
    code = "MISSING_TOKEN"
    message = "No token provided"


class MalformedCredential(AuthenticationError):
    code = "INVALID_TOKEN_FORMAT"
    message = "Invalid token format"


class InvalidCredential(AuthenticationError):
    code = "INVALID_TOKEN"
    message = "Invalid token"


class IncompleteClaims(AuthenticationError):
    code = "UNAUTHORIZED"
    message = "Unauthorized"

    def __init__(self, message: Optional[str] = None, details: Optional[List[str]] = None, code: Optional[str] = None):
        super().__init__(message, details or ["Not registered user"], code)


####################################
# --- Validation errors --- #
####################################

class ValidationError(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "BAD_REQUEST"
    message = "Bad request"


class UnsupportedRequestType(ValidationError):
    code = "INVALID_REQUEST_TYPE"
    message = "Invalid request type"


class MissingOrInvalidMediaType(ValidationError):
    code = "INVALID_MEDIA_TYPE"
    message = "Invalid or missing mediaType"


class NoFileProvided(ValidationError):
    code = "NO_FILE_UPLOADED"
    message = "No image file was provided"


class FileTooLarge(ValidationError):
    code = "LIMIT_FILE_SIZE"
    message = "File exceeds size limit (4MB)"


class UnexpectedField(ValidationError):
    code = "LIMIT_UNEXPECTED_FILE"
    message = "Invalid file field name"


class UnsupportedFileType(ValidationError):
    code = "INVALID_FILE_TYPE"
    message = "Only image files are allowed"


class FileDecodeFailed(ValidationError):
    code = "FILE_PROCESSING_ERROR"
    message = "Error processing file"


####################################
# --- Storage errors --- #
####################################

class StorageError(ApiError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "STORAGE_ERROR"
    message = "Storage backend error"


class DirectUploadFailed(StorageError):
    code = "DIRECT_UPLOAD_FAILED"
    message = "Error uploading file"


class PresignedUrlUnavailable(StorageError):
    code = "PRESIGNED_URL_UNAVAILABLE"
    message = "Error generating presigned URL"


class PresignedTransferFailed(StorageError):
    code = "PRESIGNED_TRANSFER_FAILED"
    message = "Error uploading to presigned URL"

    def __init__(self, transfer_status: int, reason: str = ""):
        self.transfer_status = transfer_status
        super().__init__(
            f"Error uploading to presigned URL: {reason or transfer_status}",
            details=[str(transfer_status)],
        )


class UrlResolutionFailed(StorageError):
    code = "URL_RESOLUTION_FAILED"
    message = "Could not get file URL"


class ListingFailed(StorageError):
    code = "LISTING_FAILED"
    message = "Error listing files"


####################################
# --- FastAPI handlers --- #
####################################

async def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
    """Serialize a typed error into `{message, code, details}`."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.code)
    else:
        logger.info("%s %s rejected: %s (%s)", request.method, request.url.path, exc.message, exc.code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def handle_pydantic_validation_errors(request: Request, exc: pydantic.ValidationError) -> JSONResponse:
    errors = exc.errors()
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "message": "Request validation failed",
            "code": "VALIDATION_ERROR",
            "details": [error["msg"] for error in errors],
        },
    )


async def handle_broad_exceptions(request: Request, call_next):
    """Handle any exception that goes unhandled by a more specific exception handler."""
    try:
        return await call_next(request)
    except Exception:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ApiError().to_dict(),
        )
