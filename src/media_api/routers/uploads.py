import logging

from fastapi import APIRouter, Depends, Request, status

from media_api.adapters.multipart import MultipartDecoder
from media_api.dependencies import (
    get_decoder,
    get_listing_service,
    get_principal,
    get_upload_service,
)
from media_api.models import Principal, UploadMethod
from media_api.schemas import (
    LIST_SUCCESS_MESSAGE,
    PRESIGNED_SUFFIX,
    UPLOAD_SUCCESS_MESSAGE,
    AssetRecordModel,
    ErrorResponse,
    ListFilesResponse,
    UploadResponse,
)
from media_api.services.classifier import classify_upload_request
from media_api.services.listing import ListingService
from media_api.services.uploads import UploadService

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
    status.HTTP_502_BAD_GATEWAY: {"model": ErrorResponse},
}


@router.post("/uploads", response_model=UploadResponse, responses=ERROR_RESPONSES)
async def upload_media(
    request: Request,
    principal: Principal = Depends(get_principal),
    decoder: MultipartDecoder = Depends(get_decoder),
    upload_service: UploadService = Depends(get_upload_service),
) -> UploadResponse:
    """
    Upload an image as a multipart form.

    Form fields:
        file: The image (max 4MB, image/* only)
        mediaType: 0 = profile image, 1 = post image, 2 = post GIF
        userId: Owner of the asset (optional)
        oldImageUrl: URL of the asset this upload replaces (optional)
    """
    file, intent = await classify_upload_request(request, principal, decoder)
    result = await upload_service.upload(file, intent)

    message = UPLOAD_SUCCESS_MESSAGE
    if result.method is UploadMethod.PRESIGNED:
        message += PRESIGNED_SUFFIX

    return UploadResponse(message=message, file_url=result.url, method=result.method)


@router.get("/uploads", response_model=ListFilesResponse, responses=ERROR_RESPONSES)
async def list_media(
    principal: Principal = Depends(get_principal),
    listing_service: ListingService = Depends(get_listing_service),
) -> ListFilesResponse:
    """List every stored asset with its resolved public URL."""
    records = await listing_service.list()
    logger.info("Listed %d file(s) for %s", len(records), principal.id or principal.role)

    return ListFilesResponse(
        message=LIST_SUCCESS_MESSAGE,
        file_count=len(records),
        files=[
            AssetRecordModel(
                name=record.name,
                key=record.key,
                size_bytes=record.size_bytes,
                uploaded_at=record.uploaded_at,
                custom_id=record.custom_id,
                url=record.url,
            )
            for record in records
        ],
    )
