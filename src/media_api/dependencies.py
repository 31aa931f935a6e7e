"""FastAPI dependencies that hand out the services built in `create_app`."""
from typing import Optional

from fastapi import Header, Request

from media_api.adapters.multipart import MultipartDecoder
from media_api.config.settings import Settings
from media_api.models import Principal
from media_api.services.auth import Authenticator
from media_api.services.listing import ListingService
from media_api.services.uploads import UploadService


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_upload_service(request: Request) -> UploadService:
    return request.app.state.upload_service


def get_listing_service(request: Request) -> ListingService:
    return request.app.state.listing_service


def get_decoder(request: Request) -> MultipartDecoder:
    return request.app.state.decoder


async def get_principal(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> Principal:
    """Authenticate the caller and attach the principal to the request."""
    authenticator: Authenticator = request.app.state.authenticator
    principal = await authenticator.authenticate(authorization)
    request.state.principal = principal
    return principal
