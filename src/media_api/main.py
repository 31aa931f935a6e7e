from textwrap import dedent
import logging
from typing import Optional

import pydantic
from fastapi import FastAPI
from fastapi.routing import APIRoute
from fastapi.middleware.cors import CORSMiddleware

from media_api.adapters.multipart import MultipartDecoder
from media_api.adapters.storage import S3StorageBackend, StorageBackend
from media_api.config.settings import Settings
from media_api.errors import (
    ApiError,
    handle_api_error,
    handle_broad_exceptions,
    handle_pydantic_validation_errors,
)
from media_api.routers.health import router as health_router
from media_api.routers.uploads import router as uploads_router
from media_api.services.auth import Authenticator, CredentialVerifier, JwtService
from media_api.services.listing import ListingService
from media_api.services.uploads import AssetRetirer, UploadService

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def create_app(
    settings: Optional[Settings] = None,
    storage: Optional[StorageBackend] = None,
    verifier: Optional[CredentialVerifier] = None,
) -> FastAPI:
    """Create a FastAPI application.

    Services are built once here and shared through `app.state`; pass
    `storage` or `verifier` to swap in other implementations.
    """
    settings = settings or Settings()
    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT)

    app = FastAPI(
        title="Media Uploads API",
        summary="Store profile and post images",
        version="v1",
        description=dedent(
            """\
        Upload images from multipart clients and list what is stored.

        | Route | Notes |
        | --- | --- |
        | `POST /v1/uploads` | multipart form with `file` and `mediaType` |
        | `GET /v1/uploads` | every stored asset with its public URL |
        """
        ),
        docs_url="/",
        generate_unique_id_function=custom_generate_unique_id,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    storage = storage or S3StorageBackend.from_settings(settings)
    verifier = verifier or JwtService.from_settings(settings)

    app.state.settings = settings
    app.state.storage = storage
    app.state.authenticator = Authenticator(
        verifier,
        scheme=settings.auth_scheme,
        admin_role=settings.admin_role,
    )
    app.state.decoder = MultipartDecoder(
        field_name=settings.upload_field_name,
        max_file_size=settings.max_upload_bytes,
    )
    app.state.upload_service = UploadService(
        storage,
        AssetRetirer(storage, settings.protected_asset_urls),
    )
    app.state.listing_service = ListingService(storage, settings.public_base_url)
    logger.info("Media Uploads API created in %s mode", settings.deployment_mode)

    app.include_router(uploads_router, prefix="/v1", tags=["uploads"])
    app.include_router(health_router, tags=["health"])

    app.add_exception_handler(ApiError, handle_api_error)
    app.add_exception_handler(
        exc_class_or_status_code=pydantic.ValidationError,
        handler=handle_pydantic_validation_errors,
    )
    app.middleware("http")(handle_broad_exceptions)

    return app


def custom_generate_unique_id(route: APIRoute):
    """`uploads-upload_media` style operation ids for generated clients."""
    return f"{route.tags[0]}-{route.name}"


